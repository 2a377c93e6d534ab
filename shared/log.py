"""
Component logging for Roster2Groups.

Every module logs through a small set of functions bound to a component name,
so that messages share one prefix format and one logger hierarchy:
  logger name:  Roster2Groups.<component>
  message:      [Roster2Groups <Component>] <text>

Usage:
    from shared.log import create_logger
    log_trace, log_debug, log_info, log_warn, log_error = create_logger("Engine")
    log_info("Reconciling 3 groups")  # -> [Roster2Groups Engine] Reconciling 3 groups
"""

import logging

ROOT_LOGGER_NAME = "Roster2Groups"

# Below DEBUG, for step-by-step polling output
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


def create_logger(component: str = ""):
    """Create log functions for a component.

    Args:
        component: Component name suffix. If provided, prefix becomes
                   "[Roster2Groups {component}]", otherwise "[Roster2Groups]".

    Returns:
        Tuple of (log_trace, log_debug, log_info, log_warn, log_error) functions.
    """
    prefix = f"[{ROOT_LOGGER_NAME} {component}]" if component else f"[{ROOT_LOGGER_NAME}]"
    if component:
        name = f"{ROOT_LOGGER_NAME}.{component.lower().replace(' ', '_')}"
    else:
        name = ROOT_LOGGER_NAME
    logger = logging.getLogger(name)

    def log_trace(msg): logger.log(TRACE, f"{prefix} {msg}")
    def log_debug(msg): logger.debug(f"{prefix} {msg}")
    def log_info(msg): logger.info(f"{prefix} {msg}")
    def log_warn(msg): logger.warning(f"{prefix} {msg}")
    def log_error(msg): logger.error(f"{prefix} {msg}")

    return log_trace, log_debug, log_info, log_warn, log_error
