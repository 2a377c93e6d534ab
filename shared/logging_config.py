"""Root logging configuration for the Roster2Groups CLI."""

from __future__ import annotations

import logging

from pythonjsonlogger import json as jsonlogger

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def configure_logging(log_level: str = "info", json_format: bool = False) -> None:
    """Configure root logger with plain text or structured JSON output.

    JSON format: {"ts": "...", "level": "...", "name": "...", "msg": "..."}

    Args:
        log_level: Logging level string (e.g., "info", "debug", "trace").
        json_format: Emit one JSON object per record instead of text lines.
    """
    if log_level.lower() == "trace":
        level = 5
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    if json_format:
        formatter = jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={
                "asctime": "ts",
                "levelname": "level",
                "message": "msg",
            },
        )
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt="%H:%M:%S")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    # Clear any existing handlers to avoid duplicate output
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
