"""Tests for the component logger factory and root logging configuration."""

import io
import json
import logging

import pytest

from shared.log import TRACE, create_logger
from shared.logging_config import configure_logging


@pytest.fixture
def restore_root_logger():
    """Drop the handler configure_logging installs and restore the root level."""
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
    root.setLevel(level)


def test_prefix_and_logger_name(caplog):
    _, _, log_info, _, _ = create_logger("Engine")
    with caplog.at_level(logging.INFO, logger="Roster2Groups.engine"):
        log_info("Reconciling 3 groups")

    record = caplog.records[-1]
    assert record.name == "Roster2Groups.engine"
    assert record.getMessage() == "[Roster2Groups Engine] Reconciling 3 groups"


def test_component_name_with_spaces(caplog):
    _, _, _, log_warn, _ = create_logger("Result Sink")
    with caplog.at_level(logging.WARNING):
        log_warn("x")
    assert caplog.records[-1].name == "Roster2Groups.result_sink"


def test_no_component(caplog):
    _, _, _, _, log_error = create_logger()
    with caplog.at_level(logging.ERROR):
        log_error("boom")
    assert caplog.records[-1].getMessage() == "[Roster2Groups] boom"


def test_trace_level(caplog):
    log_trace, log_debug, _, _, _ = create_logger("Lock")
    assert logging.getLevelName(TRACE) == "TRACE"

    with caplog.at_level(logging.DEBUG, logger="Roster2Groups.lock"):
        log_trace("hidden")
        log_debug("shown")
    messages = [r.getMessage() for r in caplog.records]
    assert "[Roster2Groups Lock] shown" in messages
    assert "[Roster2Groups Lock] hidden" not in messages

    with caplog.at_level(TRACE, logger="Roster2Groups.lock"):
        log_trace("visible now")
    assert caplog.records[-1].levelname == "TRACE"


def test_configure_logging_text(restore_root_logger):
    configure_logging("debug")

    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 1


def test_configure_logging_trace_level(restore_root_logger):
    configure_logging("trace")
    assert restore_root_logger.level == TRACE


def test_configure_logging_unknown_level_defaults_to_info(restore_root_logger):
    configure_logging("chatty")
    assert restore_root_logger.level == logging.INFO


def test_configure_logging_json(restore_root_logger):
    configure_logging("info", json_format=True)
    stream = io.StringIO()
    restore_root_logger.handlers[0].setStream(stream)

    _, _, log_info, _, _ = create_logger("Orchestrator")
    log_info("Run start")

    payload = json.loads(stream.getvalue().strip())
    assert payload["level"] == "INFO"
    assert payload["name"] == "Roster2Groups.orchestrator"
    assert payload["msg"] == "[Roster2Groups Orchestrator] Run start"
    assert "ts" in payload
