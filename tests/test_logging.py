"""Tests for structured log formatting."""

import logging

from app.core.logging import StructuredFormatter, get_logger, log_with_context


def _record(msg="Analysis started", **extra):
    record = logging.makeLogRecord({"msg": msg, "levelname": "INFO", "levelno": logging.INFO})
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_format_includes_message_and_level():
    line = StructuredFormatter().format(_record())

    assert "level=INFO" in line
    assert "message=Analysis started" in line


def test_format_includes_extra_fields():
    line = StructuredFormatter().format(_record(analysis_id="a1", user_id="u1"))

    assert "analysis_id=a1" in line
    assert "user_id=u1" in line


def test_log_with_context_fields(caplog):
    logger = get_logger("tests.logging")
    logger.propagate = True

    with caplog.at_level(logging.INFO, logger="tests.logging"):
        log_with_context(logger, logging.INFO, "Chat turn", agent_type="co_founder")

    record = caplog.records[-1]
    assert record.extra_data == {"agent_type": "co_founder"}
    assert "agent_type=co_founder" in StructuredFormatter().format(record)
