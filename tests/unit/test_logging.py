"""
Unit Tests for Logging Setup
"""
import json
import logging
import sys

from logging_config import LOGGER_NAME, JSONFormatter, get_logger


def test_child_loggers_share_the_app_logger():
    assert get_logger("gateway").name == f"{LOGGER_NAME}.gateway"
    assert get_logger("gateway").parent is logging.getLogger(LOGGER_NAME)


def test_json_formatter_includes_extras():
    record = logging.LogRecord(
        name=f"{LOGGER_NAME}.gateway", level=logging.WARNING, pathname=__file__, lineno=1,
        msg="Document %s is malformed", args=("abc",), exc_info=None,
    )
    record.reason = "missing field"

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "Document abc is malformed"
    assert payload["level"] == "WARNING"
    assert payload["reason"] == "missing field"


def test_json_formatter_with_exception():
    try:
        raise ValueError("boom")
    except ValueError:
        exc_info = sys.exc_info()
    record = logging.LogRecord(
        name=LOGGER_NAME, level=logging.ERROR, pathname=__file__, lineno=1,
        msg="failed", args=(), exc_info=exc_info,
    )

    payload = json.loads(JSONFormatter().format(record))

    assert payload["exception"]["type"] == "ValueError"
    assert payload["exception"]["message"] == "boom"
