"""Tests for stay_ledger.logging_config."""

import io
import json
import logging
import sys

import pytest

from stay_ledger.config import LoggingSettings
from stay_ledger.logging_config import JSONFormatter, configure_logging


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Put the package logger back the way the test found it."""
    logger = logging.getLogger("stay_ledger")
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.mark.unit
def test_simple_format():
    stream = io.StringIO()
    configure_logging(LoggingSettings(level="INFO", format="simple"), stream=stream)

    logging.getLogger("stay_ledger.core.platform").info("booking %d", 7)

    assert stream.getvalue() == "INFO booking 7\n"


@pytest.mark.unit
def test_level_filters():
    stream = io.StringIO()
    configure_logging(LoggingSettings(level="WARNING", format="simple"), stream=stream)

    logging.getLogger("stay_ledger.executor").info("hidden")

    assert stream.getvalue() == ""


@pytest.mark.unit
def test_reconfigure_replaces_handler():
    logger = configure_logging(LoggingSettings(format="simple"), stream=io.StringIO())
    configure_logging(LoggingSettings(format="detailed"), stream=io.StringIO())

    assert len(logger.handlers) == 1


@pytest.mark.unit
def test_json_format_includes_transaction_fields():
    stream = io.StringIO()
    configure_logging(LoggingSettings(level="INFO", format="json"), stream=stream)

    logging.getLogger("stay_ledger.executor.executor").warning(
        "aborted", extra={"tx_id": "abc", "op": "book", "error_code": "not_available"}
    )

    record = json.loads(stream.getvalue())
    assert record["level"] == "WARNING"
    assert record["logger"] == "stay_ledger.executor.executor"
    assert record["message"] == "aborted"
    assert record["tx_id"] == "abc"
    assert record["op"] == "book"
    assert record["error_code"] == "not_available"


@pytest.mark.unit
def test_json_formatter_exception():
    try:
        raise ValueError("bad")
    except ValueError:
        record = logging.LogRecord(
            "stay_ledger", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
        )

    data = json.loads(JSONFormatter().format(record))

    assert "ValueError: bad" in data["exception"]
