"""
Logging setup for the ``stay_ledger`` package.

Modules log through ``logging.getLogger(__name__)`` and never configure
handlers themselves.  Applications call :func:`configure_logging` once with
the loaded :class:`~stay_ledger.config.LoggingSettings`.

Formats:
    simple    "INFO booking 0 checked in"
    detailed  timestamp, level, logger name, message
    json      one JSON object per record, for log aggregation
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from stay_ledger.config import LoggingSettings

_PACKAGE_LOGGER = "stay_ledger"

_FORMATS = {
    "simple": "%(levelname)s %(message)s",
    "detailed": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
}


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        for key in ("tx_id", "op", "error_code"):
            if hasattr(record, key):
                log_data[key] = getattr(record, key)
        return json.dumps(log_data, ensure_ascii=False, default=str)


def configure_logging(settings: LoggingSettings, *, stream: Any = None) -> logging.Logger:
    """
    Install a single stream handler on the package logger.

    Calling it again replaces the handler, so reconfiguring is safe.

    Args:
        settings: Level and format to apply.
        stream: Output stream, defaults to ``sys.stderr``.

    Returns:
        The configured ``stay_ledger`` logger.
    """
    logger = logging.getLogger(_PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    if settings.format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_FORMATS.get(settings.format, _FORMATS["detailed"])))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, settings.level.upper(), logging.INFO))
    return logger
