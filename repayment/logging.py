"""Logging for the repayment package.

Modules log through ``get_logger(__name__)``, so every record lands under the
``repayment`` logger. ``setup_logging`` attaches one handler there and leaves
the root logger to the embedding application.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

PACKAGE_LOGGER = "repayment"

_STANDARD_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Attach a single handler to the package logger.

    Parameters
    ----------
    level : str
        Level name, usually ``ContractConfig.log_level``. Unknown names fall
        back to INFO.
    json_format : bool
        Emit one JSON object per line instead of the pipe-separated format.
    stream : TextIO, optional
        Destination (default: stdout).

    Returns
    -------
    logging.Logger
        The configured ``repayment`` logger.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(
        JsonFormatter() if json_format else logging.Formatter(_STANDARD_FORMAT, "%Y-%m-%d %H:%M:%S")
    )

    logger = logging.getLogger(PACKAGE_LOGGER)
    for old in logger.handlers[:]:
        logger.removeHandler(old)
    logger.addHandler(handler)
    logger.setLevel(log_level)
    return logger


class JsonFormatter(logging.Formatter):
    """One JSON object per record; loan_id / block / amount come from extra={"extra": {...}}."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(getattr(record, "extra", {}))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module under the ``repayment`` hierarchy."""
    return logging.getLogger(name)
