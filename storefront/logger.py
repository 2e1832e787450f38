"""
Structured logging setup.
"""
import json
import logging
import sys
from datetime import datetime, timezone

from storefront.config import config

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logger(level: str = None) -> logging.Logger:
    """Configure the storefront logger with JSON output on stdout."""
    logger = logging.getLogger("storefront")
    logger.setLevel((level or config.LOG_LEVEL).upper())
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter())

    logger.handlers.clear()
    logger.addHandler(console_handler)

    return logger


# Global logger instance
logger = setup_logger()
