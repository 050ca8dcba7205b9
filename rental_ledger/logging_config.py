"""
Structured Logging

One JSON object per line for every ledger operation. Loggers live under
the ``rental_ledger`` namespace (rental_ledger.ledger, rental_ledger.sales,
...), and ledger actions carry who did what to which record.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Attributes log_action attaches to a record
CONTEXT_FIELDS = ("user_id", "action", "resource", "details")


class JSONFormatter(logging.Formatter):
    """Renders a log record as a single JSON line"""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    logger_name: str = "rental_ledger"
) -> logging.Logger:
    """
    Configure the application logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: "json" for structured lines, "text" for plain lines
        log_file: Append to this file instead of stderr
        logger_name: Namespace to configure

    Returns:
        The configured namespace logger
    """
    logger = logging.getLogger(logger_name)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    handler = logging.FileHandler(log_file) if log_file else logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    logger.addHandler(handler)
    logger.setLevel(level.upper())
    # Handled here; the root logger would print every line twice
    logger.propagate = False
    return logger


def get_logger(name: str = "rental_ledger") -> logging.Logger:
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               user_id: Optional[str] = None, action: Optional[str] = None,
               resource: Optional[str] = None, extra: Optional[Dict[str, Any]] = None):
    """
    Log a ledger action with its context.

    Args:
        logger: Module logger
        level: info, warning, error, ...
        message: Human-readable summary
        user_id: Caller identity
        action: Operation name, e.g. create_sale
        resource: Affected record as "<kind>:<id>"
        extra: Operation details (document numbers, amounts, account ids)
    """
    context = {"user_id": user_id, "action": action, "resource": resource, "details": extra}
    logger.log(
        getattr(logging, level.upper()),
        message,
        extra={key: value for key, value in context.items() if value is not None}
    )
