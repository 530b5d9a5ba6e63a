"""
Structured JSON logging configuration.

Harness modules log through ``logging.getLogger(__name__)``. Failure records
carry ``backend``, ``expression`` and ``check_id`` extras so that every
line of one check can be correlated.
"""

import json
import logging
import sys
from datetime import datetime, timezone

# Extras copied into the JSON record when present
_EXTRA_FIELDS = ("check_id", "backend", "expression", "failure_kind")


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Example:
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(JSONFormatter())
        >>> logger = logging.getLogger("exprcheck")
        >>> logger.addHandler(handler)
        >>> logger.warning("Mismatch", extra={"backend": "optimized"})
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Python logging.LogRecord

        Returns:
            JSON string with structured log data
        """
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str | None = None, json_format: bool = True) -> None:
    """
    Configure logging for the ``exprcheck`` logger tree.

    Args:
        level: Log level name; defaults to the configured ``log_level``.
        json_format: Emit JSON lines instead of plain text.

    Example:
        >>> setup_logging(level="DEBUG")
    """
    if level is None:
        from exprcheck.config import get_settings

        level = get_settings().log_level

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )

    harness_logger = logging.getLogger("exprcheck")
    harness_logger.setLevel(getattr(logging, level.upper()))
    harness_logger.handlers.clear()
    harness_logger.addHandler(handler)
    harness_logger.propagate = False

    harness_logger.debug("Harness logging configured", extra={"log_level": level})
