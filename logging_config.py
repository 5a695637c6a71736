"""
Logging configuration.

One structured line per record; every module logs through
``logging.getLogger(__name__)``.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional


# Workflow identifiers passed through ``extra=`` and appended to the line
CONTEXT_FIELDS = ("workflow_id", "session_id", "submission_id", "operation")


class StructuredFormatter(logging.Formatter):
    """
    Formatter producing ``[timestamp] LEVEL [logger] message key=value`` lines.

    Any of ``CONTEXT_FIELDS`` given through ``extra=`` is appended, so one
    workflow can be followed across the controller, gateway and adapter.
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        message = f"[{timestamp}] {record.levelname:8} [{record.name}] {record.getMessage()}"
        context = [
            f"{field}={getattr(record, field)}"
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        ]
        if context:
            message += " " + " ".join(context)
        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"
        return message


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for an additional plain-text log
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        root_logger.addHandler(file_handler)
