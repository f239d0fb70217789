"""
Logging utilities.

WHAT: Centralized logging configuration
WHY: Many vendor sessions log concurrently; lines must stay attributable
HOW: Python logging with console and optional file handlers, plus an
     adapter that prefixes negotiation identity
"""

import logging
import sys
from pathlib import Path

from ..core.config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(pathname)s:%(lineno)d - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Per-request INFO lines from the HTTP stack drown the negotiation logs
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(log_level: str | None = None, log_file: str | None = None):
    """
    Configure application logging.

    Args:
        log_level: Override for settings.LOG_LEVEL
        log_file: Override for settings.LOG_FILE (empty string disables the file handler)
    """
    level_name = (log_level or settings.LOG_LEVEL).upper()
    log_path = settings.LOG_FILE if log_file is None else log_file

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_path:
        log_file_path = Path(log_path)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(f"Logging initialized (level={level_name}, file={log_path or 'disabled'})")


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module (typically __name__)."""
    return logging.getLogger(name)


class NegotiationLogAdapter(logging.LoggerAdapter):
    """Prefix messages with the negotiation and vendor they belong to."""

    def process(self, msg, kwargs):
        return f"[negotiation {self.extra.get('negotiation_id')} / vendor {self.extra.get('vendor_id')}] {msg}", kwargs


def get_negotiation_logger(name: str, negotiation_id=None, vendor_id=None) -> NegotiationLogAdapter:
    """Logger whose lines carry negotiation identity."""
    return NegotiationLogAdapter(
        logging.getLogger(name),
        {"negotiation_id": negotiation_id, "vendor_id": vendor_id}
    )
