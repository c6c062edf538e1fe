"""
Structured Logging Configuration

One line per record: UTC event time, level, logger name, message and any
scoring context passed through `extra=` (profile, classification...).
Only the `clinical_scoring` logger namespace is configured; the host
application's root logger is left alone.
"""
import logging
import sys
from typing import Optional
from datetime import datetime, timezone

from clinical_scoring import config

# LogRecord attributes rendered as trailing key=value context when present
CONTEXT_FIELDS = ("profile", "classification", "error_code")


class StructuredFormatter(logging.Formatter):
    """Single-line formatter with optional ANSI level colours."""

    LEVEL_COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, color: bool = True):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        event_time = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        context = " ".join(
            f"{name}={getattr(record, name)}"
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )

        line = f"[{event_time}] {record.levelname:8} [{record.name}] {record.getMessage()}"
        if context:
            line += f" | {context}"
        if self.color and record.levelname in self.LEVEL_COLORS:
            line = f"{self.LEVEL_COLORS[record.levelname]}{line}{self.RESET}"

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    color: bool = True
) -> None:
    """
    Configure the clinical_scoring logger namespace.

    Args:
        level: Logging level name; unknown names fall back to WARNING
        log_file: Optional file path for an additional plain-text handler
        color: Emit ANSI colours on the stderr handler
    """
    package_logger = logging.getLogger(config.LOGGER_NAMESPACE)
    package_logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(StructuredFormatter(color=color))
    package_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter(color=False))
        package_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Logger for a module (pass __name__)."""
    return logging.getLogger(name)


setup_logging(config.LOG_LEVEL, config.LOG_FILE or None, config.LOG_COLOR)
