"""Console logging for the escrow monitor.

One colored stdout handler on the root logger. Levels are the stdlib ones
plus TRACE, which sits below DEBUG and also turns on per-request output from
the LCD client, urllib3 and backoff.
"""

import logging
import os
import sys

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# HTTP stack loggers: quiet unless running at TRACE
NOISY_LOGGERS = ("urllib3", "backoff")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Wraps the level name in an ANSI color; the record is restored afterwards."""

    COLORS = {
        "TRACE": "\033[90m",
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        color = self.COLORS.get(original)
        if color:
            record.levelname = f"{color}{self.BOLD}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def resolve_level(log_level: str) -> int:
    """Numeric level for a name such as ``"trace"`` or ``"WARNING"``; INFO if unknown."""
    name = log_level.upper()
    if name == "TRACE":
        return TRACE
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(log_level: str | None = None) -> None:
    """Install the colored handler at ``log_level``.

    Falls back to the LOG_LEVEL environment variable, then INFO, so the
    level can be set before settings are loaded.
    """
    name = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = resolve_level(name)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColoredFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)

    http_level = TRACE if level <= TRACE else logging.WARNING
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(http_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
