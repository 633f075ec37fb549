import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from . import settings

# Libraries whose per-request chatter would drown the daily check output.
QUIET_LOGGERS = ("urllib3", "requests")


def resolve_level(level_name: Optional[str]) -> int:
    """Maps a level name such as 'debug' to its logging constant; unknown names give INFO."""
    level = logging.getLevelName(str(level_name or "").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logger(name: Optional[str] = None, log_level: Optional[int] = None) -> logging.Logger:
    """
    Configures console and rotating-file output for the stock tracker.
    With no name the root logger is configured, so every module that calls
    logging.getLogger(__name__) shares both handlers. The level defaults to
    LOG_LEVEL from the environment.
    """
    if log_level is None:
        log_level = resolve_level(settings.LOG_LEVEL)

    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    settings.LOG_DIR.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        settings.LOG_DIR / settings.LOG_FILE,
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logger.addHandler(file_handler)

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))

    return logger
