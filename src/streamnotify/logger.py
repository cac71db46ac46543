"""
Logging module for StreamNotify.
Colored console output, a rotating plain-text file and per-channel context.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


ROOT_LOGGER = 'streamnotify'
TIME_FORMAT = '%Y/%m/%d %H:%M:%S'

RESET = "\033[0m"
GRAY = "\033[90m"
CYAN = "\033[96m"
LEVEL_COLORS = {
    logging.DEBUG: GRAY,
    logging.INFO: "\033[92m",
    logging.WARNING: "\033[93m",
    logging.ERROR: "\033[91m",
    logging.CRITICAL: "\033[95m",
}


class LineFormatter(logging.Formatter):
    """
    One line per record: level, timestamp, channel tag, message.

    With `colored` the level, timestamp and channel get ANSI colors for the
    console; without it the channel is padded into a column for the file.
    """

    def __init__(self, colored: bool = False):
        super().__init__(datefmt=TIME_FORMAT)
        self.colored = colored

    def format(self, record: logging.LogRecord) -> str:
        stamp = self.formatTime(record, self.datefmt)
        channel = getattr(record, 'channel', None)

        if self.colored:
            color = LEVEL_COLORS.get(record.levelno, RESET)
            tag = f"{CYAN}[{channel}]{RESET} " if channel else ""
            line = f"{color}{record.levelname:8}{RESET} {GRAY}[{stamp}]{RESET} {tag}{record.getMessage()}"
        else:
            line = f"{record.levelname:8} [{stamp}] {channel or '-':20} | {record.getMessage()}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ChannelLoggerAdapter(logging.LoggerAdapter):
    """Tags every record with the channel login."""

    def process(self, msg, kwargs):
        kwargs['extra'] = {**kwargs.get('extra', {}), **self.extra}
        return msg, kwargs


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_size_mb: int = 10,
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure the `streamnotify` logger.

    The console shows everything at `level`; the file keeps INFO and above
    so the per-tick debug lines stay out of it.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(LineFormatter(colored=True))
    logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(LineFormatter())
        file_handler.setLevel(logging.INFO)
        logger.addHandler(file_handler)

    logger.info("Log ready...")
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the app logger, or its `name` child."""
    return logging.getLogger(f'{ROOT_LOGGER}.{name}' if name else ROOT_LOGGER)


def get_channel_logger(channel: str, name: Optional[str] = None) -> ChannelLoggerAdapter:
    """Return a logger whose records carry `channel`."""
    return ChannelLoggerAdapter(get_logger(name), {'channel': channel})
