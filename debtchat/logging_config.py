"""Logging configuration for DebtChat.

Two handlers hang off the root logger:

- a colorlog console handler on stderr, WARNING by default so log lines do
  not interleave with the chat transcript on stdout
- a rotating file handler (DEBUG by default), plain text or JSON lines

Levels, paths and formats come from ``DebtChatSettings`` (``DEBTCHAT_LOG_*``
environment variables or ``.env``); there is no separate environment parsing
here.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import colorlog
from pythonjsonlogger import json

from debtchat.config import DebtChatSettings, get_settings

DEFAULT_LOG_DIR = Path(__file__).parent.parent / "logs"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def _level(name: str, default: int) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def _console_handler(level: int) -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s" + LOG_FORMAT,
            datefmt=DATE_FORMAT,
            reset=True,
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
    )
    return handler


def _file_handler(config: DebtChatSettings, level: int) -> RotatingFileHandler:
    log_dir = Path(config.log_dir) if config.log_dir else DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        log_dir / config.log_file_name,
        maxBytes=config.log_max_bytes,
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    if config.log_json_format:
        handler.setFormatter(json.JsonFormatter("%(asctime)s %(name)s %(levelname)s %(message)s", datefmt=DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(config: DebtChatSettings | None = None, force: bool = False) -> None:
    """Configure the root logger for DebtChat.

    Args:
        config: Settings to read log options from (defaults to the global settings)
        force: Replace existing root handlers instead of leaving them alone
    """
    root_logger = logging.getLogger()
    if root_logger.handlers and not force:
        return

    config = config or get_settings()
    console_level = _level(config.log_level, logging.WARNING)
    file_level = _level(config.log_file_level, logging.DEBUG)

    if force:
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

    root_logger.setLevel(logging.DEBUG)  # handlers filter
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    file_handler = _file_handler(config, file_level)
    root_logger.addHandler(_console_handler(console_level))
    root_logger.addHandler(file_handler)

    logging.getLogger(__name__).info(
        f"Logging configured: console={logging.getLevelName(console_level)}, "
        f"file={logging.getLevelName(file_level)}, file_path={file_handler.baseFilename}, "
        f"json_format={config.log_json_format}"
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance, configuring logging first if nothing has yet."""
    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name)
