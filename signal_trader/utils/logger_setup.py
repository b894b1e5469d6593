import logging
import os
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from colorama import Fore, Style, init as colorama_init

colorama_init(autoreset=True)

LOG_FORMAT = '%(asctime)s - %(name)s - %(method_name)s - %(levelname)s - %(message)s'


class ColoredFormatter(logging.Formatter):
    """
    Console formatter that colors warnings and errors and adds the calling
    method name to every record:
    - INFO / DEBUG: default color
    - WARNING: amber
    - ERROR / CRITICAL: red
    """

    COLORS = {
        'DEBUG': Fore.WHITE,
        'INFO': Fore.WHITE,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED,
    }

    def format(self, record):
        _ensure_method_name(record)
        log_message = super().format(record)

        if record.levelname in ('WARNING', 'ERROR', 'CRITICAL'):
            color = self.COLORS.get(record.levelname, Fore.WHITE)
            return f"{color}{log_message}{Style.RESET_ALL}"

        return log_message


class MethodNameFormatter(logging.Formatter):
    """Plain formatter for file output; fills in method_name like the console one."""

    def format(self, record):
        _ensure_method_name(record)
        return super().format(record)


def _ensure_method_name(record: logging.LogRecord):
    if not getattr(record, 'method_name', None):
        record.method_name = record.funcName


def _resolve_log_dir(log_dir: Optional[str]) -> Path:
    path = Path(log_dir or os.getenv("LOG_DIR", "logs"))
    path.mkdir(parents=True, exist_ok=True)
    return path


def setup_logger(name: str = "signal_trader", level: Optional[str] = None,
                 log_dir: Optional[str] = None, log_to_file: bool = True) -> logging.Logger:
    """
    Set up a named component logger.

    The logger writes colored output to stdout and, unless disabled, a daily
    rotated file ``<log_dir>/<name>.log`` kept for 30 days. Calling it twice
    for the same name returns the already configured logger.

    Args:
        name: Logger name, one per component
        level: Log level name, defaults to the LOG_LEVEL environment variable
        log_dir: Directory for rotated log files, defaults to LOG_DIR or ./logs
        log_to_file: Whether to attach the rotating file handler

    Returns:
        Configured logging.Logger
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    if log_to_file and os.getenv("LOG_TO_FILE", "true").lower() in ('true', '1', 'yes', 'on'):
        log_file = _resolve_log_dir(log_dir) / f"{name}.log"
        file_handler = TimedRotatingFileHandler(
            str(log_file),
            when="midnight",
            interval=1,
            backupCount=30,
            encoding='utf-8'
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(MethodNameFormatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    return logger

