"""
Shared helpers: logging setup and timezone handling.
"""

from .logger_setup import setup_logger
from .timezone_utils import utc_now, to_utc, parse_timestamp, format_timestamp

__all__ = [
    'setup_logger',
    'utc_now',
    'to_utc',
    'parse_timestamp',
    'format_timestamp',
]
