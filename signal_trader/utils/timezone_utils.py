"""
Timezone handling for signal-trader.

Event timestamps are stored and compared in UTC. The market calendar helpers
use US/Eastern, the exchange timezone of the traded equities.

Usage:
    from signal_trader.utils.timezone_utils import utc_now, parse_timestamp

    now = utc_now()
    emitted_at = parse_timestamp("2017-12-03 10:26:56 -0700")
"""

from datetime import datetime, time
from typing import Optional

import pytz

MARKET_TIMEZONE_NAME = "America/New_York"
MARKET_TIMEZONE = pytz.timezone(MARKET_TIMEZONE_NAME)

# Timestamp layout written by the first generation of the signal generator
LEGACY_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %z"


def utc_now() -> datetime:
    """
    Get the current time in UTC.

    Returns:
        datetime: Current time (timezone-aware, UTC)
    """
    return datetime.now(pytz.utc)


def to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Convert any datetime to UTC.

    Naive datetimes are assumed to already be UTC.

    Args:
        dt: Datetime to convert

    Returns:
        datetime: Timezone-aware UTC datetime, or None for None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return pytz.utc.localize(dt)

    return dt.astimezone(pytz.utc)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an event timestamp into an aware UTC datetime.

    Accepts ISO-8601 (``2017-12-03T17:26:56+00:00``, a trailing ``Z`` included)
    and the legacy ``2017-12-03 10:26:56 -0700`` layout.

    Args:
        value: Timestamp string

    Returns:
        datetime: Parsed timestamp in UTC

    Raises:
        ValueError: If the string matches neither layout
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid timestamp: {value!r}")

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        parsed = datetime.strptime(text, LEGACY_TIMESTAMP_FORMAT)

    # Offsets near datetime.min/max cannot be moved to UTC
    try:
        return to_utc(parsed)
    except OverflowError as e:
        raise ValueError(f"Timestamp out of range: {value!r}") from e


def format_timestamp(dt: datetime) -> str:
    """Render a datetime as an ISO-8601 UTC string."""
    return to_utc(dt).isoformat()


def get_market_time() -> datetime:
    """Current time in the exchange timezone."""
    return datetime.now(MARKET_TIMEZONE)


def is_trading_day(dt: Optional[datetime] = None) -> bool:
    """
    Check whether the given day is a weekday in the exchange timezone.

    Exchange holidays are not modelled; the indicator provider simply returns
    the previous session's values on those days.
    """
    market_dt = (dt.astimezone(MARKET_TIMEZONE) if dt and dt.tzinfo
                 else dt or get_market_time())
    return market_dt.weekday() < 5


def market_time_to_local(clock: time) -> str:
    """
    Convert an exchange wall-clock time to the local ``HH:MM`` string that
    the ``schedule`` library expects.
    """
    today = get_market_time().date()
    market_dt = MARKET_TIMEZONE.localize(datetime.combine(today, clock))
    return market_dt.astimezone().strftime("%H:%M")
