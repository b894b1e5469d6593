"""
Signal change event and its wire record.

Wire format on the equity_signals topic:

    key:   "AAPL"                                  (uppercased symbol)
    value: {"signal": "buy", "at": "2017-12-03T17:26:56+00:00"}
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Union

from ..data.models import Signal
from ..utils.timezone_utils import utc_now, to_utc, parse_timestamp, format_timestamp


class MalformedEventError(ValueError):
    """A broker record could not be turned into a SignalChangeEvent."""


@dataclass(frozen=True)
class SignalChangeEvent:
    """
    Emitted once per persisted buy/sell transition of a symbol.

    ``raw_signal`` keeps the signal text as received so a consumer can tell
    an unknown value apart from a malformed record.
    """

    symbol: str
    signal: Union[Signal, None]
    emitted_at: datetime = field(default_factory=utc_now)
    raw_signal: str = ""

    @property
    def key(self) -> str:
        return self.symbol.upper()

    def age(self, now: datetime = None):
        return (to_utc(now) if now else utc_now()) - to_utc(self.emitted_at)

    def to_record(self) -> Dict[str, Any]:
        """Compact record published as the message value."""
        return {
            "signal": self.signal.value if self.signal else self.raw_signal,
            "at": format_timestamp(self.emitted_at),
        }

    @classmethod
    def from_record(cls, key: str, value: Union[str, bytes, Dict[str, Any]]) -> "SignalChangeEvent":
        """
        Parse a broker record.

        Args:
            key: Transport key (symbol)
            value: JSON text or already decoded record

        Returns:
            SignalChangeEvent; ``signal`` is None when the value names no
            known signal

        Raises:
            MalformedEventError: Missing key, undecodable JSON or timestamp
        """
        if not key or not str(key).strip():
            raise MalformedEventError("Record has no symbol key")

        if isinstance(value, bytes):
            value = value.decode("utf-8")
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as e:
                raise MalformedEventError(f"Record value is not JSON: {e}") from e
        if not isinstance(value, dict):
            raise MalformedEventError(f"Record value must be an object, got {type(value).__name__}")

        raw_signal = value.get("signal")
        if not isinstance(raw_signal, str):
            raise MalformedEventError("Record has no signal")

        try:
            emitted_at = parse_timestamp(value.get("at"))
        except (ValueError, OverflowError) as e:
            raise MalformedEventError(f"Record timestamp invalid: {e}") from e

        return cls(
            symbol=str(key).strip().upper(),
            signal=Signal.parse(raw_signal),
            emitted_at=emitted_at,
            raw_signal=raw_signal,
        )

    def __repr__(self):
        signal = self.signal.value if self.signal else self.raw_signal
        return f"SignalChangeEvent({self.key} -> {signal} at {format_timestamp(self.emitted_at)})"
