"""
Persisted equity state.

The signal column holds a small integer code, not a database enum:

    code | signal
    -----+-------
      0  | sell   (default)
      1  | buy
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Signal(Enum):
    """Buy/sell state of a symbol"""
    SELL = "sell"
    BUY = "buy"

    @property
    def code(self) -> int:
        return SIGNAL_CODES[self]

    @classmethod
    def from_code(cls, code: int) -> "Signal":
        try:
            return CODE_SIGNALS[int(code)]
        except (KeyError, TypeError, ValueError):
            raise ValueError(f"Unknown signal code: {code!r}")

    @classmethod
    def parse(cls, value: str) -> Optional["Signal"]:
        """Case-insensitive lookup by name; None for anything else."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


SIGNAL_CODES = {
    Signal.SELL: 0,
    Signal.BUY: 1,
}
CODE_SIGNALS = {code: signal for signal, code in SIGNAL_CODES.items()}

DEFAULT_SIGNAL = Signal.SELL


@dataclass(frozen=True)
class Equity:
    """One row of the equities relation"""
    symbol: str
    signal: Signal = DEFAULT_SIGNAL
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    id: Optional[int] = None

    def to_dict(self):
        return {
            "id": self.id,
            "symbol": self.symbol,
            "signal": self.signal.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
