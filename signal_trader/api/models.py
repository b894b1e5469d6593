"""
Provider data models: indicator readings and brokerage entities.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class IndicatorReading:
    """
    Latest values of the two MACD lines.

    Attributes:
        fast_value: MACD line
        baseline_value: Signal line
        period: Indicator period the values belong to (e.g. '2017-12-01')
    """
    fast_value: float
    baseline_value: float
    period: Optional[str] = None


@dataclass(frozen=True)
class Account:
    account_number: str
    buying_power: Decimal
    url: str


@dataclass(frozen=True)
class Instrument:
    id: str
    url: str
    symbol: str


@dataclass(frozen=True)
class Position:
    instrument_url: str
    quantity: Decimal

    @property
    def is_open(self) -> bool:
        return self.quantity > 0


class OrderSide(Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class Order:
    """Market order, immediate trigger, good till cancelled"""
    symbol: str
    instrument_url: str
    quantity: Decimal
    side: OrderSide
    price: Optional[Decimal] = None  # buy orders only
    order_type: str = "market"
    trigger: str = "immediate"
    time_in_force: str = "gtc"

    def to_payload(self, account_url: str) -> Dict[str, Any]:
        payload = {
            "account": account_url,
            "instrument": self.instrument_url,
            "symbol": self.symbol,
            "type": self.order_type,
            "trigger": self.trigger,
            "quantity": str(self.quantity),
            "side": self.side.value,
            "time_in_force": self.time_in_force,
        }
        if self.price is not None:
            payload["price"] = str(self.price)
        return payload

    def __str__(self):
        price = f" @ {self.price}" if self.price is not None else ""
        return f"{self.side.value.upper()} {self.quantity} x {self.symbol}{price}"
