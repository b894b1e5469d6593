"""
Trade Executor
Sizes and submits market orders for buy/sell signals.

Both operations read live cash and position state on every call. That read
is the idempotency guard: a redelivered buy finds the position already open,
a redelivered sell finds it already closed.
"""

from collections import Counter
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from ..api.models import Order, OrderSide
from ..api.robinhood_client import RobinhoodClient
from ..core.exceptions import SignalTraderError
from ..utils.logger_setup import setup_logger

logger = setup_logger("trade_executor")

CENT = Decimal("0.01")
DEFAULT_ALLOCATION = Decimal("0.30")


class ExecutionStatus(Enum):
    SUBMITTED = "submitted"  # order accepted (or logged in dry-run mode)
    SKIPPED = "skipped"      # deliberate no-op, safe to acknowledge
    FAILED = "failed"        # provider error, action abandoned


@dataclass(frozen=True)
class ExecutionResult:
    status: ExecutionStatus
    symbol: str
    side: OrderSide
    reason: str = ""
    order: Optional[Order] = None
    error: Optional[SignalTraderError] = None

    @property
    def failed(self) -> bool:
        return self.status == ExecutionStatus.FAILED


def size_buy(cash: Decimal, price: Decimal, allocation: Decimal = DEFAULT_ALLOCATION):
    """
    Whole shares affordable with the allocated part of the cash.

    Args:
        cash: Buying power
        price: Last trade price
        allocation: Fraction of cash to commit

    Returns:
        Tuple (budget rounded to cents, quantity); quantity is 0 when one
        share costs more than the budget
    """
    budget = (cash * allocation).quantize(CENT, rounding=ROUND_HALF_UP)
    if price <= 0 or price > budget:
        return budget, 0
    quantity = int((budget / price).to_integral_value(rounding=ROUND_DOWN))
    return budget, quantity


class TradeExecutor:
    """
    Turns buy/sell signals into market orders against one brokerage account.

    Rules:
    - buy: commit a fixed fraction of buying power, whole shares only, never
      add to an open position, never buy a partial lot when one share costs
      more than the budget
    - sell: close the whole position (fractional shares included), no-op when
      flat
    """

    def __init__(self, brokerage: RobinhoodClient, allocation: Decimal = DEFAULT_ALLOCATION):
        """
        Args:
            brokerage: Brokerage client
            allocation: Fraction of buying power committed per buy
        """
        self.brokerage = brokerage
        self.allocation = Decimal(str(allocation))

        self.stats = Counter({
            "buys_submitted": 0,
            "sells_submitted": 0,
            "skipped": 0,
            "failed": 0,
        })

    def _failed(self, symbol: str, side: OrderSide, step: str, error) -> ExecutionResult:
        self.stats["failed"] += 1
        logger.error(f"❌ {side.value.upper()} {symbol} abandoned at {step}: {error}")
        return ExecutionResult(ExecutionStatus.FAILED, symbol, side, reason=step, error=error)

    def _skipped(self, symbol: str, side: OrderSide, reason: str) -> ExecutionResult:
        self.stats["skipped"] += 1
        logger.info(f"⏭️ Skipping {side.value} of {symbol}: {reason}")
        return ExecutionResult(ExecutionStatus.SKIPPED, symbol, side, reason=reason)

    def buy_into(self, symbol: str) -> ExecutionResult:
        """
        Open a position in ``symbol``.

        Steps:
        1. budget = allocation * buying power
        2. abort if the last price exceeds the budget
        3. abort if a position is already open
        4. market buy floor(budget / price) shares
        """
        side = OrderSide.BUY

        account = self.brokerage.get_account()
        if not account.success:
            return self._failed(symbol, side, "account", account.error)

        price = self.brokerage.get_last_trade_price(symbol)
        if not price.success:
            return self._failed(symbol, side, "quote", price.error)

        budget, quantity = size_buy(account.value.buying_power, price.value, self.allocation)
        if quantity < 1:
            return self._skipped(
                symbol, side, f"not enough buying power (budget {budget} < price {price.value})"
            )

        instrument = self.brokerage.get_instrument(symbol)
        if not instrument.success:
            return self._failed(symbol, side, "instrument", instrument.error)

        position = self.brokerage.get_position(account.value.account_number, instrument.value)
        if not position.success:
            return self._failed(symbol, side, "position", position.error)

        if position.value.is_open:
            return self._skipped(symbol, side, f"already own {position.value.quantity}")

        order = Order(
            symbol=symbol,
            instrument_url=position.value.instrument_url,
            quantity=Decimal(quantity),
            side=side,
            price=price.value.quantize(CENT, rounding=ROUND_HALF_UP),
        )
        logger.info(f"💰 {order} (budget {budget})")

        submitted = self.brokerage.submit_order(account.value, order)
        if not submitted.success:
            return self._failed(symbol, side, "order", submitted.error)

        self.stats["buys_submitted"] += 1
        return ExecutionResult(ExecutionStatus.SUBMITTED, symbol, side, order=order)

    def sell_off(self, symbol: str) -> ExecutionResult:
        """
        Close the whole position in ``symbol``; no-op when nothing is held.
        """
        side = OrderSide.SELL

        account = self.brokerage.get_account()
        if not account.success:
            return self._failed(symbol, side, "account", account.error)

        instrument = self.brokerage.get_instrument(symbol)
        if not instrument.success:
            return self._failed(symbol, side, "instrument", instrument.error)

        position = self.brokerage.get_position(account.value.account_number, instrument.value)
        if not position.success:
            return self._failed(symbol, side, "position", position.error)

        # Fractional shares included; a leftover fraction would block the next buy
        quantity = position.value.quantity
        if quantity <= 0:
            return self._skipped(symbol, side, "no position held")

        order = Order(
            symbol=symbol,
            instrument_url=position.value.instrument_url,
            quantity=quantity,
            side=side,
        )
        logger.info(f"💸 {order}")

        submitted = self.brokerage.submit_order(account.value, order)
        if not submitted.success:
            return self._failed(symbol, side, "order", submitted.error)

        self.stats["sells_submitted"] += 1
        return ExecutionResult(ExecutionStatus.SUBMITTED, symbol, side, order=order)
