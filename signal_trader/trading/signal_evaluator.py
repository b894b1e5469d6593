"""
Signal Evaluator
Applies the MACD crossover rule per symbol, persists transitions and emits
one event per persisted change.
"""

from collections import Counter
from typing import Dict, Iterable, Optional, Tuple

from ..api.alpha_vantage_client import AlphaVantageClient
from ..api.models import IndicatorReading
from ..core.exceptions import PersistenceError
from ..data import EquityStoreInterface
from ..data.models import Signal
from ..events.signal_publisher import SignalEventPublisher
from ..utils.logger_setup import setup_logger
from ..utils.timezone_utils import utc_now

logger = setup_logger("signal_evaluator")

CHANGED = "changed"
UNCHANGED = "unchanged"
FAILED = "failed"


def decide_signal(reading: IndicatorReading) -> Signal:
    """Buy while the MACD line is above its signal line, sell otherwise."""
    return Signal.BUY if reading.fast_value > reading.baseline_value else Signal.SELL


class SignalEvaluator:
    """
    Evaluates symbols one at a time.

    Idempotence: when the indicator maps to the stored signal nothing is
    written and nothing is published. A newly seen symbol starts as sell, so
    a first evaluation that lands on sell emits no event.
    """

    def __init__(self, store: EquityStoreInterface, indicator_client: AlphaVantageClient,
                 publisher: SignalEventPublisher, clock=utc_now):
        """
        Args:
            store: Equity state store
            indicator_client: Source of MACD readings
            publisher: Publisher for signal change events
            clock: Callable returning the current UTC time
        """
        self.store = store
        self.indicator_client = indicator_client
        self.publisher = publisher
        self.clock = clock

        self.stats = Counter({
            "symbols_evaluated": 0,
            "signals_changed": 0,
            "events_published": 0,
            "publish_failures": 0,
            "evaluation_failures": 0,
        })

    def evaluate(self, symbol: str) -> Optional[Signal]:
        """
        Evaluate one symbol.

        Never raises: every failure is logged and confined to this symbol.

        Args:
            symbol: Ticker symbol (case-insensitive)

        Returns:
            The new signal when a transition was persisted, else None
        """
        _, signal = self._evaluate(symbol.strip().upper())
        return signal

    def _evaluate(self, symbol: str) -> Tuple[str, Optional[Signal]]:
        self.stats["symbols_evaluated"] += 1

        try:
            equity = self.store.get_or_create(symbol)

            reading = self.indicator_client.get_macd(symbol)
            if not reading.success:
                logger.warning(f"⚠️ {symbol}: no indicator reading, skipped ({reading.error})")
                self.stats["evaluation_failures"] += 1
                return FAILED, None

            target = decide_signal(reading.value)
            if target == equity.signal:
                logger.info(f"{symbol}: still {target.value}")
                return UNCHANGED, None

            if not self.store.update_signal(symbol, expected=equity.signal, new=target):
                # Another sweep moved the row first; it owns the event
                return UNCHANGED, None

        except PersistenceError as e:
            logger.error(f"❌ {symbol}: persistence failed, no event emitted: {e}")
            self.stats["evaluation_failures"] += 1
            return FAILED, None
        except Exception as e:
            logger.error(f"❌ {symbol}: evaluation failed: {e}", exc_info=True)
            self.stats["evaluation_failures"] += 1
            return FAILED, None

        self.stats["signals_changed"] += 1
        logger.info(f"🔔 {symbol}: {equity.signal.value} -> {target.value}")

        published = self.publisher.publish(symbol, target, self.clock())
        if published.success:
            self.stats["events_published"] += 1
        else:
            # Stored state is ahead of the event stream until the next change
            self.stats["publish_failures"] += 1
            logger.error(f"❌ {symbol}: signal stored but event lost: {published.error}")

        return CHANGED, target

    def evaluate_all(self, symbols: Iterable[str]) -> Dict[str, int]:
        """
        Sequential sweep over the symbol list.

        Args:
            symbols: Symbols to evaluate

        Returns:
            Summary with evaluated / changed / unchanged / failed counts
        """
        summary = Counter({"evaluated": 0, CHANGED: 0, UNCHANGED: 0, FAILED: 0})

        for raw_symbol in symbols:
            symbol = raw_symbol.strip().upper()
            if not symbol:
                continue
            outcome, _ = self._evaluate(symbol)
            summary["evaluated"] += 1
            summary[outcome] += 1

        logger.info(
            f"Sweep finished: {summary['evaluated']} evaluated, {summary[CHANGED]} changed, "
            f"{summary[UNCHANGED]} unchanged, {summary[FAILED]} failed"
        )
        return dict(summary)
