"""
Signal change publisher.
Turns a persisted transition into a keyed record on the equity_signals topic.
"""

from collections import Counter
from datetime import datetime
from typing import Optional

from redis.exceptions import RedisError

from .signal_events import SignalChangeEvent
from .stream_bus import RedisStreamBus
from ..core.exceptions import BrokerConnectionError
from ..core.result import Result
from ..data.models import Signal
from ..utils.logger_setup import setup_logger
from ..utils.timezone_utils import utc_now

logger = setup_logger("signal_publisher")


class SignalEventPublisher:
    """
    Publishes SignalChangeEvents keyed by symbol.

    Delivery is at-least-once from the broker onwards; a failed publish is
    not retried here and is reported to the caller as a failed Result.
    """

    def __init__(self, bus: RedisStreamBus):
        self.bus = bus
        self.stats = Counter({
            "events_published": 0,
            "events_failed": 0,
        })

    def publish(self, symbol: str, signal: Signal, emitted_at: Optional[datetime] = None) -> Result[str]:
        """
        Publish one signal change.

        Args:
            symbol: Ticker symbol, uppercased for the record key
            signal: New signal
            emitted_at: Event time, defaults to now

        Returns:
            Result with the broker message ID, or a BrokerConnectionError
        """
        event = SignalChangeEvent(
            symbol=symbol.upper(),
            signal=signal,
            emitted_at=emitted_at or utc_now(),
        )

        try:
            message_id = self.bus.publish(event.key, event.to_record())
        except RedisError as e:
            self.stats["events_failed"] += 1
            return Result.fail(BrokerConnectionError(f"Publish of {event!r} failed: {e}"))

        self.stats["events_published"] += 1
        logger.info(f"📤 {event.key} -> {event.to_record()} ({message_id})")
        return Result.ok(message_id)
