"""
Event Consumer
Reads signal change events as a member of a consumer group and dispatches
them to the Trade Executor, one message at a time.

Acknowledgement policy (at-least-once):
- acknowledged: executed (order submitted or deliberately skipped), stale,
  malformed, or carrying an unknown signal value
- left pending: handling raised, or the executor failed on a provider error.
  Pending messages are re-read first whenever the consumer starts, so a
  restart redelivers them. The executor's live position checks make that
  redelivery safe.
- superseded: a pending message with a newer record for the same symbol in
  its partition is acknowledged without dispatch during recovery, so a replay
  never acts against a later signal.
"""

import time
from collections import Counter
from datetime import timedelta
from typing import Iterable, Optional

from redis.exceptions import RedisError

from .trade_executor import ExecutionResult, TradeExecutor
from ..data.models import Signal
from ..events.signal_events import SignalChangeEvent
from ..events.stream_bus import RedisStreamBus, StreamMessage
from ..utils.logger_setup import setup_logger
from ..utils.timezone_utils import utc_now

logger = setup_logger("signal_consumer")


class SignalConsumer:
    """
    Long-running, single-threaded consumer loop.

    Message N+1 is only read after message N's order submission (or no-op)
    has completed. Scaling out means more group members owning disjoint
    partitions; since events are keyed by symbol, one symbol is only ever
    traded by one member.
    """

    def __init__(self, bus: RedisStreamBus, executor: TradeExecutor, group: str,
                 consumer_name: str, partitions: Iterable[int],
                 max_age: timedelta = timedelta(hours=24), retry_delay: float = 5.0,
                 block_ms: int = 2000, batch_size: int = 10,
                 claim_idle_ms: Optional[int] = 300000,
                 clock=utc_now, sleep=time.sleep):
        """
        Args:
            bus: Partitioned stream transport
            executor: Trade executor receiving buy/sell dispatches
            group: Consumer group name, stable across deployments
            consumer_name: Member name, stable across restarts of this instance
            partitions: Partitions owned by this member
            max_age: Events older than this are discarded
            retry_delay: Fixed delay between subscribe attempts, in seconds
            block_ms: Broker poll block time
            batch_size: Maximum messages fetched per poll
            claim_idle_ms: At start, take over pending messages of other
                members idle this long; None disables it
            clock: Callable returning the current UTC time
            sleep: Sleep function (seconds)
        """
        self.bus = bus
        self.executor = executor
        self.group = group
        self.consumer_name = consumer_name
        self.partitions = list(partitions)
        self.max_age = max_age
        self.retry_delay = retry_delay
        self.block_ms = block_ms
        self.batch_size = batch_size
        self.claim_idle_ms = claim_idle_ms
        self.clock = clock
        self.sleep = sleep

        self._stop_requested = False

        self.stats = Counter({
            "messages_received": 0,
            "messages_acked": 0,
            "messages_stale": 0,
            "messages_malformed": 0,
            "messages_failed": 0,
            "messages_superseded": 0,
            "messages_claimed": 0,
            "buy_dispatched": 0,
            "sell_dispatched": 0,
        })

    def stop(self):
        """Ask the loop to exit after the message in flight."""
        self._stop_requested = True
        logger.info("Stop requested")

    @property
    def running(self) -> bool:
        return not self._stop_requested

    def subscribe(self) -> bool:
        """
        Join the consumer group on every owned partition.

        Retries forever with a fixed delay, so a missing broker or topic shows
        up as a waiting process instead of a crash.

        Returns:
            True once subscribed, False if stopped while retrying
        """
        attempt = 0
        while self.running:
            attempt += 1
            try:
                self.bus.ensure_group(self.group, self.partitions)
                logger.info(
                    f"✅ Subscribed to {self.bus.topic} partitions {self.partitions} "
                    f"as {self.group}/{self.consumer_name}"
                )
                return True
            except RedisError as e:
                logger.warning(
                    f"Subscribe attempt {attempt} failed: {e}. Retrying in {self.retry_delay}s"
                )
                self.sleep(self.retry_delay)
        return False

    def run(self, max_polls: Optional[int] = None):
        """
        Consume until stopped.

        Args:
            max_polls: Stop after this many broker polls (None = forever)

        Returns:
            Consumer statistics
        """
        if not self.subscribe():
            return dict(self.stats)

        self.claim_idle()
        self.recover_pending()

        polls = 0
        while self.running and (max_polls is None or polls < max_polls):
            polls += 1
            try:
                messages = self.bus.read_group(
                    self.group, self.consumer_name, self.partitions,
                    block_ms=self.block_ms, count=self.batch_size
                )
            except RedisError as e:
                logger.error(f"Broker read failed: {e}. Retrying in {self.retry_delay}s")
                self.sleep(self.retry_delay)
                continue

            for message in messages:
                if not self.running:
                    break
                self.handle_message(message)

        logger.info(f"Consumer stopped: {dict(self.stats)}")
        return dict(self.stats)

    def claim_idle(self) -> int:
        """
        Take over pending messages left idle by other group members.

        Members are named after their host by default, so a restarted
        container comes back as a new member; its predecessor's pending
        messages are only redelivered once claimed.

        Returns:
            Number of messages claimed
        """
        if not self.claim_idle_ms:
            return 0

        try:
            claimed = self.bus.claim_idle(
                self.group, self.consumer_name, self.partitions, self.claim_idle_ms
            )
        except RedisError as e:
            logger.error(f"Could not claim idle pending messages: {e}")
            return 0

        self.stats["messages_claimed"] += claimed
        return claimed

    def recover_pending(self):
        """
        Re-handle this member's unacknowledged messages, oldest first.

        Each pending entry is visited once per start; entries that fail again
        stay pending for the next start. An entry followed by a newer record
        for the same symbol is acknowledged without dispatch.
        """
        for partition in self.partitions:
            after_id = "0"
            while self.running:
                try:
                    messages = self.bus.read_group(
                        self.group, self.consumer_name, [partition],
                        pending=True, after_id=after_id, count=self.batch_size
                    )
                except RedisError as e:
                    logger.error(f"Could not read pending messages of partition {partition}: {e}")
                    break

                if not messages:
                    break

                logger.info(f"Redelivering {len(messages)} pending message(s) from partition {partition}")
                for message in messages:
                    if not self.running:
                        break
                    if message.key is not None and self._superseded(message):
                        continue
                    self.handle_message(message)
                after_id = messages[-1].message_id

    def _superseded(self, message: StreamMessage) -> bool:
        """
        True when the pending message must not be dispatched now: either a
        newer record for its symbol exists (it is acknowledged) or the check
        itself failed (it stays pending).
        """
        try:
            newer = self.bus.has_later_entry(message)
        except RedisError as e:
            logger.error(f"Could not check {message.message_id} for newer records, left pending: {e}")
            return True

        if not newer:
            return False

        self.stats["messages_superseded"] += 1
        logger.info(f"Pending {message.key} message {message.message_id} superseded by a newer signal, dropping")
        self._ack(message)
        return True

    def handle_message(self, message: StreamMessage) -> bool:
        """
        Process one message; never raises.

        Args:
            message: Record read from the broker

        Returns:
            True if the message was acknowledged
        """
        self.stats["messages_received"] += 1

        try:
            return self._handle(message)
        except Exception as e:
            self.stats["messages_failed"] += 1
            logger.error(
                f"❌ Handling {message.key} message {message.message_id} raised, left pending: {e}",
                exc_info=True
            )
            return False

    def _handle(self, message: StreamMessage) -> bool:
        if message.is_empty:
            return self._ack(message)

        try:
            event = SignalChangeEvent.from_record(message.key, message.value)
        except Exception as e:
            # Parse failures are permanent for this record
            return self._drop_malformed(message, e)

        logger.info(f"📨 Received: {event!r}")

        if event.age(self.clock()) > self.max_age:
            self.stats["messages_stale"] += 1
            logger.info(f"Signal has expired, ignoring: {event!r}")
            return self._ack(message)

        result = self.dispatch(event)
        if result is not None and result.failed:
            self.stats["messages_failed"] += 1
            logger.warning(f"{event!r} not executed, left pending for redelivery")
            return False

        return self._ack(message)

    def _drop_malformed(self, message: StreamMessage, error: Exception) -> bool:
        self.stats["messages_malformed"] += 1
        logger.warning(f"Dropping malformed message {message.message_id}: {error}")
        return self._ack(message)

    def dispatch(self, event: SignalChangeEvent) -> Optional[ExecutionResult]:
        """Route an event to the buy or sell path; other values are a no-op."""
        if event.signal == Signal.BUY:
            self.stats["buy_dispatched"] += 1
            return self.executor.buy_into(event.key)

        if event.signal == Signal.SELL:
            self.stats["sell_dispatched"] += 1
            return self.executor.sell_off(event.key)

        logger.warning(f"Unknown signal {event.raw_signal!r} for {event.key}, ignoring")
        return None

    def _ack(self, message: StreamMessage) -> bool:
        try:
            self.bus.ack(self.group, message)
        except RedisError as e:
            logger.error(f"Could not acknowledge {message.message_id}: {e}")
            return False
        self.stats["messages_acked"] += 1
        return True
