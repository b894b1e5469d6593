"""
Partitioned Redis Streams transport.

A topic is split into N streams named ``<topic>:<partition>``. The record key
picks the partition (crc32 of the key modulo N), so every record for a key
lands on one stream and is read back in append order. Consumer groups track
delivery per stream; a record stays in the group's pending list until it is
acknowledged.

Usage:
    bus = RedisStreamBus.from_url("redis://localhost:6379/0", "equity_signals", 4)
    bus.publish("AAPL", {"signal": "buy", "at": "..."})
    bus.ensure_group("trade-executor", [0, 1])
    for message in bus.read_group("trade-executor", "host-1", [0, 1]):
        ...
        bus.ack("trade-executor", message)
"""

import json
import zlib
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import redis
from redis.exceptions import ResponseError

from ..utils.logger_setup import setup_logger

logger = setup_logger("stream_bus")

KEY_FIELD = "key"
VALUE_FIELD = "value"


@dataclass(frozen=True)
class StreamMessage:
    """One record read from a partition stream"""
    stream: str
    message_id: str
    key: Optional[str]
    value: Optional[str]

    @property
    def is_empty(self) -> bool:
        # Pending entries whose record was trimmed come back without fields
        return self.key is None and self.value is None


class RedisStreamBus:
    """Keyed, partitioned publish/subscribe over Redis Streams"""

    def __init__(self, client: redis.Redis, topic: str, partitions: int = 4,
                 maxlen: Optional[int] = 100000):
        """
        Args:
            client: redis-py client created with decode_responses=True
            topic: Topic name, used as the stream name prefix
            partitions: Number of partition streams
            maxlen: Approximate cap per stream, None to keep everything
        """
        if partitions < 1:
            raise ValueError("partitions must be at least 1")

        self.client = client
        self.topic = topic
        self.partitions = partitions
        self.maxlen = maxlen

    @classmethod
    def from_url(cls, url: str, topic: str, partitions: int = 4, **kwargs) -> "RedisStreamBus":
        client = redis.Redis.from_url(url, decode_responses=True)
        return cls(client, topic, partitions, **kwargs)

    def partition_for(self, key: str) -> int:
        """Stable partition of a record key."""
        return zlib.crc32(key.encode("utf-8")) % self.partitions

    def stream_name(self, partition: int) -> str:
        return f"{self.topic}:{partition}"

    def publish(self, key: str, value: Dict[str, Any]) -> str:
        """
        Append a keyed record (XADD).

        Args:
            key: Record key, selects the partition
            value: JSON-serializable record

        Returns:
            Stream message ID
        """
        stream = self.stream_name(self.partition_for(key))
        fields = {KEY_FIELD: key, VALUE_FIELD: json.dumps(value, separators=(",", ":"))}

        if self.maxlen:
            message_id = self.client.xadd(stream, fields, maxlen=self.maxlen, approximate=True)
        else:
            message_id = self.client.xadd(stream, fields)

        logger.debug(f"XADD {stream} {key} -> {message_id}")
        return message_id

    def ensure_group(self, group: str, partitions: Iterable[int], start_id: str = "0"):
        """
        Create the consumer group on each partition stream if missing.

        ``start_id='0'`` lets a brand new group read records published before
        it existed; stale ones are filtered by the consumer.
        """
        for partition in partitions:
            stream = self.stream_name(partition)
            try:
                self.client.xgroup_create(stream, group, id=start_id, mkstream=True)
                logger.info(f"Created consumer group {group} on {stream}")
            except ResponseError as e:
                if "BUSYGROUP" not in str(e):
                    raise

    def read_group(self, group: str, consumer: str, partitions: Iterable[int],
                   pending: bool = False, after_id: str = "0",
                   block_ms: Optional[int] = 2000, count: int = 10) -> List[StreamMessage]:
        """
        Read records for this consumer (XREADGROUP).

        Args:
            group: Consumer group name
            consumer: Consumer name within the group
            partitions: Partitions to read
            pending: Re-read this consumer's unacknowledged records instead
                of new ones
            after_id: With ``pending``, only records after this ID
            block_ms: Block time for new records, None to return at once
            count: Maximum records per stream

        Returns:
            Messages in stream order, grouped by partition
        """
        start_id = after_id if pending else ">"
        streams = {self.stream_name(p): start_id for p in partitions}

        response = self.client.xreadgroup(
            group,
            consumer,
            streams=streams,
            count=count,
            block=None if pending else block_ms
        )

        messages = []
        for stream, entries in response or []:
            for message_id, fields in entries:
                fields = fields or {}
                messages.append(StreamMessage(
                    stream=stream,
                    message_id=message_id,
                    key=fields.get(KEY_FIELD),
                    value=fields.get(VALUE_FIELD),
                ))
        return messages

    def has_later_entry(self, message: StreamMessage, page_size: int = 100) -> bool:
        """
        Whether the message's stream holds a newer record with the same key.

        Scans forward from the message with XRANGE (exclusive start).
        """
        start = f"({message.message_id}"
        while True:
            entries = self.client.xrange(message.stream, min=start, max="+", count=page_size)
            for message_id, fields in entries:
                if (fields or {}).get(KEY_FIELD) == message.key:
                    return True
            if len(entries) < page_size:
                return False
            start = f"({entries[-1][0]}"

    def claim_idle(self, group: str, consumer: str, partitions: Iterable[int],
                   min_idle_ms: int, count: int = 100) -> int:
        """
        Move pending records idle for ``min_idle_ms`` to ``consumer`` (XAUTOCLAIM).

        Picks up work left behind by members that are gone, e.g. a container
        restarted under a new host name.

        Returns:
            Number of records claimed
        """
        claimed = 0
        for partition in partitions:
            stream = self.stream_name(partition)
            start_id = "0-0"
            while True:
                response = self.client.xautoclaim(
                    stream, group, consumer, min_idle_ms, start_id=start_id, count=count
                )
                next_id, entries = response[0], response[1]
                claimed += len(entries)
                if not next_id or next_id == "0-0":
                    break
                start_id = next_id
        if claimed:
            logger.info(f"Claimed {claimed} idle pending record(s) for {consumer}")
        return claimed

    def ack(self, group: str, message: StreamMessage) -> int:
        """Mark a record processed (XACK)."""
        return self.client.xack(message.stream, group, message.message_id)

    def pending_count(self, group: str, partition: int) -> int:
        info = self.client.xpending(self.stream_name(partition), group)
        return int(info.get("pending", 0)) if info else 0

    def close(self):
        self.client.close()
