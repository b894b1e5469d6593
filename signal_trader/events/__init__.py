"""
Signal change events and their transport.
"""

from .signal_events import SignalChangeEvent, MalformedEventError
from .stream_bus import RedisStreamBus, StreamMessage
from .signal_publisher import SignalEventPublisher

__all__ = [
    'SignalChangeEvent',
    'MalformedEventError',
    'RedisStreamBus',
    'StreamMessage',
    'SignalEventPublisher',
]
