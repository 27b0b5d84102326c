"""Queue transports delivering raw event envelopes to the listener."""

from triage_agent.transport.base import EventTransport
from triage_agent.transport.redis_queue import RedisQueueTransport

__all__ = [
    "EventTransport",
    "RedisQueueTransport",
]
