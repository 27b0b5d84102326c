"""Redis list transport.

Producers ``RPUSH`` JSON envelopes onto a list; the listener pops them with
``BLPOP`` so delivery order is FIFO and each message is consumed once.
"""

import structlog
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from triage_agent.exceptions import TransportError
from triage_agent.transport.base import EventTransport

log = structlog.get_logger(__name__)


class RedisQueueTransport(EventTransport):
    """Pops envelopes from a Redis list."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6380,
        password: str | None = None,
        db: int = 0,
        queue: str = "triage:events",
        receive_timeout: float = 5.0,
        client: Redis | None = None,
    ):
        """Initialize transport.

        Args:
            host: Redis host
            port: Redis port
            password: Optional Redis password
            db: Database index
            queue: List key holding the envelopes
            receive_timeout: Seconds BLPOP waits before reporting no message
            client: Pre-built client, used by tests
        """
        self.host = host
        self.port = port
        self.password = password
        self.db = db
        self.queue = queue
        self.receive_timeout = receive_timeout
        self._client = client

    def _connect(self) -> Redis:
        client = Redis(
            host=self.host,
            port=self.port,
            password=self.password,
            db=self.db,
            decode_responses=True,
            socket_connect_timeout=5,
            health_check_interval=30,
        )
        log.info("redis_connected", host=self.host, port=self.port, queue=self.queue)
        return client

    @property
    def client(self) -> Redis:
        if self._client is None:
            self._client = self._connect()
        return self._client

    async def receive(self) -> str | None:
        try:
            item = await self.client.blpop([self.queue], timeout=self.receive_timeout)
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise TransportError(f"Redis queue {self.queue} unavailable: {e}") from e

        if item is None:
            return None

        _key, message = item
        return message

    async def reconnect(self) -> None:
        log.info("redis_reconnecting", host=self.host, port=self.port)
        await self.close()
        self._client = self._connect()

    async def close(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None
