"""Abstract base class for event queue transports."""

from abc import ABC, abstractmethod


class EventTransport(ABC):
    """Source of raw event messages, consumed in delivery order."""

    @abstractmethod
    async def receive(self) -> str | None:
        """Wait for the next raw message.

        Returns:
            The message text, or None if nothing arrived within the
            transport's wait window.

        Raises:
            TransportError: If the connection to the queue was lost.
        """
        pass

    @abstractmethod
    async def reconnect(self) -> None:
        """Re-establish the connection after a TransportError."""
        pass

    @abstractmethod
    async def close(self) -> None:
        pass
