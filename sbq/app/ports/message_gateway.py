"""Message gateway port: contract for opening senders, receivers and sessions on a queue.

Application code depends on this port; infrastructure (azure-servicebus, in-memory)
implements it. Adapters translate transport exceptions into the errors below so the
application can tell the two recoverable conditions apart from everything else.
"""
from __future__ import annotations

from typing import Protocol, Sequence

from sbq.app.domain.models import OutgoingMessage
from sbq.app.ports.received_message import ReceivedMessage


class GatewayError(Exception):
    """Base for gateway failures (connection, link, operation)."""


class SessionUnavailableError(GatewayError):
    """Raised when no session could be accepted before the service-side timeout."""


class MessageLockLostError(GatewayError):
    """Raised when a message is settled after its lock has expired."""


class QueueSender(Protocol):
    async def send(self, message: OutgoingMessage) -> None:
        """Send one message and wait for the service to acknowledge it."""
        ...

    async def close(self) -> None: ...


class QueueReceiver(Protocol):
    async def receive(self, max_count: int, *, wait_seconds: float | None) -> Sequence[ReceivedMessage]:
        """Receive up to max_count messages in peek-lock mode.

        wait_seconds bounds the wait for the first message; None waits until one arrives.
        An empty result means nothing arrived in time.
        """
        ...

    async def complete(self, message: ReceivedMessage) -> None:
        """Settle a received message; raise MessageLockLostError if its lock expired."""
        ...

    async def peek(self, max_count: int, *, from_sequence: int | None = None) -> Sequence[ReceivedMessage]:
        """Browse messages without locking them, starting at from_sequence when given."""
        ...

    async def close(self) -> None: ...


class SessionHandle(QueueReceiver, Protocol):
    """Receiver bound to one accepted session."""

    @property
    def session_id(self) -> str: ...


class MessageGateway(Protocol):
    """Port: queue operations. Implementations live in infrastructure."""

    async def connect(self) -> None: ...

    async def open_sender(self, queue_name: str) -> QueueSender: ...

    async def open_receiver(self, queue_name: str) -> QueueReceiver: ...

    async def accept_session(self, queue_name: str, session_id: str | None) -> SessionHandle:
        """Accept the named session, or the next available one when session_id is None.

        Raises SessionUnavailableError when nothing could be accepted in time.
        """
        ...

    async def close(self) -> None:
        """Release the connection. No-op allowed if nothing to close."""
        ...
