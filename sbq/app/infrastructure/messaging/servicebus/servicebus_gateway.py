"""
Service Bus gateway: client lifecycle plus sender, receiver and session adapters.

Lifecycle:
  DISCONNECTED -> connect() -> CONNECTED -> close() -> CLOSING -> CLOSED.

Senders and plain receivers open their AMQP links lazily on first use. Session
receivers open eagerly in accept_session(), because accepting the session is the
operation that can time out when no session is available.

Error translation:
  - OperationTimeoutError, or any error carrying the com.microsoft:timeout condition,
    raised while accepting a session -> SessionUnavailableError
  - MessageLockLostError / SessionLockLostError raised while completing -> MessageLockLostError
  - any other AzureError (and ValueError from connection-string parsing) -> GatewayError
"""
from __future__ import annotations

from typing import Any, Sequence

from azure.core.exceptions import AzureError
from azure.servicebus import NEXT_AVAILABLE_SESSION, ServiceBusMessage
from azure.servicebus.aio import ServiceBusClient, ServiceBusReceiver, ServiceBusSender
from azure.servicebus.exceptions import MessageLockLostError as ServiceBusMessageLockLostError
from azure.servicebus.exceptions import OperationTimeoutError, SessionLockLostError
from loguru import logger

from sbq.app.core import SERVICE_NAME
from sbq.app.domain.models import OutgoingMessage
from sbq.app.infrastructure.messaging.servicebus.constants import SESSION_TIMEOUT_MARKER, GatewayState
from sbq.app.infrastructure.messaging.servicebus.servicebus_message_adapter import ServiceBusMessageAdapter
from sbq.app.ports.message_gateway import GatewayError, MessageLockLostError, SessionUnavailableError
from sbq.app.ports.received_message import ReceivedMessage


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).debug("")


def is_session_timeout(exc: BaseException) -> bool:
    if isinstance(exc, OperationTimeoutError):
        return True
    return SESSION_TIMEOUT_MARKER in str(exc)


async def _open_session_link(receiver: ServiceBusReceiver) -> None:
    """Open a session receiver's link now instead of on first receive.

    The SDK exposes no public open(); entering the receiver's async context is what
    attaches the link, and attaching it is the broker call that locks the session
    (or times out when none is free). The matching close() is left to the caller.
    """
    await receiver.__aenter__()


class ServiceBusSenderAdapter:
    """Implements QueueSender over an azure ServiceBusSender."""

    def __init__(self, sender: ServiceBusSender) -> None:
        self._sender = sender

    async def send(self, message: OutgoingMessage) -> None:
        outgoing = ServiceBusMessage(
            message.body,
            session_id=message.session_id,
            correlation_id=message.correlation_id,
        )
        try:
            await self._sender.send_messages(outgoing)
        except AzureError as exc:
            raise GatewayError(str(exc)) from exc

    async def close(self) -> None:
        try:
            await self._sender.close()
        except AzureError as exc:
            raise GatewayError(str(exc)) from exc


class ServiceBusReceiverAdapter:
    """Implements QueueReceiver (and SessionHandle, when session-bound) over an azure ServiceBusReceiver."""

    def __init__(self, receiver: ServiceBusReceiver, *, peek_timeout: float | None = None) -> None:
        self._receiver = receiver
        self._peek_timeout = peek_timeout

    @property
    def session_id(self) -> str:
        session = self._receiver.session
        if session is None:
            raise RuntimeError("receiver is not bound to a session")
        return session.session_id

    async def receive(self, max_count: int, *, wait_seconds: float | None) -> Sequence[ReceivedMessage]:
        try:
            messages = await self._receiver.receive_messages(
                max_message_count=max_count,
                max_wait_time=wait_seconds,
            )
        except AzureError as exc:
            raise GatewayError(str(exc)) from exc
        return [ServiceBusMessageAdapter(message) for message in messages]

    async def complete(self, message: ReceivedMessage) -> None:
        if not isinstance(message, ServiceBusMessageAdapter):
            raise TypeError("can only complete messages received through this gateway")
        try:
            await self._receiver.complete_message(message.raw)
        except (ServiceBusMessageLockLostError, SessionLockLostError) as exc:
            raise MessageLockLostError(str(exc)) from exc
        except AzureError as exc:
            raise GatewayError(str(exc)) from exc

    async def peek(self, max_count: int, *, from_sequence: int | None = None) -> Sequence[ReceivedMessage]:
        try:
            # sequence_number=0 continues from the receiver's own browse cursor.
            messages = await self._receiver.peek_messages(
                max_message_count=max_count,
                sequence_number=from_sequence or 0,
                timeout=self._peek_timeout,
            )
        except AzureError as exc:
            raise GatewayError(str(exc)) from exc
        return [ServiceBusMessageAdapter(message) for message in messages]

    async def close(self) -> None:
        try:
            await self._receiver.close()
        except AzureError as exc:
            raise GatewayError(str(exc)) from exc


class ServiceBusGateway:
    """MessageGateway implementation over the azure-servicebus asyncio client."""

    def __init__(self, connection_string: str, *, peek_timeout: float | None = None) -> None:
        self._connection_string = connection_string
        self._peek_timeout = peek_timeout
        self._client: ServiceBusClient | None = None
        self._state = GatewayState.DISCONNECTED

    @property
    def state(self) -> GatewayState:
        return self._state

    def _require_client(self) -> ServiceBusClient:
        if self._client is None:
            raise GatewayError("gateway not connected")
        return self._client

    async def connect(self) -> None:
        _log("servicebus_connecting")
        try:
            self._client = ServiceBusClient.from_connection_string(self._connection_string)
        except (ValueError, AzureError) as exc:
            self._state = GatewayState.DISCONNECTED
            raise GatewayError(str(exc)) from exc
        self._state = GatewayState.CONNECTED
        _log("servicebus_connected")

    async def open_sender(self, queue_name: str) -> ServiceBusSenderAdapter:
        client = self._require_client()
        try:
            sender = client.get_queue_sender(queue_name)
        except (ValueError, AzureError) as exc:
            raise GatewayError(str(exc)) from exc
        return ServiceBusSenderAdapter(sender)

    async def open_receiver(self, queue_name: str) -> ServiceBusReceiverAdapter:
        client = self._require_client()
        try:
            receiver = client.get_queue_receiver(queue_name)
        except (ValueError, AzureError) as exc:
            raise GatewayError(str(exc)) from exc
        return ServiceBusReceiverAdapter(receiver, peek_timeout=self._peek_timeout)

    async def accept_session(self, queue_name: str, session_id: str | None) -> ServiceBusReceiverAdapter:
        client = self._require_client()
        target = NEXT_AVAILABLE_SESSION if session_id is None else session_id
        try:
            receiver = client.get_queue_receiver(queue_name, session_id=target)
        except (ValueError, AzureError) as exc:
            raise GatewayError(str(exc)) from exc

        try:
            await _open_session_link(receiver)
        except AzureError as exc:
            try:
                await receiver.close()
            except AzureError as close_exc:
                logger.warning("session receiver close failed: {}", close_exc)
            if is_session_timeout(exc):
                raise SessionUnavailableError(str(exc)) from exc
            raise GatewayError(str(exc)) from exc
        return ServiceBusReceiverAdapter(receiver, peek_timeout=self._peek_timeout)

    async def close(self) -> None:
        if self._client is None:
            self._state = GatewayState.CLOSED
            return
        self._state = GatewayState.CLOSING
        _log("servicebus_closing")
        try:
            await self._client.close()
        except AzureError as exc:
            logger.warning("servicebus client close failed: {}", exc)
        self._client = None
        self._state = GatewayState.CLOSED
