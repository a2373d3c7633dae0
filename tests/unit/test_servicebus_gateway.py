"""Unit tests for the azure-servicebus adapter with the SDK client replaced by fakes."""
from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest
from azure.servicebus import NEXT_AVAILABLE_SESSION
from azure.servicebus.exceptions import (
    MessageLockLostError as ServiceBusMessageLockLostError,
    OperationTimeoutError,
    ServiceBusError,
    SessionLockLostError,
)

import sbq.app.infrastructure.messaging.servicebus.servicebus_gateway as mod
from sbq.app.domain.models import OutgoingMessage
from sbq.app.infrastructure.messaging.servicebus.constants import GatewayState
from sbq.app.infrastructure.messaging.servicebus.servicebus_gateway import ServiceBusGateway, is_session_timeout
from sbq.app.infrastructure.messaging.servicebus.servicebus_message_adapter import ServiceBusMessageAdapter
from sbq.app.ports.message_gateway import GatewayError, MessageLockLostError, SessionUnavailableError


def _raw_message(body: Any, *, session_id: str | None = "s1", message_id: str = "m1", sequence_number: int = 4):
    return SimpleNamespace(body=body, session_id=session_id, message_id=message_id, sequence_number=sequence_number)


class _FakeSdkReceiver:
    def __init__(self, *, session_id: str | None = None, open_error: Exception | None = None) -> None:
        self.session = SimpleNamespace(session_id=session_id) if session_id is not None else None
        self._open_error = open_error
        self.messages: list[Any] = []
        self.complete_error: Exception | None = None
        self.receive_kwargs: dict[str, Any] = {}
        self.peek_kwargs: dict[str, Any] = {}
        self.completed: list[Any] = []
        self.opened = False
        self.closed = False

    async def __aenter__(self):
        if self._open_error is not None:
            raise self._open_error
        self.opened = True
        return self

    async def receive_messages(self, **kwargs: Any):
        self.receive_kwargs = kwargs
        return list(self.messages)

    async def peek_messages(self, **kwargs: Any):
        self.peek_kwargs = kwargs
        return list(self.messages)

    async def complete_message(self, message: Any) -> None:
        if self.complete_error is not None:
            raise self.complete_error
        self.completed.append(message)

    async def close(self) -> None:
        self.closed = True


class _FakeSdkSender:
    def __init__(self) -> None:
        self.sent: list[Any] = []
        self.closed = False

    async def send_messages(self, message: Any) -> None:
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True


class _FakeSdkClient:
    def __init__(self, receiver: _FakeSdkReceiver | None = None) -> None:
        self.receiver = receiver or _FakeSdkReceiver()
        self.sender = _FakeSdkSender()
        self.receiver_calls: list[tuple[str, dict[str, Any]]] = []
        self.closed = False

    def get_queue_sender(self, queue_name: str) -> _FakeSdkSender:
        return self.sender

    def get_queue_receiver(self, queue_name: str, **kwargs: Any) -> _FakeSdkReceiver:
        self.receiver_calls.append((queue_name, kwargs))
        return self.receiver

    async def close(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_client(monkeypatch) -> _FakeSdkClient:
    client = _FakeSdkClient()
    monkeypatch.setattr(mod.ServiceBusClient, "from_connection_string", lambda conn_str: client)
    return client


@pytest.mark.asyncio
async def test_connect_and_close_transition_state(fake_client):
    gateway = ServiceBusGateway("Endpoint=sb://x/;SharedAccessKeyName=k;SharedAccessKey=v")
    assert gateway.state == GatewayState.DISCONNECTED

    await gateway.connect()
    assert gateway.state == GatewayState.CONNECTED

    await gateway.close()
    assert gateway.state == GatewayState.CLOSED
    assert fake_client.closed is True


@pytest.mark.asyncio
async def test_malformed_connection_string_raises_gateway_error(monkeypatch):
    def _reject(conn_str: str):
        raise ValueError("Connection string is either blank or malformed.")

    monkeypatch.setattr(mod.ServiceBusClient, "from_connection_string", _reject)
    gateway = ServiceBusGateway("nonsense")

    with pytest.raises(GatewayError, match="malformed"):
        await gateway.connect()
    assert gateway.state == GatewayState.DISCONNECTED


@pytest.mark.asyncio
async def test_operations_require_connect():
    with pytest.raises(GatewayError, match="not connected"):
        await ServiceBusGateway("x").open_receiver("q")


@pytest.mark.asyncio
async def test_sender_builds_service_bus_message(fake_client):
    gateway = ServiceBusGateway("x")
    await gateway.connect()
    sender = await gateway.open_sender("q")

    await sender.send(OutgoingMessage(body=b"hello", session_id="s1", correlation_id="c1"))
    await sender.close()

    [sent] = fake_client.sender.sent
    assert sent.session_id == "s1"
    assert sent.correlation_id == "c1"
    assert fake_client.sender.closed is True


@pytest.mark.asyncio
async def test_accept_next_available_session(fake_client):
    fake_client.receiver = _FakeSdkReceiver(session_id="picked")
    gateway = ServiceBusGateway("x")
    await gateway.connect()

    handle = await gateway.accept_session("q", None)

    assert handle.session_id == "picked"
    assert fake_client.receiver.opened is True
    assert fake_client.receiver_calls == [("q", {"session_id": NEXT_AVAILABLE_SESSION})]


@pytest.mark.asyncio
async def test_accept_named_session_passes_id(fake_client):
    fake_client.receiver = _FakeSdkReceiver(session_id="s1")
    gateway = ServiceBusGateway("x")
    await gateway.connect()

    await gateway.accept_session("q", "s1")

    assert fake_client.receiver_calls == [("q", {"session_id": "s1"})]
    assert fake_client.receiver.opened is True
    assert fake_client.receiver.closed is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        OperationTimeoutError(message="no session available"),
        ServiceBusError("link attach failed: com.microsoft:timeout"),
    ],
)
async def test_session_timeout_maps_to_unavailable(fake_client, error):
    fake_client.receiver = _FakeSdkReceiver(open_error=error)
    gateway = ServiceBusGateway("x")
    await gateway.connect()

    with pytest.raises(SessionUnavailableError):
        await gateway.accept_session("q", None)
    assert fake_client.receiver.closed is True


@pytest.mark.asyncio
async def test_other_accept_failure_maps_to_gateway_error(fake_client):
    fake_client.receiver = _FakeSdkReceiver(open_error=ServiceBusError("unauthorized"))
    gateway = ServiceBusGateway("x")
    await gateway.connect()

    with pytest.raises(GatewayError) as excinfo:
        await gateway.accept_session("q", "s1")
    assert not isinstance(excinfo.value, SessionUnavailableError)


def test_is_session_timeout():
    assert is_session_timeout(OperationTimeoutError(message="x")) is True
    assert is_session_timeout(ServiceBusError("amqp:com.microsoft:timeout")) is True
    assert is_session_timeout(ServiceBusError("amqp:unauthorized-access")) is False


@pytest.mark.asyncio
async def test_receive_wraps_messages_and_passes_wait(fake_client):
    fake_client.receiver.messages = [_raw_message([b"hel", b"lo"])]
    gateway = ServiceBusGateway("x")
    await gateway.connect()
    receiver = await gateway.open_receiver("q")

    [message] = await receiver.receive(10, wait_seconds=2.5)

    assert message.body == b"hello"
    assert (message.session_id, message.message_id, message.sequence_number) == ("s1", "m1", 4)
    assert fake_client.receiver.receive_kwargs == {"max_message_count": 10, "max_wait_time": 2.5}


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [ServiceBusMessageLockLostError(), SessionLockLostError()])
async def test_complete_lock_lost_maps_to_port_error(fake_client, error):
    raw = _raw_message(b"x")
    fake_client.receiver.messages = [raw]
    fake_client.receiver.complete_error = error
    gateway = ServiceBusGateway("x")
    await gateway.connect()
    receiver = await gateway.open_receiver("q")
    [message] = await receiver.receive(1, wait_seconds=None)

    with pytest.raises(MessageLockLostError):
        await receiver.complete(message)


@pytest.mark.asyncio
async def test_complete_passes_raw_message(fake_client):
    raw = _raw_message(b"x")
    fake_client.receiver.messages = [raw]
    gateway = ServiceBusGateway("x")
    await gateway.connect()
    receiver = await gateway.open_receiver("q")
    [message] = await receiver.receive(1, wait_seconds=None)

    await receiver.complete(message)

    assert fake_client.receiver.completed == [raw]


@pytest.mark.asyncio
async def test_peek_passes_sequence_and_timeout(fake_client):
    fake_client.receiver.messages = [_raw_message(b"p")]
    gateway = ServiceBusGateway("x", peek_timeout=3.0)
    await gateway.connect()
    receiver = await gateway.open_receiver("q")

    await receiver.peek(1, from_sequence=12)
    assert fake_client.receiver.peek_kwargs == {"max_message_count": 1, "sequence_number": 12, "timeout": 3.0}

    await receiver.peek(1)
    assert fake_client.receiver.peek_kwargs["sequence_number"] == 0


def test_message_adapter_accepts_plain_bytes_and_str_bodies():
    assert ServiceBusMessageAdapter(_raw_message(b"raw")).body == b"raw"  # type: ignore[arg-type]
    assert ServiceBusMessageAdapter(_raw_message("text")).body == b"text"  # type: ignore[arg-type]
