"""Adapter: wrap azure.servicebus.ServiceBusReceivedMessage to implement ports.ReceivedMessage."""
from __future__ import annotations

from azure.servicebus import ServiceBusReceivedMessage


def _body_bytes(message: ServiceBusReceivedMessage) -> bytes:
    body = message.body
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode("utf-8")
    # Data bodies come back as an iterable of byte sections.
    return b"".join(bytes(section) for section in body)


class ServiceBusMessageAdapter:
    """Implements sbq.app.ports.received_message.ReceivedMessage for azure-servicebus."""

    def __init__(self, message: ServiceBusReceivedMessage) -> None:
        self._message = message
        self._body = _body_bytes(message)

    @property
    def raw(self) -> ServiceBusReceivedMessage:
        return self._message

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def session_id(self) -> str | None:
        return self._message.session_id

    @property
    def message_id(self) -> str | None:
        return self._message.message_id

    @property
    def sequence_number(self) -> int | None:
        return self._message.sequence_number
