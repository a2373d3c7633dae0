"""Port: abstraction for a message handed out by the gateway. Implementations live in infrastructure."""
from __future__ import annotations

from typing import Protocol


class ReceivedMessage(Protocol):
    """Transport-agnostic received (or peeked) message. Application uses this; gateway adapters implement it."""

    @property
    def body(self) -> bytes: ...

    @property
    def session_id(self) -> str | None: ...

    @property
    def message_id(self) -> str | None: ...

    @property
    def sequence_number(self) -> int | None: ...
