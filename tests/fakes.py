"""Hand-written fakes implementing the gateway ports for unit tests."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from sbq.app.domain.models import OutgoingMessage


@dataclass
class FakeMessage:
    """Implements ReceivedMessage for tests."""

    body: bytes
    session_id: str | None = None
    message_id: str | None = None
    sequence_number: int | None = None


class FakeReceiver:
    """Implements QueueReceiver/SessionHandle for tests with scripted batches and completion failures."""

    def __init__(
        self,
        batches: Sequence[Sequence[FakeMessage]] = (),
        *,
        session_id: str | None = None,
        complete_errors: dict[str, Exception] | None = None,
        raise_on_receive: Exception | None = None,
        raise_on_peek: Exception | None = None,
    ) -> None:
        self._batches = [list(batch) for batch in batches]
        self._session_id = session_id
        self._complete_errors = complete_errors or {}
        self._raise_on_receive = raise_on_receive
        self._raise_on_peek = raise_on_peek
        self.receive_calls: list[tuple[int, float | None]] = []
        self.peek_calls: list[tuple[int, int | None]] = []
        self.completed: list[FakeMessage] = []
        self.close_calls = 0

    @property
    def session_id(self) -> str:
        assert self._session_id is not None
        return self._session_id

    async def receive(self, max_count: int, *, wait_seconds: float | None) -> list[FakeMessage]:
        self.receive_calls.append((max_count, wait_seconds))
        if self._raise_on_receive is not None:
            raise self._raise_on_receive
        if not self._batches:
            return []
        return self._batches.pop(0)[:max_count]

    async def complete(self, message: FakeMessage) -> None:
        error = self._complete_errors.get(message.message_id or "")
        if error is not None:
            raise error
        self.completed.append(message)

    async def peek(self, max_count: int, *, from_sequence: int | None = None) -> list[FakeMessage]:
        self.peek_calls.append((max_count, from_sequence))
        if self._raise_on_peek is not None:
            raise self._raise_on_peek
        if not self._batches:
            return []
        return self._batches.pop(0)[:max_count]

    async def close(self) -> None:
        self.close_calls += 1


class FakeSender:
    """Implements QueueSender for tests; fails on the given send index when asked to."""

    def __init__(self, *, fail_at: int | None = None, error: Exception | None = None) -> None:
        self.sent: list[OutgoingMessage] = []
        self.close_calls = 0
        self._fail_at = fail_at
        self._error = error

    async def send(self, message: OutgoingMessage) -> None:
        if self._fail_at is not None and len(self.sent) == self._fail_at:
            assert self._error is not None
            raise self._error
        self.sent.append(message)

    async def close(self) -> None:
        self.close_calls += 1


class FakeGateway:
    """Implements MessageGateway for tests.

    accept_outcomes is consumed one entry per accept_session() call: an exception is
    raised, anything else is returned as the session handle.
    """

    def __init__(
        self,
        *,
        sender: FakeSender | None = None,
        receivers: Sequence[FakeReceiver] = (),
        accept_outcomes: Sequence[object] = (),
        raise_on_open: Exception | None = None,
    ) -> None:
        self.sender = sender or FakeSender()
        self._receivers = list(receivers)
        self._accept_outcomes = list(accept_outcomes)
        self._raise_on_open = raise_on_open
        self.accept_calls: list[tuple[str, str | None]] = []
        self.opened_receivers: list[FakeReceiver] = []

    async def connect(self) -> None:
        return

    async def open_sender(self, queue_name: str) -> FakeSender:
        if self._raise_on_open is not None:
            raise self._raise_on_open
        return self.sender

    async def open_receiver(self, queue_name: str) -> FakeReceiver:
        if self._raise_on_open is not None:
            raise self._raise_on_open
        receiver = self._receivers.pop(0) if self._receivers else FakeReceiver()
        self.opened_receivers.append(receiver)
        return receiver

    async def accept_session(self, queue_name: str, session_id: str | None) -> FakeReceiver:
        self.accept_calls.append((queue_name, session_id))
        outcome = self._accept_outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        assert isinstance(outcome, FakeReceiver)
        return outcome

    async def close(self) -> None:
        return
