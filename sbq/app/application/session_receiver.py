"""Session receiver: drain a bounded or unbounded run of messages from one accepted session."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from sbq.app.application.completion import complete_message
from sbq.app.application.message_printer import MessagePrinter
from sbq.app.constants import DEFAULT_BATCH_LIMIT, DEFAULT_SESSION_IDLE_SECONDS
from sbq.app.core import SERVICE_NAME
from sbq.app.domain.errors import ReceiveError
from sbq.app.domain.models import ReceiveCount
from sbq.app.ports.message_gateway import GatewayError, SessionHandle


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).debug("")


@dataclass(frozen=True)
class DrainResult:
    received: int

    @property
    def obtained(self) -> bool:
        return self.received > 0


class SessionReceiver:
    """
    Pulls batches from an accepted session until the count is met or the session runs dry.

    Batch size is min(batch_limit, remaining) for a bounded count and batch_limit otherwise.
    A batch that comes back empty after idle_seconds means the session has nothing more.
    Every printed message counts toward the requested count, including one whose lock
    expired before completion; such a message is skipped, not retried, and may show up
    again in a later run.
    The handle is not closed here; whoever acquired it owns that.
    """

    def __init__(
        self,
        printer: MessagePrinter,
        *,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
        idle_seconds: float = DEFAULT_SESSION_IDLE_SECONDS,
    ) -> None:
        if batch_limit < 1:
            raise ValueError("batch_limit must be at least 1")
        self._printer = printer
        self._batch_limit = batch_limit
        self._idle_seconds = idle_seconds

    def _batch_size(self, count: ReceiveCount, done: int) -> int:
        remaining = count.remaining(done)
        if remaining is None:
            return self._batch_limit
        return min(self._batch_limit, remaining)

    async def drain(self, handle: SessionHandle, count: ReceiveCount) -> DrainResult:
        done = 0
        while not count.satisfied(done):
            batch_size = self._batch_size(count, done)
            _log("receive_calling", session=handle.session_id, max_count=batch_size)
            try:
                messages = await handle.receive(batch_size, wait_seconds=self._idle_seconds)
            except GatewayError as exc:
                raise ReceiveError(f"Cannot receive messages: {exc}") from exc
            _log("receive_returned", session=handle.session_id, count=len(messages))

            if not messages:
                _log("session_drained", session=handle.session_id, received=done)
                break

            for message in messages:
                self._printer.print(message)
                await complete_message(handle, message)
                done += 1

        return DrainResult(received=done)
