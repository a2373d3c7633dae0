"""Peek: browse messages without locking or removing them."""
from __future__ import annotations

from typing import Any

from loguru import logger

from sbq.app.application.message_printer import MessagePrinter
from sbq.app.application.session_acquirer import SessionAcquirer
from sbq.app.core import SERVICE_NAME
from sbq.app.domain.errors import PeekError
from sbq.app.domain.models import NoSession, ReceiveCount, SessionMode
from sbq.app.ports.message_gateway import GatewayError, MessageGateway, QueueReceiver


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).debug("")


class PeekService:
    """
    Prints up to count messages, one peek at a time, each starting after the last
    sequence number seen. Stops early when a peek comes back empty.

    Session-enabled queues can only be browsed through an accepted session, so a
    session mode goes through the acquirer first.
    """

    def __init__(
        self,
        gateway: MessageGateway,
        queue_name: str,
        printer: MessagePrinter,
        session_acquirer: SessionAcquirer,
    ) -> None:
        self._gateway = gateway
        self._queue_name = queue_name
        self._printer = printer
        self._session_acquirer = session_acquirer

    async def _open(self, mode: SessionMode) -> QueueReceiver:
        if isinstance(mode, NoSession):
            _log("receiver_opening", queue=self._queue_name)
            try:
                return await self._gateway.open_receiver(self._queue_name)
            except GatewayError as exc:
                raise PeekError(f"Cannot create receiver: {exc}") from exc
        return await self._session_acquirer.acquire(mode)

    async def peek(self, mode: SessionMode, count: ReceiveCount) -> int:
        if count.satisfied(0):
            return 0
        receiver = await self._open(mode)
        peeked = 0
        next_sequence: int | None = None
        try:
            while not count.satisfied(peeked):
                try:
                    messages = await receiver.peek(1, from_sequence=next_sequence)
                except GatewayError as exc:
                    raise PeekError(f"Cannot peek message: {exc}") from exc
                if not messages:
                    _log("peek_end_of_queue", peeked=peeked)
                    break
                for message in messages:
                    self._printer.print(message)
                    peeked += 1
                    if message.sequence_number is not None:
                        next_sequence = message.sequence_number + 1
            return peeked
        finally:
            _log("receiver_closing")
            try:
                await receiver.close()
            except GatewayError as exc:
                logger.warning("receiver close failed: {}", exc)
