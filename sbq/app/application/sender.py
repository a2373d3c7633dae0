"""Sender: one message per input line, strictly in input order."""
from __future__ import annotations

from typing import Any, BinaryIO, Iterator

from loguru import logger

from sbq.app.core import SERVICE_NAME
from sbq.app.domain.errors import InputReadError, SendError
from sbq.app.domain.models import NamedSession, OutgoingMessage, SessionMode
from sbq.app.ports.message_gateway import GatewayError, MessageGateway


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).debug("")


def _strip_line_ending(raw: bytes) -> bytes:
    if raw.endswith(b"\n"):
        raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
    return raw


class SendService:
    """
    Sends each input record as one message and waits for the acknowledgment before the next.

    Nothing is skipped: any read or send failure aborts the run. Messages already sent stay sent.
    """

    def __init__(
        self,
        gateway: MessageGateway,
        queue_name: str,
        *,
        correlation_id: str | None = None,
    ) -> None:
        self._gateway = gateway
        self._queue_name = queue_name
        self._correlation_id = correlation_id or None

    def build_message(self, record: bytes, mode: SessionMode) -> OutgoingMessage:
        session_id = mode.session_id if isinstance(mode, NamedSession) else None
        return OutgoingMessage(body=record, session_id=session_id, correlation_id=self._correlation_id)

    def _records(self, stream: BinaryIO) -> Iterator[bytes]:
        try:
            for raw in stream:
                yield _strip_line_ending(raw)
        except (OSError, ValueError) as exc:
            raise InputReadError(f"Cannot read standard input: {exc}") from exc

    async def send_lines(self, stream: BinaryIO, mode: SessionMode) -> int:
        _log("sender_opening", queue=self._queue_name)
        try:
            sender = await self._gateway.open_sender(self._queue_name)
        except GatewayError as exc:
            raise SendError(f"Cannot create sender: {exc}") from exc

        sent = 0
        try:
            for record in self._records(stream):
                _log("message_sending", index=sent)
                try:
                    await sender.send(self.build_message(record, mode))
                except GatewayError as exc:
                    raise SendError(f"Cannot send message: {exc}") from exc
                sent += 1
        finally:
            _log("sender_closing", sent=sent)
            try:
                await sender.close()
            except GatewayError as exc:
                logger.warning("sender close failed: {}", exc)
        return sent
