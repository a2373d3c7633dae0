"""Session-less receiver: one message from the queue head per call."""
from __future__ import annotations

from typing import Any

from loguru import logger

from sbq.app.application.completion import complete_message
from sbq.app.application.message_printer import MessagePrinter
from sbq.app.core import SERVICE_NAME
from sbq.app.domain.errors import ReceiveError
from sbq.app.ports.message_gateway import GatewayError, MessageGateway


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).debug("")


class PlainReceiver:
    """
    Opens a receiver on the plain queue, takes one message, prints and completes it.

    wait_seconds bounds the wait for a message; None waits until one arrives, so
    a False result only happens with a finite wait.
    """

    def __init__(
        self,
        gateway: MessageGateway,
        queue_name: str,
        printer: MessagePrinter,
        *,
        wait_seconds: float | None = None,
    ) -> None:
        self._gateway = gateway
        self._queue_name = queue_name
        self._printer = printer
        self._wait_seconds = wait_seconds

    async def receive_one(self) -> bool:
        _log("receiver_opening", queue=self._queue_name)
        try:
            receiver = await self._gateway.open_receiver(self._queue_name)
        except GatewayError as exc:
            raise ReceiveError(f"Cannot create receiver: {exc}") from exc

        try:
            _log("receive_calling", max_count=1)
            try:
                messages = await receiver.receive(1, wait_seconds=self._wait_seconds)
            except GatewayError as exc:
                raise ReceiveError(f"Cannot receive message: {exc}") from exc
            _log("receive_returned", count=len(messages))

            if not messages:
                return False
            message = messages[0]
            self._printer.print(message)
            await complete_message(receiver, message)
            return True
        finally:
            _log("receiver_closing")
            try:
                await receiver.close()
            except GatewayError as exc:
                logger.warning("receiver close failed: {}", exc)
