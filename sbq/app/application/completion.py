"""Completion with lock-expiry tolerance, shared by the session-less and session receivers."""
from __future__ import annotations

from typing import Any

from loguru import logger

from sbq.app.core import SERVICE_NAME
from sbq.app.domain.errors import ReceiveError
from sbq.app.ports.message_gateway import GatewayError, MessageLockLostError, QueueReceiver
from sbq.app.ports.received_message import ReceivedMessage


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).debug("")


async def complete_message(receiver: QueueReceiver, message: ReceivedMessage) -> bool:
    """Complete a message; returns False when its lock had already expired.

    An expired lock is not fatal: the message goes back to the queue and may be
    delivered again, to this receiver or another one.
    """
    try:
        await receiver.complete(message)
    except MessageLockLostError:
        _log("message_lock_expired", message_id=message.message_id)
        return False
    except GatewayError as exc:
        raise ReceiveError(f"Cannot complete message: {exc}") from exc
    return True
