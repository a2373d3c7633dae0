"""Session acquirer: resolve a session mode into an accepted session."""
from __future__ import annotations

from typing import Any

from loguru import logger

from sbq.app.core import SERVICE_NAME
from sbq.app.domain.errors import SessionAcquireError
from sbq.app.domain.models import AnySession, NamedSession, SessionMode, describe_session_mode
from sbq.app.ports.message_gateway import (
    GatewayError,
    MessageGateway,
    SessionHandle,
    SessionUnavailableError,
)


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).debug("")


class SessionAcquirer:
    """
    Accepts the named session, or the next available one.

    The service has no blocking "wait for a session" call: accepting gives up after a
    service-side timeout when nothing is available. That timeout is retried without
    limit; its own duration paces the loop. Every other failure is fatal.
    The caller must close the returned handle exactly once.
    """

    def __init__(self, gateway: MessageGateway, queue_name: str) -> None:
        self._gateway = gateway
        self._queue_name = queue_name

    async def acquire(self, mode: SessionMode) -> SessionHandle:
        if isinstance(mode, NamedSession):
            session_id: str | None = mode.session_id
        elif isinstance(mode, AnySession):
            session_id = None
        else:
            raise ValueError(f"session acquisition needs a session mode, got {mode!r}")

        attempt = 0
        while True:
            attempt += 1
            _log("session_opening", session=describe_session_mode(mode), attempt=attempt)
            try:
                handle = await self._gateway.accept_session(self._queue_name, session_id)
            except SessionUnavailableError:
                _log("session_unavailable_retrying", attempt=attempt)
                continue
            except GatewayError as exc:
                raise SessionAcquireError(f"Cannot open session: {exc}") from exc
            _log("session_opened", session=handle.session_id, attempt=attempt)
            return handle
