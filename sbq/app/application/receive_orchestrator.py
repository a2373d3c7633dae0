"""
Receive orchestrator: picks session-less or session-aware receive once per invocation.

States:
  Start -> ModeSelect -> PlainPoll -> Done
  Start -> ModeSelect -> AcquireSession -> Drain -> Closed
There is no way back to ModeSelect within one run.

A session run is one acquisition plus one drain. When the session runs dry before the
requested count is met, the run ends there; no second session is accepted to make up
the difference.
"""
from __future__ import annotations

from typing import Any

from loguru import logger

from sbq.app.application.plain_receiver import PlainReceiver
from sbq.app.application.session_acquirer import SessionAcquirer
from sbq.app.application.session_receiver import SessionReceiver
from sbq.app.core import SERVICE_NAME
from sbq.app.domain.models import NoSession, ReceiveCount, SessionMode
from sbq.app.ports.message_gateway import GatewayError


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).debug("")


class ReceiveOrchestrator:
    def __init__(
        self,
        plain_receiver: PlainReceiver,
        session_acquirer: SessionAcquirer,
        session_receiver: SessionReceiver,
    ) -> None:
        self._plain_receiver = plain_receiver
        self._session_acquirer = session_acquirer
        self._session_receiver = session_receiver

    async def run(self, mode: SessionMode, count: ReceiveCount) -> int:
        """Receive according to mode; returns the number of messages printed."""
        if isinstance(mode, NoSession):
            return await self._poll_plain(count)
        return await self._receive_session(mode, count)

    async def _poll_plain(self, count: ReceiveCount) -> int:
        received = 0
        while not count.satisfied(received):
            if not await self._plain_receiver.receive_one():
                _log("queue_empty", received=received)
                break
            received += 1
        return received

    async def _receive_session(self, mode: SessionMode, count: ReceiveCount) -> int:
        if count.satisfied(0):
            return 0
        handle = await self._session_acquirer.acquire(mode)
        try:
            received = (await self._session_receiver.drain(handle, count)).received
            if not count.satisfied(received):
                _log("session_exhausted_early", session=handle.session_id, received=received, requested=count.limit)
            return received
        finally:
            _log("session_closing", session=handle.session_id)
            try:
                await handle.close()
            except GatewayError as exc:
                logger.warning("session close failed: {}", exc)
