"""CLI composition root: build and lifecycle-manage concrete dependencies.

Composition may: import concrete classes, call factories, store interface types,
manage high-level lifecycle. Services get plain values from settings through their
constructors; nothing reads settings after this point.
"""
from __future__ import annotations

import sys
from typing import Any, TextIO

from loguru import logger

from sbq.app.application.message_printer import MessagePrinter
from sbq.app.application.peek_service import PeekService
from sbq.app.application.plain_receiver import PlainReceiver
from sbq.app.application.receive_orchestrator import ReceiveOrchestrator
from sbq.app.application.sender import SendService
from sbq.app.application.session_acquirer import SessionAcquirer
from sbq.app.application.session_receiver import SessionReceiver
from sbq.app.config.settings import Settings
from sbq.app.core import SERVICE_NAME
from sbq.app.domain.errors import ConfigurationError, GatewayConnectError
from sbq.app.domain.models import OutputOptions
from sbq.app.infrastructure.messaging.factory import create_message_gateway
from sbq.app.ports.message_gateway import GatewayError, MessageGateway


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).debug("")


class CliDependencies:
    """Holds wired CLI dependencies and their lifecycle."""

    def __init__(
        self,
        *,
        settings: Settings,
        gateway: MessageGateway,
        output: TextIO,
    ) -> None:
        self._settings = settings
        self._gateway = gateway
        self._printer = MessagePrinter(
            output,
            OutputOptions(
                prefix_session_id=settings.prefix_session_id,
                prefix_message_id=settings.prefix_message_id,
            ),
        )
        self._connected = False

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def gateway(self) -> MessageGateway:
        return self._gateway

    @property
    def printer(self) -> MessagePrinter:
        return self._printer

    def send_service(self) -> SendService:
        return SendService(
            self._gateway,
            self._settings.queue_name,
            correlation_id=self._settings.correlation_id,
        )

    def session_acquirer(self) -> SessionAcquirer:
        return SessionAcquirer(self._gateway, self._settings.queue_name)

    def receive_orchestrator(self) -> ReceiveOrchestrator:
        return ReceiveOrchestrator(
            PlainReceiver(
                self._gateway,
                self._settings.queue_name,
                self._printer,
                wait_seconds=self._settings.receive_wait_seconds,
            ),
            self.session_acquirer(),
            SessionReceiver(
                self._printer,
                batch_limit=self._settings.receive_batch_limit,
                idle_seconds=self._settings.session_idle_seconds,
            ),
        )

    def peek_service(self) -> PeekService:
        return PeekService(
            self._gateway,
            self._settings.queue_name,
            self._printer,
            self.session_acquirer(),
        )

    async def connect(self) -> None:
        try:
            await self._gateway.connect()
        except GatewayError as exc:
            raise GatewayConnectError(f"Cannot connect to servicebus: {exc}") from exc
        self._connected = True

    async def close(self) -> None:
        if not self._connected:
            return
        _log("gateway_closing")
        try:
            await self._gateway.close()
        except GatewayError as exc:
            logger.warning("gateway close failed: {}", exc)
        self._connected = False


def create_cli_dependencies(settings: Settings, *, output: TextIO | None = None) -> CliDependencies:
    if not settings.connection_string:
        raise ConfigurationError("connection string is required")
    if not settings.queue_name:
        raise ConfigurationError("queue name is required")
    try:
        gateway = create_message_gateway(settings)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
    return CliDependencies(settings=settings, gateway=gateway, output=output or sys.stdout)
