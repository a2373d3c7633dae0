"""Message gateway factory: selects implementation from config. Only place that imports concrete gateways."""
from __future__ import annotations

from sbq.app.config.settings import Settings
from sbq.app.infrastructure.messaging.servicebus.servicebus_gateway import ServiceBusGateway
from sbq.app.ports.message_gateway import MessageGateway


def create_message_gateway(settings: Settings) -> MessageGateway:
    backend = settings.gateway_backend.strip().lower()

    if backend == "servicebus":
        return ServiceBusGateway(settings.connection_string, peek_timeout=settings.peek_wait_seconds)

    raise ValueError(f"Unsupported gateway backend: {backend}")
