from __future__ import annotations

import io

import pytest
from loguru import logger

from sbq.app.application.message_printer import MessagePrinter
from sbq.app.domain.models import OutputOptions
from tests.in_memory_gateway import InMemoryGateway


@pytest.fixture(autouse=True)
def _reset_logging():
    """Tests that run the CLI point loguru at a captured stream; drop it afterwards."""
    yield
    logger.remove()


@pytest.fixture()
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture()
def printer(output: io.StringIO) -> MessagePrinter:
    return MessagePrinter(output, OutputOptions())


@pytest.fixture()
def memory_gateway() -> InMemoryGateway:
    return InMemoryGateway()
