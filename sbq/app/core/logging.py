"""Log sink setup.

All diagnostics go to stderr so stdout carries nothing but message bodies. Modules
log through `logger.bind(service_name=..., event=..., **fields)`; the sink renders
the bound fields after the message as key=value pairs.
"""
from __future__ import annotations

import sys
from typing import Any, TextIO

from loguru import logger

_HIDDEN_EXTRAS = frozenset({"service_name"})


def _format(record: Any) -> str:
    fields = " ".join(
        f"{key}={{extra[{key}]}}" for key in record["extra"] if key not in _HIDDEN_EXTRAS and key != "event"
    )
    head = "{time:YYYY/MM/DD HH:mm:ss} {level}: {message}"
    # Structured events carry their payload in extras and log an empty message.
    if not record["message"] and "event" in record["extra"]:
        head += "{extra[event]}"
    if fields:
        head += " " + fields
    return head + "\n{exception}"


def configure_logging(debug: bool, *, sink: TextIO | None = None) -> int:
    """Replace loguru's default handler with a single stderr sink; returns the handler id."""
    logger.remove()
    return logger.add(
        sink if sink is not None else sys.stderr,
        level="DEBUG" if debug else "WARNING",
        format=_format,
        backtrace=False,
        diagnose=False,
    )
