from __future__ import annotations

from typing import TextIO

from sbq.app.domain.models import OutputOptions
from sbq.app.ports.received_message import ReceivedMessage


class MessagePrinter:
    """Writes one line per message: optional `sessionId:` and `messageId:` prefixes, then the body."""

    def __init__(self, stream: TextIO, options: OutputOptions) -> None:
        self._stream = stream
        self._options = options

    def format_line(self, message: ReceivedMessage) -> str:
        parts: list[str] = []
        if self._options.prefix_session_id and message.session_id is not None:
            parts.append(message.session_id + ":")
        if self._options.prefix_message_id and message.message_id is not None:
            parts.append(message.message_id + ":")
        parts.append(message.body.decode("utf-8", errors="replace"))
        return "".join(parts)

    def print(self, message: ReceivedMessage) -> None:
        self._stream.write(self.format_line(message) + "\n")
        self._stream.flush()
