"""Domain models."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class NoSession:
    """Queue is not session-enabled; receive from the queue head."""


@dataclass(frozen=True)
class AnySession:
    """Session-enabled queue; accept whichever session becomes available."""


@dataclass(frozen=True)
class NamedSession:
    """Session-enabled queue; accept exactly this session.

    The empty string is a valid identifier here, it just cannot be requested
    from the command line because `-s ""` means "any session" there.
    """

    session_id: str


SessionMode = Union[NoSession, AnySession, NamedSession]


def resolve_session_mode(raw: str | None, *, allow_any: bool = True) -> SessionMode:
    """Map the raw `-s` value to a session mode.

    None means the flag was not given. An explicit empty string selects any
    available session where that makes sense (receive, peek); for sending it
    means no session at all.
    """
    if raw is None:
        return NoSession()
    if raw == "":
        return AnySession() if allow_any else NoSession()
    return NamedSession(raw)


def describe_session_mode(mode: SessionMode) -> str:
    if isinstance(mode, NamedSession):
        return mode.session_id
    if isinstance(mode, AnySession):
        return "<next available>"
    return "<none>"


@dataclass(frozen=True)
class ReceiveCount:
    """Requested number of messages; a limit of None means unbounded."""

    limit: int | None = 1

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise ValueError("receive count limit must be non-negative or None")

    @staticmethod
    def from_flag(value: int) -> "ReceiveCount":
        """Negative flag values request an unbounded run."""
        return ReceiveCount(None if value < 0 else value)

    @property
    def unbounded(self) -> bool:
        return self.limit is None

    def satisfied(self, done: int) -> bool:
        return self.limit is not None and done >= self.limit

    def remaining(self, done: int) -> int | None:
        if self.limit is None:
            return None
        return max(self.limit - done, 0)


@dataclass(frozen=True)
class OutgoingMessage:
    """Message built from one input record."""

    body: bytes
    session_id: str | None = None
    correlation_id: str | None = None


@dataclass(frozen=True)
class OutputOptions:
    """Which identifiers to print in front of each message body."""

    prefix_session_id: bool = False
    prefix_message_id: bool = False
