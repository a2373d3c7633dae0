"""Fatal error taxonomy.

Every error here terminates the command: `main` logs it with an `ERROR:`
prefix and exits non-zero. Transient conditions the application recovers from
are defined on the gateway port instead.
"""
from __future__ import annotations


class SbqError(Exception):
    """Base for fatal command failures."""


class ConfigurationError(SbqError):
    """Raised for missing or malformed connection settings."""


class GatewayConnectError(SbqError):
    """Raised when the gateway client cannot be created."""


class InputReadError(SbqError):
    """Raised when standard input cannot be read."""


class SendError(SbqError):
    """Raised when a sender cannot be opened or a message cannot be sent."""


class ReceiveError(SbqError):
    """Raised when receiving or completing a message fails."""


class SessionAcquireError(SbqError):
    """Raised when a session cannot be accepted for a non-transient reason."""


class PeekError(SbqError):
    """Raised when peeking fails."""
