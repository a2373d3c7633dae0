"""Application-level constants shared across modules."""
from __future__ import annotations


class COMMAND:
    SEND = "send"
    RECEIVE = "receive"
    PEEK = "peek"


ALL_COMMANDS = (COMMAND.SEND, COMMAND.RECEIVE, COMMAND.PEEK)

DEFAULT_BATCH_LIMIT = 100
# Largest batch the service hands out in one receive call.
MAX_BATCH_LIMIT = 5000
DEFAULT_SESSION_IDLE_SECONDS = 5.0
DEFAULT_PEEK_WAIT_SECONDS = 5.0

EXIT_FATAL = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130
