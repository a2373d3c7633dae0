from __future__ import annotations

import argparse
import asyncio
import sys
from typing import BinaryIO, NoReturn, Sequence, TextIO

from loguru import logger
from pydantic import ValidationError

from sbq import BUILD_DATE, __version__
from sbq.app.composition import CliDependencies, create_cli_dependencies
from sbq.app.config.settings import Settings
from sbq.app.constants import ALL_COMMANDS, COMMAND, EXIT_FATAL, EXIT_INTERRUPTED, EXIT_USAGE
from sbq.app.core import SERVICE_NAME
from sbq.app.core.logging import configure_logging
from sbq.app.domain.errors import ConfigurationError, SbqError
from sbq.app.domain.models import ReceiveCount, resolve_session_mode

PROG = SERVICE_NAME

USAGE = """Usage: {prog} <command> <options>

Commands:
  send    - Sends messages to a queue. Reads standard input and sends each line as one message,
            all of them in the same session when -s is given.
  receive - Receives and completes messages, writing them to standard output, one per line.
  peek    - Peeks one or more messages without removing them, writing them to standard output.
  -v      - Prints version info.
  -h      - Shows this help.

Common options:
  -c   Connection string (default: $SBQ_CONNECTION_STRING)
  -q   Queue name (default: $SBQ_QUEUE_NAME)
       Without -c or -q the SBQ_* environment variables are used, then a .env file
       in the current directory. If neither supplies a value the command fails.
  -d   (flag) Log debug info to standard error
  -h   (flag) Show this help
  -n   Number of received or peeked messages. Defaults to one; a negative number means no limit.
  -s   Session ID.
       If the queue is not session-enabled, do not set this option.
       If the queue is session-enabled, it must be given.
       An empty string for receive or peek takes messages from any available session.

Receive and peek options:
  -ps  (flag, also -p) Prefix every message with its session id, separated with ':'.
  -pm  (flag) Prefix every message with its message id, separated with ':'.

Send options:
  -i   Correlation ID for sent messages
"""


class UsageError(Exception):
    """Raised for malformed command-line arguments."""


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def usage(stream: TextIO) -> None:
    stream.write(USAGE.format(prog=PROG))


def build_parser(command: str) -> argparse.ArgumentParser:
    parser = _Parser(prog=f"{PROG} {command}", add_help=False)
    parser.add_argument("-c", dest="connection_string")
    parser.add_argument("-q", dest="queue_name")
    # None means "not given", which is different from an explicit empty string.
    parser.add_argument("-s", dest="session_id", default=None)
    parser.add_argument("-n", dest="count", type=int, default=1)
    parser.add_argument("-d", dest="debug", action="store_true")
    parser.add_argument("-h", dest="help", action="store_true")
    if command in (COMMAND.RECEIVE, COMMAND.PEEK):
        parser.add_argument("-ps", "-p", dest="prefix_session_id", action="store_true")
        parser.add_argument("-pm", dest="prefix_message_id", action="store_true")
    if command == COMMAND.SEND:
        parser.add_argument("-i", dest="correlation_id")
    return parser


def _alias(field_name: str) -> str:
    alias = Settings.model_fields[field_name].validation_alias
    return alias if isinstance(alias, str) else field_name


def build_settings(args: argparse.Namespace) -> Settings:
    """Flags given on the command line override environment and .env values.

    Overrides are keyed by the environment alias so they replace, rather than sit
    beside, whatever the environment source supplied for the same field.
    """
    overrides: dict[str, object] = {}
    for name in ("connection_string", "queue_name", "correlation_id"):
        value = getattr(args, name, None)
        if value is not None:
            overrides[_alias(name)] = value
    for flag in ("debug", "prefix_session_id", "prefix_message_id"):
        if getattr(args, flag, False):
            overrides[_alias(flag)] = True
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc


async def run_command(
    command: str,
    deps: CliDependencies,
    args: argparse.Namespace,
    stdin: BinaryIO | None = None,
) -> int:
    await deps.connect()
    try:
        if command == COMMAND.SEND:
            mode = resolve_session_mode(args.session_id, allow_any=False)
            source = stdin if stdin is not None else sys.stdin.buffer
            return await deps.send_service().send_lines(source, mode)

        mode = resolve_session_mode(args.session_id, allow_any=True)
        count = ReceiveCount.from_flag(args.count)
        if command == COMMAND.RECEIVE:
            return await deps.receive_orchestrator().run(mode, count)
        return await deps.peek_service().peek(mode, count)
    finally:
        await deps.close()


def run(
    argv: Sequence[str],
    *,
    stdin: BinaryIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    """Run one invocation and return its exit code."""
    out = stdout if stdout is not None else sys.stdout
    if not argv:
        usage(out)
        return EXIT_USAGE

    command = argv[0]
    if command == "-h":
        usage(out)
        return 0
    if command == "-v":
        out.write(f"{PROG} {__version__} (built {BUILD_DATE})\n")
        return 0
    if command not in ALL_COMMANDS:
        usage(out)
        return EXIT_USAGE

    try:
        args = build_parser(command).parse_args(list(argv[1:]))
    except UsageError as exc:
        sys.stderr.write(f"{PROG} {command}: {exc}\n")
        usage(out)
        return EXIT_USAGE
    if args.help:
        usage(out)
        return 0

    configure_logging(args.debug)
    try:
        settings = build_settings(args)
        if settings.debug and not args.debug:
            configure_logging(True)
        deps = create_cli_dependencies(settings, output=out)
        asyncio.run(run_command(command, deps, args, stdin))
    except SbqError as exc:
        logger.error("{}", exc)
        return EXIT_FATAL
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    return 0


def main() -> None:
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
