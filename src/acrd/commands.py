"""Client command handlers.

One parsed command line becomes exactly one daemon RPC; the result is
rendered by the formatter selected with `-f`. Commands with the wrong
number of arguments silently do nothing.
"""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Optional, Tuple

import click

from .client import DaemonClient
from .errors import InputUnreadableError
from .formatters import DEFAULT_FORMAT, Formatter, get_formatter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Command:
    """One client invocation: verb, its positional arguments and output options."""

    verb: str
    args: Tuple[str, ...] = ()
    output_format: str = DEFAULT_FORMAT
    input_path: Optional[str] = None

    @classmethod
    def from_argv(
        cls,
        argv: Tuple[str, ...],
        output_format: str = DEFAULT_FORMAT,
        input_path: Optional[str] = None,
    ) -> "Command":
        verb = argv[0] if argv else ""
        return cls(verb, tuple(argv[1:]), output_format, input_path or None)


def absolute_path(filename: str) -> str:
    """Relative paths are joined with the current working directory."""
    if filename and not os.path.isabs(filename):
        return os.path.normpath(os.path.join(os.getcwd(), filename))
    return filename


def parse_cursor(value: str) -> int:
    """Byte offset argument; anything non-numeric counts as 0."""
    try:
        return int(value)
    except ValueError:
        return 0


def read_source(input_path: Optional[str], stdin: Optional[BinaryIO] = None) -> bytes:
    """Source text for autocomplete from `-in` or standard input.

    Raises:
        InputUnreadableError: If the source cannot be read at all
    """
    try:
        if input_path:
            return Path(input_path).read_bytes()
        stream = stdin if stdin is not None else sys.stdin.buffer
        return stream.read()
    except OSError as e:
        raise InputUnreadableError(f"cannot read autocomplete input: {e}") from e


def cmd_autocomplete(
    client: DaemonClient,
    command: Command,
    formatter: Formatter,
    stdin: Optional[BinaryIO] = None,
) -> None:
    source = read_source(command.input_path, stdin)

    filename = ""
    cursor = -1
    if len(command.args) == 1:
        cursor = parse_cursor(command.args[0])
    elif len(command.args) == 2:
        filename = command.args[0]
        cursor = parse_cursor(command.args[1])

    filename = absolute_path(filename)

    candidates = client.auto_complete(source, filename, cursor)
    if candidates is None or len(candidates) == 0:
        formatter.write_empty()
        return

    formatter.write_candidates(
        candidates.names, candidates.types, candidates.classes, candidates.replace_count
    )


def cmd_smap(client: DaemonClient, command: Command, formatter: Formatter) -> None:
    if len(command.args) != 1:
        return

    filename = absolute_path(command.args[0])
    formatter.write_decl_map(client.smap(filename))


def cmd_rename(client: DaemonClient, command: Command, formatter: Formatter) -> None:
    if len(command.args) != 2:
        return

    filename = absolute_path(command.args[0])
    cursor = parse_cursor(command.args[1])
    renames, err = client.rename(filename, cursor)
    formatter.write_rename(renames, err)


def cmd_status(client: DaemonClient, command: Command, formatter: Formatter) -> None:
    click.echo(client.status())


def cmd_close(client: DaemonClient, command: Command, formatter: Formatter) -> None:
    client.close()


def cmd_drop_cache(client: DaemonClient, command: Command, formatter: Formatter) -> None:
    client.drop_cache()


def cmd_set(client: DaemonClient, command: Command, formatter: Formatter) -> None:
    if len(command.args) > 2:
        return

    key, value = (tuple(command.args) + ("", ""))[:2]
    click.echo(client.set(key, value), nl=False)


HANDLERS: Dict[str, Callable[[DaemonClient, Command, Formatter], None]] = {
    "autocomplete": cmd_autocomplete,
    "close": cmd_close,
    "status": cmd_status,
    "drop-cache": cmd_drop_cache,
    "set": cmd_set,
    "smap": cmd_smap,
    "rename": cmd_rename,
}


def dispatch(client: DaemonClient, command: Command) -> None:
    """Run the handler for `command.verb`; unknown verbs do nothing."""
    handler = HANDLERS.get(command.verb)
    if handler is None:
        logger.debug(f"Ignoring unknown command {command.verb!r}")
        return

    formatter = get_formatter(command.output_format)
    handler(client, command, formatter)
