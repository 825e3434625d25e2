"""Command line entry point for acrd - runs as daemon (-s) or as client."""

import logging

import click
from rich.console import Console
from rich.markup import escape

from . import __version__
from .client import daemon_connection
from .commands import Command, dispatch
from .daemon.server import LOG_FORMAT, start_daemon
from .errors import DaemonUnavailableError
from .formatters import DEFAULT_FORMAT

logger = logging.getLogger(__name__)

# stdout belongs to the formatter; diagnostics go to stderr
console = Console(stderr=True)


@click.command(
    context_settings={
        "help_option_names": ["-h", "--help"],
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
    }
)
@click.option("-s", "--server", is_flag=True, help="Run a server instead of a client")
@click.option(
    "-f",
    "--format",
    "output_format",
    default=DEFAULT_FORMAT,
    show_default=True,
    help="Output format (vim | emacs | nice | csv)",
)
@click.option(
    "-in", "input_path", default="", help="Use this file instead of stdin input"
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.version_option(version=__version__, prog_name="acrd")
@click.argument("argv", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def cli(
    ctx: click.Context,
    server: bool,
    output_format: str,
    input_path: str,
    verbose: bool,
    argv: tuple,
) -> None:
    """Autocompletion and refactoring daemon for editors.

    \b
    Commands:
      autocomplete [FILENAME] CURSOR   complete at byte offset CURSOR
      close                            shut the daemon down
      status                           daemon status
      drop-cache                       forget cached analysis
      set [KEY [VALUE]]                list, show or change options
      smap FILENAME                    declarations of FILENAME
      rename FILENAME CURSOR           occurrences of the identifier at CURSOR
    """
    if server:
        ctx.exit(start_daemon(verbose=verbose))

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT)

    command = Command.from_argv(tuple(argv), output_format, input_path)
    try:
        with daemon_connection() as client:
            dispatch(client, command)
    except DaemonUnavailableError as e:
        logger.debug(f"Giving up on daemon: {e}")
        console.print(f"[red]{escape(str(e))}[/red]")
        ctx.exit(1)


def main() -> None:
    """Entry point for console script mapping."""
    cli()


if __name__ == "__main__":
    main()
