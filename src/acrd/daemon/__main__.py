"""Entry point for the acrd daemon.

Usage:
    python -m acrd.daemon [--socket-path PATH] [-v]

Equivalent to `acrd -s`; binds the per-user socket unless a path is given.
"""

import argparse
import sys
from pathlib import Path

from .server import start_daemon


def main() -> int:
    """Main entry point for daemon service."""
    parser = argparse.ArgumentParser(
        description="acrd daemon - autocompletion and refactoring server"
    )
    parser.add_argument(
        "--socket-path", type=Path, default=None, help="Unix socket to listen on"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging"
    )

    args = parser.parse_args()
    return start_daemon(socket_path=args.socket_path, verbose=args.verbose)


if __name__ == "__main__":
    sys.exit(main())
