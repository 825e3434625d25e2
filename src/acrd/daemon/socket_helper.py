"""Socket path management for daemon mode.

The daemon listens on one Unix socket per user in the system temp
directory. The socket file doubles as the "daemon is running" marker: the
daemon refuses to start while it exists and removes it when it stops.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from ..errors import DaemonAlreadyRunningError

logger = logging.getLogger(__name__)

SOCKET_PREFIX = "acrserver"
SHARED_USER = "all"


def get_user_segment() -> str:
    """Per-user socket name segment; every user shares `all` when USER is unset."""
    return os.environ.get("USER") or SHARED_USER


def get_socket_path() -> Path:
    """Get daemon socket path (e.g. /tmp/acrserver.alice)."""
    return Path(tempfile.gettempdir()) / f"{SOCKET_PREFIX}.{get_user_segment()}"


def get_log_path(socket_path: Optional[Path] = None) -> Path:
    """Daemon log file, next to the socket."""
    socket_path = socket_path or get_socket_path()
    return socket_path.with_name(socket_path.name + ".log")


def socket_exists(socket_path: Path) -> bool:
    return os.path.lexists(socket_path)


class SocketGuard:
    """Scoped ownership of the daemon socket file.

    Entering fails with DaemonAlreadyRunningError if the file exists; the
    existing file is never touched. Once `owned` is set (after the server has
    bound the socket), leaving the scope removes the file on every exit path.
    """

    def __init__(self, socket_path: Path):
        self.socket_path = socket_path
        self.owned = False

    def __enter__(self) -> "SocketGuard":
        if socket_exists(self.socket_path):
            raise DaemonAlreadyRunningError(self.socket_path)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self.owned and socket_exists(self.socket_path):
            self.socket_path.unlink()
            logger.info(f"Cleaned up socket {self.socket_path}")
        return False
