"""Daemon bootstrap and RPC calls for the acrd client.

The client is invoked once per editor request. It connects to the per-user
daemon socket, starting the daemon first when nobody is listening:

1. connect; on failure
2. find `acrd` on PATH and spawn `acrd -s` detached, stdio on /dev/null
3. poll for the socket file every 10ms, for at most 1 second
4. connect exactly once more; on failure give up

No RPC timeout is applied: a hung daemon hangs the client.
"""

import logging
import shutil
import subprocess
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple

from rpyc.utils.factory import unix_connect

from .daemon.socket_helper import get_socket_path, socket_exists
from .errors import DaemonUnavailableError
from .models import (
    CandidateSet,
    DeclDesc,
    RenameDesc,
    decls_from_wire,
    renames_from_wire,
)

logger = logging.getLogger(__name__)

DAEMON_EXECUTABLE = "acrd"
POLL_INTERVAL_SECONDS = 0.01
STARTUP_TIMEOUT_SECONDS = 1.0


def _connect_to_daemon(socket_path: Path) -> Any:
    """Open an RPyC connection to the daemon socket.

    Raises:
        OSError: If nobody is listening (refused, missing socket file, ...)
    """
    return unix_connect(
        str(socket_path),
        config={"sync_request_timeout": None},
    )


def _start_daemon() -> None:
    """Spawn `acrd -s` as a detached background process.

    Raises:
        DaemonUnavailableError: If the executable is not on PATH or cannot run
    """
    executable = shutil.which(DAEMON_EXECUTABLE)
    if executable is None:
        raise DaemonUnavailableError(
            f"exec: \"{DAEMON_EXECUTABLE}\": executable file not found in $PATH"
        )

    logger.debug(f"Starting daemon {executable}")
    try:
        subprocess.Popen(
            [executable, "-s"],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        raise DaemonUnavailableError(f"cannot start daemon: {e}") from e


def _wait_for_file(
    path: Path,
    interval: float = POLL_INTERVAL_SECONDS,
    timeout: float = STARTUP_TIMEOUT_SECONDS,
) -> bool:
    """Poll until `path` exists; False if `timeout` elapses first."""
    waited = 0.0
    while not socket_exists(path):
        time.sleep(interval)
        waited += interval
        if waited > timeout:
            return False
    return True


def connect_or_start(socket_path: Optional[Path] = None) -> Any:
    """Connect to the daemon, starting it when nobody is listening.

    Returns:
        RPyC connection object

    Raises:
        DaemonUnavailableError: If the daemon cannot be started or the second
            connection attempt fails
    """
    socket_path = socket_path or get_socket_path()

    try:
        return _connect_to_daemon(socket_path)
    except OSError as e:
        logger.debug(f"Daemon not reachable on {socket_path}: {e}")

    _start_daemon()
    if not _wait_for_file(socket_path):
        logger.debug(f"Socket {socket_path} did not appear in time")

    # one more attempt, whatever ended the wait
    try:
        return _connect_to_daemon(socket_path)
    except OSError as e:
        raise DaemonUnavailableError(str(e), socket_path=socket_path) from e


@contextmanager
def daemon_connection(socket_path: Optional[Path] = None) -> Iterator["DaemonClient"]:
    """Scoped daemon connection; closed on every exit path."""
    conn = connect_or_start(socket_path)
    try:
        yield DaemonClient(conn)
    finally:
        conn.close()


class DaemonClient:
    """Typed wrappers over the daemon's exposed methods."""

    def __init__(self, conn: Any):
        self.conn = conn

    def auto_complete(
        self, source: bytes, filename: str, cursor: int
    ) -> Optional[CandidateSet]:
        data = self.conn.root.exposed_auto_complete(source, filename, cursor)
        return CandidateSet.from_wire(data)

    def smap(self, filename: str) -> List[DeclDesc]:
        return decls_from_wire(self.conn.root.exposed_smap(filename))

    def rename(
        self, filename: str, cursor: int
    ) -> Tuple[Optional[List[RenameDesc]], str]:
        renames, err = self.conn.root.exposed_rename(filename, cursor)
        return renames_from_wire(renames), str(err or "")

    def status(self) -> str:
        return str(self.conn.root.exposed_status())

    def close(self) -> None:
        """Ask the daemon to shut down."""
        try:
            self.conn.root.exposed_close()
        except EOFError:
            # the daemon may drop the connection while shutting down
            logger.debug("Connection closed by daemon during shutdown")

    def drop_cache(self) -> None:
        self.conn.root.exposed_drop_cache()

    def set(self, key: str, value: str) -> str:
        return str(self.conn.root.exposed_set(key, value))
