"""Daemon server startup with Unix socket binding.

The socket file is the single-instance marker: start-up refuses to run while
it exists, and the daemon removes it on every exit path.
"""

import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from rpyc.utils.server import ThreadedServer

from ..config import ConfigManager
from ..engine.loader import load_engine
from ..errors import DaemonAlreadyRunningError, EngineLoadError
from .service import AcrDaemonService
from .socket_helper import SocketGuard, get_log_path, get_socket_path

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """Setup daemon logging - console plus an optional log file.

    A daemon spawned by a client has its standard streams on /dev/null, so
    the log file is the only place its output survives.
    """
    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(console_handler)

    if log_file is not None:
        try:
            file_handler = logging.FileHandler(log_file)
        except OSError as e:
            logger.warning(f"Cannot open daemon log {log_file}: {e}")
            return
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)
        logger.info(f"Daemon logging to {log_file}")


def start_daemon(
    socket_path: Optional[Path] = None,
    config_manager: Optional[ConfigManager] = None,
    verbose: bool = False,
) -> int:
    """Start daemon and serve until closed.

    Args:
        socket_path: Unix socket to bind (default: per-user temp path)
        config_manager: Source of daemon options (default: user config file)
        verbose: Force DEBUG logging

    Returns:
        Exit code (0 after a clean shutdown, 1 if the socket already exists
        or the engine cannot be started)
    """
    socket_path = socket_path or get_socket_path()
    config_manager = config_manager or ConfigManager()

    try:
        with SocketGuard(socket_path) as guard:
            config = config_manager.load()
            configure_logging(
                "DEBUG" if verbose else config.log_level, get_log_path(socket_path)
            )
            engine = load_engine(config)

            service = AcrDaemonService(engine, config_manager)
            server = ThreadedServer(
                service,
                socket_path=str(socket_path),
                protocol_config={
                    "allow_public_attrs": False,
                    "sync_request_timeout": None,
                },
                logger=logging.getLogger("acrd.daemon.rpyc"),
            )
            guard.owned = True
            service.on_close = server.close

            _setup_signal_handlers()

            logger.info(f"acrd daemon listening on {socket_path}")
            # Blocks here until close() or a signal
            server.start()
            logger.info("acrd daemon stopped")

    # Logging is not configured yet for these two; report on stderr once.
    except (DaemonAlreadyRunningError, ValueError) as e:
        logger.debug(f"Daemon start-up refused: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    except (EngineLoadError, OSError) as e:
        logger.error(f"Daemon start-up failed: {e}")
        return 1

    return 0


def _setup_signal_handlers() -> None:
    """Turn SIGTERM/SIGINT into SystemExit so the socket guard runs.

    Signal handlers can only be installed from the main thread; a daemon
    started from another thread (tests, embedding) relies on close().
    """
    if threading.current_thread() is not threading.main_thread():
        return

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)
