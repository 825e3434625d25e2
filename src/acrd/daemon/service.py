"""acrd daemon service - RPyC service exposing the analysis engine.

Exposed methods: auto_complete, smap, rename, status, close, drop_cache, set.

Results cross the socket as nested tuples (see acrd.models) so RPyC passes
them by value instead of as remote references.
"""

import logging
import threading
from typing import Any, Callable, Optional, Tuple

from rpyc import Service

from ..config import ConfigManager
from ..engine.base import AnalysisEngine
from ..models import decls_to_wire, renames_to_wire

logger = logging.getLogger(__name__)

# Delay between answering `close` and closing the listener, so the reply
# reaches the client first.
CLOSE_DELAY_SECONDS = 0.1


class AcrDaemonService(Service):
    """RPyC daemon service shared by every client connection.

    Thread Safety:
        ThreadedServer runs each connection in its own thread. The engine
        serializes its own state; this service only locks the connection
        counter and config changes, so a slow analysis request never holds
        up another client's connect, status or set.
    """

    def __init__(
        self,
        engine: AnalysisEngine,
        config_manager: ConfigManager,
        on_close: Optional[Callable[[], None]] = None,
    ):
        super().__init__()
        self.engine = engine
        self.config_manager = config_manager
        self.on_close = on_close
        self.connection_lock = threading.Lock()
        self.config_lock = threading.Lock()
        self.connection_count = 0

    def on_connect(self, conn) -> None:
        with self.connection_lock:
            self.connection_count += 1
        logger.debug("Client connected")

    def on_disconnect(self, conn) -> None:
        logger.debug("Client disconnected")

    # =============================================================================
    # Analysis
    # =============================================================================

    def exposed_auto_complete(
        self, source: bytes, filename: str, cursor: int
    ) -> Optional[Tuple[Any, ...]]:
        logger.debug(f"exposed_auto_complete: file={filename!r}, cursor={cursor}")
        try:
            result = self.engine.auto_complete(bytes(source), str(filename), int(cursor))
        except Exception as e:
            logger.exception(f"Autocomplete failed: {e}")
            return None
        return result.to_wire() if result is not None else None

    def exposed_smap(self, filename: str) -> Tuple[Any, ...]:
        logger.debug(f"exposed_smap: file={filename!r}")
        try:
            decls = self.engine.smap(str(filename))
        except Exception as e:
            logger.exception(f"SMap failed: {e}")
            return ()
        return decls_to_wire(decls)

    def exposed_rename(
        self, filename: str, cursor: int
    ) -> Tuple[Optional[Tuple[Any, ...]], str]:
        logger.debug(f"exposed_rename: file={filename!r}, cursor={cursor}")
        try:
            renames, err = self.engine.rename(str(filename), int(cursor))
        except Exception as e:
            logger.exception(f"Rename failed: {e}")
            return None, f"rename failed: {e}"
        return renames_to_wire(renames), err or ""

    # =============================================================================
    # Daemon Management
    # =============================================================================

    def exposed_status(self) -> str:
        engine_status = self.engine.status()
        with self.connection_lock:
            connections = self.connection_count
        return f"{engine_status}\nconnections served: {connections}"

    def exposed_drop_cache(self) -> None:
        logger.info("exposed_drop_cache: clearing engine cache")
        self.engine.drop_cache()

    def exposed_set(self, key: str, value: str) -> str:
        key, value = str(key), str(value)
        with self.config_lock:
            if not key:
                return self.config_manager.list_all()
            if not value:
                return self.config_manager.get_option(key)
            logger.info(f"exposed_set: {key} = {value}")
            return self.config_manager.set_option(key, value)

    def exposed_close(self) -> None:
        """Graceful daemon shutdown; the reply is sent before the listener closes."""
        logger.info("exposed_close: initiating graceful shutdown")
        if self.on_close is None:
            logger.warning("No shutdown hook registered, ignoring close request")
            return
        timer = threading.Timer(CLOSE_DELAY_SECONDS, self.on_close)
        timer.daemon = True
        timer.start()
