"""Exceptions raised by the acrd client and daemon."""

from pathlib import Path
from typing import Optional


class AcrError(Exception):
    """Base exception for acrd errors."""

    pass


class DaemonAlreadyRunningError(AcrError):
    """Exception raised when the daemon socket file already exists."""

    def __init__(self, socket_path: Path):
        super().__init__(
            f"unix socket '{socket_path}' already exists (daemon already running?)"
        )
        self.socket_path = socket_path


class DaemonUnavailableError(AcrError):
    """Exception raised when the client cannot reach or start the daemon."""

    def __init__(self, message: str, socket_path: Optional[Path] = None):
        super().__init__(message)
        self.socket_path = socket_path


class InputUnreadableError(AcrError):
    """Exception raised when autocomplete source text cannot be read."""

    pass


class EngineLoadError(AcrError):
    """Exception raised when the configured analysis engine cannot be built."""

    pass
