"""acrd Daemon Service Module.

Provides the RPyC-based daemon hosting the analysis engine behind a per-user
Unix socket.

Key Components:
- AcrDaemonService: RPyC service with the exposed analysis and management methods
- SocketGuard: Scoped ownership of the socket file (single-instance marker)
- start_daemon: Server startup, serving until close or a termination signal
"""

__all__ = [
    "AcrDaemonService",
    "SocketGuard",
    "start_daemon",
]
