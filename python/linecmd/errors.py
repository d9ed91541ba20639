"""Exception types shared by the linecmd server and client halves."""

from __future__ import annotations


class LineCmdError(RuntimeError):
    """Base class for linecmd failures."""


class ServerStartError(LineCmdError):
    """Raised (and captured) when the listening socket cannot be bound."""

    def __init__(self, host: str, port: int, reason: str) -> None:
        super().__init__(f"unable to listen on {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason
