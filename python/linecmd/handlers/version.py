"""VERSION command."""

from __future__ import annotations

from typing import Any

from ..registry import CommandHandler
from ..version import __version__


class VersionHandler(CommandHandler):
    """Reports the banner of the server it is registered on.

    The banner is read from the server passed to :meth:`handle`
    (``server.server_name``); handlers running without a server fall back
    to the package version.
    """

    def __init__(self) -> None:
        super().__init__(
            "VERSION",
            "VER",
            max_params=0,
            help_text="Returns the name and version of this server.",
        )

    def handle(self, server: Any, client_id: str, line: str) -> str:
        name = getattr(server, "server_name", None) or f"linecmd {__version__}"
        return self.ok_response(name)
