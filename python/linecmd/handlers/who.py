"""WHO command."""

from __future__ import annotations

from typing import Any

from ..registry import CommandHandler


class WhoHandler(CommandHandler):
    def __init__(self) -> None:
        super().__init__(
            "WHO",
            "WHOAMI",
            max_params=0,
            help_text="Returns the client id for this client connection.",
        )

    def handle(self, server: Any, client_id: str, line: str) -> str:
        return self.ok_response(client_id)
