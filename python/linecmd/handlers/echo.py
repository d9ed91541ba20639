"""ECHO command."""

from __future__ import annotations

from typing import Any, Optional

from ..registry import CommandHandler


class EchoHandler(CommandHandler):
    def __init__(self, name: str = "ECHO", alias: Optional[str] = None) -> None:
        super().__init__(
            name,
            alias,
            min_params=1,
            help_text="Simply echoes whatever parameters you supply.",
        )
        self.usage_text = f"{self.name}:<message>"

    def handle(self, server: Any, client_id: str, line: str) -> str:
        return self.ok_response(self.fields_to_end(line, 1))
