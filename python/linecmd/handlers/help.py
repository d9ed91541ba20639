"""HELP command."""

from __future__ import annotations

from typing import Any, List

from .. import protocol
from ..registry import CommandHandler


class HelpHandler(CommandHandler):
    def __init__(self) -> None:
        super().__init__(
            "HELP",
            "?",
            max_params=1,
            help_text="Lists available commands, or shows detailed help for a specific command.",
        )
        self.usage_text = f"{self.name}[:<command>]"

    def handle(self, server: Any, client_id: str, line: str) -> str:
        registry = server.registry
        if protocol.DELIMITER in line:
            target = registry.lookup(self.fields_to_end(line, 1))
            if target is None:
                return protocol.UNRECOGNIZED_COMMAND
            return f"{target.help_text}\nUSAGE: {target.usage_text}\n{self.ok_response()}"
        lines: List[str] = []
        for entry in registry.list_commands():
            handler = registry.lookup(entry.split(" ")[0])
            if handler is not None:
                lines.append(f"{entry} - {handler.help_text}")
        lines.append(self.ok_response())
        return "\n".join(lines)
