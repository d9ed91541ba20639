"""Interactive prompt for the line-protocol client."""

from __future__ import annotations

import logging
import sys
from typing import Iterable, List, Optional, TextIO

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout

from linecmd import LineClient

from .completion import CommandCompleter
from .history import HistoryStore
from .output import emit_response
from .parser import parse_help_listing, split_input

LOGGER = logging.getLogger("linecmd_cli.repl")

QUIT_WORD = "quit"


class ClientREPL:
    """prompt_toolkit loop on a terminal, plain line reading otherwise."""

    def __init__(
        self,
        client: LineClient,
        *,
        history_store: Optional[HistoryStore] = None,
        stdin: Optional[TextIO] = None,
        prompt: str = "> ",
    ) -> None:
        self.client = client
        self.history_store = history_store
        self.stdin = stdin if stdin is not None else sys.stdin
        self.prompt = prompt

    def run(self) -> int:
        print(f'Connected. Type "{QUIT_WORD}" to disconnect or "?" for help.')
        if not self.stdin.isatty():
            return self.run_lines(self.stdin)
        history = InMemoryHistory()
        if self.history_store:
            for entry in self.history_store.snapshot():
                history.append_string(entry)
        session: PromptSession = PromptSession(
            self.prompt,
            history=history,
            completer=CommandCompleter(self.command_names()),
            complete_while_typing=True,
        )
        while True:
            try:
                with patch_stdout():
                    line = session.prompt()
            except (EOFError, KeyboardInterrupt):
                print()
                self.client.disconnect()
                return 0
            if not self.handle_line(line):
                return 0

    def run_lines(self, lines: Iterable[str]) -> int:
        for line in lines:
            if not self.handle_line(line):
                return 0
        self.client.disconnect()
        return 0

    def handle_line(self, line: str) -> bool:
        """Send one typed line; False once the session is over."""
        stripped = line.strip()
        if not stripped:
            return True
        if stripped.lower() == QUIT_WORD or not self.client.is_connected:
            print("Client disconnected.")
            self.client.disconnect()
            return False
        if self.history_store:
            self.history_store.append(stripped)
        command, params = split_input(stripped)
        response = self.client.send_command(command, *params)
        emit_response(response)
        if response is None or response.is_server_disconnect_error:
            print("Server disconnected.")
            self.client.disconnect()
            return False
        return True

    def command_names(self) -> List[str]:
        """Ask the server for its HELP listing to drive completion."""
        response = self.client.send_command("HELP")
        if response is None or not response.is_success:
            LOGGER.debug("no command listing available: %s", response)
            return []
        return parse_help_listing(response.message)
