"""prompt_toolkit completer for command names."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from linecmd import protocol


class CommandCompleter(Completer):
    """Completes the command name (the text before the first delimiter)."""

    def __init__(self, names: Sequence[str]) -> None:
        self.names: List[str] = sorted(dict.fromkeys(name.upper() for name in names))

    def get_completions(self, document: Document, complete_event) -> Iterable[Completion]:
        text = document.text_before_cursor.lstrip()
        if protocol.DELIMITER in text:
            return
        needle = text.upper()
        for name in self.names:
            if name.startswith(needle):
                yield Completion(name, start_position=-len(text))
