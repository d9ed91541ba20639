"""File-backed command history for the interactive client."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

LOGGER = logging.getLogger("linecmd_cli.history")


class HistoryStore:
    """Most-recent-last list of entered lines, capped at ``limit`` entries."""

    def __init__(self, path: Optional[Union[str, Path]], *, limit: int = 500) -> None:
        self.limit = max(1, int(limit or 1))
        self.path = Path(path).expanduser() if path else None
        self.entries: List[str] = []
        if self.path:
            self._load()

    def _load(self) -> None:
        assert self.path is not None
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return
        except OSError as exc:
            LOGGER.warning("could not read history %s: %s", self.path, exc)
            return
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        self.entries = lines[-self.limit :]

    def append(self, line: str) -> None:
        text = line.strip()
        if not text or (self.entries and self.entries[-1] == text):
            return
        self.entries.append(text)
        del self.entries[: -self.limit]
        self._save()

    def _save(self) -> None:
        if not self.path:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("\n".join(self.entries) + "\n", encoding="utf-8")
        except OSError as exc:
            LOGGER.warning("could not write history %s: %s", self.path, exc)

    def snapshot(self) -> List[str]:
        return list(self.entries)
