"""Input splitting helpers for the interactive client."""

from __future__ import annotations

from typing import List, Tuple

from linecmd import protocol


def split_input(text: str) -> Tuple[str, List[str]]:
    """Split ``NAME:p1:p2`` typed at the prompt into command and parameters."""
    fields = text.strip().split(protocol.DELIMITER)
    return fields[0], fields[1:]


def parse_help_listing(message: str) -> List[str]:
    """Extract command names and aliases from a HELP listing.

    Each line looks like ``ECHO - ...`` or ``HELP (alias ?) - ...``.
    """
    names: List[str] = []
    for line in message.splitlines():
        entry = line.split(" - ", 1)[0].strip()
        if not entry:
            continue
        name, _, rest = entry.partition(" (alias ")
        names.append(name)
        if rest.endswith(")"):
            names.append(rest[:-1])
    return sorted(dict.fromkeys(names))
