"""Output helpers for the interactive client."""

from __future__ import annotations

from typing import Optional

from linecmd import ServerResponse, protocol


def format_response(response: Optional[ServerResponse]) -> str:
    """Message (if any) followed by an ``ERR`` line for error responses."""
    if response is None:
        return "error: not connected"
    lines = []
    if response.message.strip():
        lines.append(response.message.rstrip("\n"))
    if response.is_error:
        lines.append(protocol.RESPONSE_ERR)
    return "\n".join(lines)


def emit_response(response: Optional[ServerResponse]) -> None:
    text = format_response(response)
    if text:
        print(text)
