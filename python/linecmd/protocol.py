"""
Wire framing for the linecmd protocol.

Requests are single lines of the form ``NAME`` or ``NAME:p1:p2``.  Responses
are one of:

    * ``OK:<message>``                    single-line success
    * ``OK``                              bare acknowledgement
    * ``line1\\nline2\\n...\\nOK``          multi-line body + marker line
    * ``ERR:<message>``                   single-line error

There is no escaping and no length prefix: a parameter containing the
delimiter is split into extra fields by the receiver, and a response ends at
the first line that starts with ``OK`` or ``ERR``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

DELIMITER = ":"
RESPONSE_OK = "OK"
RESPONSE_ERR = "ERR"
OK_HEADER = RESPONSE_OK + DELIMITER
ERROR_HEADER = RESPONSE_ERR + DELIMITER
UNRECOGNIZED_COMMAND = ERROR_HEADER + "Unknown command"
DISCONNECTED = ERROR_HEADER + "Disconnected"
EMPTY_RESPONSE_MESSAGE = "Unexpected empty response from server."

# Out-of-band channel traffic pushed to subscribers: MSG:<channel>:<message>
CHANNEL_MESSAGE = "MSG"
CHANNEL_HEADER = CHANNEL_MESSAGE + DELIMITER


def normalise_name(name: Optional[str]) -> str:
    """Trim and upper-case a command name or alias ("" for None)."""
    if name is None:
        return ""
    return str(name).strip().upper()


def encode_command(name: str, *params: Any) -> str:
    """Build a command line; parameters are trimmed but never escaped."""
    parts = [normalise_name(name)]
    for param in params:
        parts.append(str(param).strip())
    return DELIMITER.join(parts)


def command_name(line: Optional[str]) -> str:
    """Return the normalised command name of a raw command line."""
    if line is None:
        return ""
    return normalise_name(line.split(DELIMITER, 1)[0])


def split_fields(line: str) -> List[str]:
    """Split a command line on the delimiter, dropping trailing empty fields."""
    if line == "":
        return [""]
    parts = line.split(DELIMITER)
    while parts and parts[-1] == "":
        parts.pop()
    return parts


def fields_to_end(line: str, start: int, joiner: str = DELIMITER) -> str:
    """Join every field from index ``start`` to the end of the line."""
    if start < 0:
        raise ValueError(f"field index must be >= 0, got {start}")
    return joiner.join(split_fields(line)[start:])


def ok_response(message: Optional[str] = None) -> str:
    """Frame a success response; multi-line bodies get a trailing ``OK`` line."""
    if message is None or not message.strip():
        return RESPONSE_OK
    text = message.strip()
    if "\n" in text:
        return text + "\n" + RESPONSE_OK
    return OK_HEADER + text


def error_response(message: Optional[str]) -> str:
    """Frame an error response; error messages are always single-line."""
    text = "" if message is None else str(message)
    return ERROR_HEADER + text.replace("\n", "")


def is_marker_line(line: str) -> bool:
    """True for a line starting with ``OK`` or ``ERR`` (``OKAY...`` included); it ends a response."""
    return line.startswith(RESPONSE_OK) or line.startswith(RESPONSE_ERR)


@dataclass(frozen=True)
class ServerResponse:
    """Decoded result of one request/response round trip."""

    original_command: str
    raw_response: str
    message: str
    is_error: bool = False
    is_success: bool = False

    @classmethod
    def parse(cls, original_command: Optional[str], raw_response: Optional[str]) -> "ServerResponse":
        command = original_command or ""
        raw = (raw_response or "").strip()
        if not raw:
            return cls(command, raw, EMPTY_RESPONSE_MESSAGE, is_error=True)

        # Neither marker present: left unclassified on purpose.
        if ERROR_HEADER not in raw and RESPONSE_OK not in raw:
            return cls(command, raw, "")

        if ERROR_HEADER in raw:
            tail = raw[raw.index(ERROR_HEADER):]
            if len(tail) <= len(ERROR_HEADER):
                return cls(command, raw, "", is_error=True)
            message = tail[len(ERROR_HEADER):].replace("\n", "").strip()
            return cls(command, raw, message, is_error=True)

        if raw.startswith(OK_HEADER):
            message = raw[raw.index(OK_HEADER) + len(OK_HEADER):].strip()
        elif raw == RESPONSE_OK:
            message = ""
        elif raw.endswith("\n" + RESPONSE_OK):
            message = raw[: -(len(RESPONSE_OK) + 1)].strip()
        else:
            message = raw
        return cls(command, raw, message, is_success=True)

    @property
    def is_server_disconnect_error(self) -> bool:
        return self.raw_response == DISCONNECTED

    @property
    def has_message(self) -> bool:
        return bool(self.message)


def decode_response(original_command: Optional[str], raw_response: Optional[str]) -> ServerResponse:
    return ServerResponse.parse(original_command, raw_response)


__all__ = [
    "DELIMITER",
    "RESPONSE_OK",
    "RESPONSE_ERR",
    "OK_HEADER",
    "ERROR_HEADER",
    "UNRECOGNIZED_COMMAND",
    "DISCONNECTED",
    "EMPTY_RESPONSE_MESSAGE",
    "CHANNEL_MESSAGE",
    "CHANNEL_HEADER",
    "ServerResponse",
    "command_name",
    "decode_response",
    "encode_command",
    "error_response",
    "fields_to_end",
    "is_marker_line",
    "normalise_name",
    "ok_response",
    "split_fields",
]
