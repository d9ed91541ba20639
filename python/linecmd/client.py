"""
Client half of the line protocol.

``LineClient.send_command`` writes one encoded command line and then reads
lines until one starts with ``OK`` or ``ERR``.  There is no length prefix,
so a server handler that never emits a marker line blocks the caller until
the connection drops or ``ClientConfig.read_timeout`` expires.
"""

from __future__ import annotations

import logging
import socket
import threading
from dataclasses import dataclass
from typing import Any, BinaryIO, List, Optional

from . import protocol
from .protocol import ServerResponse

LOGGER = logging.getLogger("linecmd.client")


@dataclass
class ClientConfig:
    connect_timeout: float = 5.0
    read_timeout: Optional[float] = None
    encoding: str = "utf-8"


class LineClient:
    """Synchronous request/response client; one command in flight at a time."""

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        self.config = config or ClientConfig()
        self.host: Optional[str] = None
        self.port: Optional[int] = None
        self._sock: Optional[socket.socket] = None
        self._rfile: Optional[BinaryIO] = None
        self._wfile: Optional[BinaryIO] = None
        self._connected = False
        self._lock = threading.RLock()

    def __enter__(self) -> "LineClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.disconnect()

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connect(self, host: str, port: int) -> bool:
        """Open a connection; failures are logged and reported as False."""
        with self._lock:
            if self._connected:
                self.disconnect()
            try:
                sock = socket.create_connection((host, port), timeout=self.config.connect_timeout)
                sock.settimeout(self.config.read_timeout)
            except OSError as exc:
                LOGGER.error("unable to connect to %s:%s: %s", host, port, exc)
                return False
            self._sock = sock
            self._rfile = sock.makefile("rb")
            self._wfile = sock.makefile("wb")
            self.host = host
            self.port = port
            self._connected = True
            LOGGER.debug("connected to %s:%s", host, port)
            return True

    def disconnect(self) -> None:
        """Close the connection; safe to call from another thread mid-command.

        The socket is shut down before taking the lock so a ``send_command``
        blocked in its read sees end-of-stream and releases the lock.
        """
        sock = self._sock
        self._connected = False
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        with self._lock:
            if self._sock is None:
                return
            for stream in (self._wfile, self._rfile, self._sock):
                if stream is None:
                    continue
                try:
                    stream.close()
                except OSError as exc:
                    LOGGER.error("error while disconnecting: %s", exc)
            self._sock = None
            self._rfile = None
            self._wfile = None
            LOGGER.debug("disconnected from %s:%s", self.host, self.port)

    def send_command(self, command: Optional[str], *params: Any) -> Optional[ServerResponse]:
        """Send one command and wait for its framed response.

        Returns None when not connected.  A blank command name never touches
        the network and yields a local unknown-command response.
        """
        with self._lock:
            if not self._connected:
                return None
            if command is None or not command.strip():
                return ServerResponse.parse("", protocol.UNRECOGNIZED_COMMAND)
            command_line = protocol.encode_command(command, *params)
            try:
                self._write_line(command_line)
                raw = self._read_response()
            except (OSError, ValueError) as exc:
                LOGGER.error("error while sending %r: %s", command_line, exc)
                raw = None
            if raw is None:
                LOGGER.error("client disconnected")
                self.disconnect()
                return ServerResponse.parse(command_line, protocol.DISCONNECTED)
            return ServerResponse.parse(command_line, raw)

    def _write_line(self, line: str) -> None:
        assert self._wfile is not None
        self._wfile.write(line.encode(self.config.encoding) + b"\n")
        self._wfile.flush()

    def _read_response(self) -> Optional[str]:
        """Accumulate lines up to the marker line; None if the server hung up."""
        assert self._rfile is not None
        lines: List[str] = []
        while True:
            data = self._rfile.readline()
            if not data:
                return None
            line = data.decode(self.config.encoding, errors="replace").rstrip("\r\n")
            if line == protocol.DISCONNECTED:
                return None
            lines.append(line)
            if protocol.is_marker_line(line):
                return "\n".join(lines)


__all__ = ["ClientConfig", "LineClient"]
