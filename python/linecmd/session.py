"""Server-side session: one accepted connection and its reader thread."""

from __future__ import annotations

import enum
import logging
import socket
import threading
from typing import Any, Callable, List, Optional, Union

from . import protocol
from .registry import CommandRegistry
from .spy import ServerSpy, SpyBus

LOGGER = logging.getLogger("linecmd.session")


class SessionEnd(enum.Enum):
    """Why a session's read loop finished."""

    HANGUP = "hangup"
    DISCONNECT_NOTICE = "disconnect_notice"
    CANCELLED = "cancelled"
    IO_ERROR = "io_error"


class ClientSession:
    """Reads command lines from one client, dispatches them and writes replies.

    The read is a plain blocking ``readline``; :meth:`cancel` shuts the socket
    down, which wakes the reader with end-of-stream.
    """

    def __init__(
        self,
        session_id: str,
        sock: socket.socket,
        *,
        registry: CommandRegistry,
        server: Any = None,
        spies: Optional[List[ServerSpy]] = None,
        on_close: Optional[Callable[["ClientSession"], None]] = None,
        encoding: str = "utf-8",
    ) -> None:
        self.session_id = session_id
        self.sock = sock
        self.registry = registry
        self.server = server
        self.spies = SpyBus(spies)
        self.encoding = encoding
        self.end_reason: Optional[SessionEnd] = None
        self.rfile = sock.makefile("rb")
        self.wfile = sock.makefile("wb")
        self._on_close = on_close
        self._write_lock = threading.Lock()
        self._running = threading.Event()
        self._cancelled = threading.Event()
        self._closed = False
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    def add_spy(self, spy: ServerSpy) -> None:
        self.spies.add(spy)

    def remove_spy(self, spy: ServerSpy) -> None:
        self.spies.remove(spy)

    def start(self) -> None:
        self._running.set()
        self._thread = threading.Thread(target=self.run, name=f"linecmd-{self.session_id}", daemon=True)
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def cancel(self) -> None:
        """Ask the read loop to stop; returns without waiting for it."""
        self._running.clear()
        self._cancelled.set()
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

    def send(self, line: str) -> bool:
        """Write one line to the client outside the request/response cycle."""
        self.spies.notify_sent(self.server, self.session_id, line)
        return self._write_line(line)

    def run(self) -> None:
        LOGGER.info("session %s starting", self.session_id)
        reason = SessionEnd.IO_ERROR
        try:
            reason = self._serve()
        finally:
            self._running.clear()
            self.end_reason = reason
            self._close()
            self.spies.notify_disconnected(self.server, self.session_id)
            if self._on_close is not None:
                self._on_close(self)
            LOGGER.info("session %s terminated (%s)", self.session_id, reason.value)

    def _serve(self) -> SessionEnd:
        while self._running.is_set() and not self._cancelled.is_set():
            line = self._next_line()
            if isinstance(line, SessionEnd):
                return line
            if line.strip() == protocol.DISCONNECTED:
                return SessionEnd.DISCONNECT_NOTICE
            LOGGER.debug("%s >> %s", self.session_id, line)
            self.spies.notify_received(self.server, self.session_id, line)
            reply = self.registry.dispatch(self.session_id, line)
            if not self.send(reply):
                return SessionEnd.CANCELLED if self._cancelled.is_set() else SessionEnd.IO_ERROR
        return SessionEnd.CANCELLED

    def _next_line(self) -> Union[str, SessionEnd]:
        try:
            data = self.rfile.readline()
        except (OSError, ValueError) as exc:
            if self._cancelled.is_set():
                return SessionEnd.CANCELLED
            LOGGER.error("session %s read failed: %s", self.session_id, exc)
            return SessionEnd.IO_ERROR
        if self._cancelled.is_set():
            return SessionEnd.CANCELLED
        if not data:
            return SessionEnd.HANGUP
        return data.decode(self.encoding, errors="replace").rstrip("\r\n")

    def _write_line(self, line: str) -> bool:
        with self._write_lock:
            if self._closed:
                return False
            try:
                self.wfile.write(line.encode(self.encoding) + b"\n")
                self.wfile.flush()
            except (OSError, ValueError) as exc:
                LOGGER.debug("session %s write failed: %s", self.session_id, exc)
                return False
        LOGGER.debug("%s << %s", self.session_id, line)
        return True

    def _close(self) -> None:
        with self._write_lock:
            if self._closed:
                return
            self._closed = True
            for stream in (self.wfile, self.rfile, self.sock):
                try:
                    stream.close()
                except OSError as exc:
                    LOGGER.error("session %s was unable to close its socket: %s", self.session_id, exc)


__all__ = ["ClientSession", "SessionEnd"]
