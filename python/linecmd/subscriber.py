"""Dedicated connection that listens for channel broadcasts."""

from __future__ import annotations

import logging
import socket
import threading
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, List, Optional

from . import protocol

LOGGER = logging.getLogger("linecmd.subscriber")

MessageCallback = Callable[[str, str], None]


@dataclass
class ChannelSubscriber:
    """Subscribes to channels and hands every pushed message to ``callback``.

    The subscription replies (``OK``/``ERR``) are read synchronously in
    :meth:`connect`; afterwards a daemon thread owns the socket and only
    ``MSG:<channel>:<message>`` lines are expected.
    """

    host: str
    port: int
    channels: List[str]
    callback: MessageCallback
    connect_timeout: float = 5.0
    encoding: str = "utf-8"

    errors: List[str] = field(init=False, default_factory=list)
    _held: List[str] = field(init=False, default_factory=list)
    _sock: Optional[socket.socket] = field(init=False, default=None)
    _rfile: Optional[BinaryIO] = field(init=False, default=None)
    _thread: Optional[threading.Thread] = field(init=False, default=None)
    _stop: threading.Event = field(init=False, default_factory=threading.Event)
    _lock: threading.Lock = field(init=False, default_factory=threading.Lock)

    @property
    def is_listening(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def connect(self) -> bool:
        with self._lock:
            if self._sock is not None:
                return True
            try:
                sock = socket.create_connection((self.host, self.port), timeout=self.connect_timeout)
            except OSError as exc:
                LOGGER.error("unable to connect to %s:%s: %s", self.host, self.port, exc)
                return False
            rfile = sock.makefile("rb")
            try:
                for channel in self.channels:
                    sock.sendall(protocol.encode_command("SUB", channel).encode(self.encoding) + b"\n")
                    reply = self._read_reply(rfile)
                    if not reply.startswith(protocol.RESPONSE_OK):
                        self.errors.append(f"{channel}: {reply or 'no reply'}")
                        LOGGER.error("subscription to %s rejected: %s", channel, reply)
                sock.settimeout(None)
            except OSError as exc:
                LOGGER.error("unable to subscribe at %s:%s: %s", self.host, self.port, exc)
                rfile.close()
                sock.close()
                return False
            self._sock = sock
            self._rfile = rfile
            self._stop.clear()
            self._thread = threading.Thread(target=self._reader_loop, name="linecmd-subscriber", daemon=True)
            self._thread.start()
            return True

    def close(self) -> None:
        self._stop.set()
        with self._lock:
            sock, self._sock = self._sock, None
            if sock is not None:
                try:
                    sock.shutdown(socket.SHUT_RDWR)
                except OSError:
                    pass
                sock.close()
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=0.5)

    def _read_reply(self, rfile: BinaryIO) -> str:
        # Broadcasts can arrive between subscription replies; hold them back.
        while True:
            line = rfile.readline().decode(self.encoding, errors="replace").rstrip("\r\n")
            if not line.startswith(protocol.CHANNEL_HEADER):
                return line
            self._held.append(line)

    def _reader_loop(self) -> None:
        rfile = self._rfile
        assert rfile is not None
        held, self._held = self._held, []
        for line in held:
            self._deliver(line)
        while not self._stop.is_set():
            try:
                data = rfile.readline()
            except (OSError, ValueError):
                break
            if not data:
                break
            line = data.decode(self.encoding, errors="replace").rstrip("\r\n")
            if line == protocol.DISCONNECTED:
                LOGGER.info("server disconnected subscriber")
                break
            self._deliver(line)
        try:
            rfile.close()
        except OSError:
            pass

    def _deliver(self, line: str) -> None:
        if not line.startswith(protocol.CHANNEL_HEADER):
            LOGGER.debug("ignoring unexpected line %r", line)
            return
        fields = line.split(protocol.DELIMITER, 2)
        if len(fields) < 3:
            LOGGER.debug("ignoring malformed channel message %r", line)
            return
        _, channel, message = fields
        try:
            self.callback(channel, message)
        except Exception:
            LOGGER.exception("subscriber callback failed")


__all__ = ["ChannelSubscriber", "MessageCallback"]
