"""Listening socket, accept loop and live-session bookkeeping."""

from __future__ import annotations

import enum
import itertools
import logging
import socket
import socketserver
import threading
from typing import Any, Dict, List, Optional, Tuple

from . import protocol
from .errors import ServerStartError
from .registry import CommandRegistry
from .session import ClientSession
from .spy import ServerSpy, SpyBus

LOGGER = logging.getLogger("linecmd.acceptor")


class AcceptorState(enum.Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    LISTENING = "listening"
    STOPPING = "stopping"


class _ListeningServer(socketserver.TCPServer):
    """TCPServer whose accepted sockets are handed to the acceptor."""

    allow_reuse_address = True

    def __init__(self, server_address: Tuple[str, int], acceptor: "ConnectionAcceptor") -> None:
        self.acceptor = acceptor
        super().__init__(server_address, socketserver.BaseRequestHandler)

    def process_request(self, request: socket.socket, client_address: Any) -> None:
        self.acceptor._accept(request, client_address)

    def handle_error(self, request: Any, client_address: Any) -> None:
        LOGGER.exception("failed to set up connection from %s", client_address)


class ConnectionAcceptor:
    """Owns the listening socket and every session accepted on it.

    The session map is touched by the accept thread (insert), by session
    threads (remove on exit) and by callers of :meth:`stop`/:meth:`send_to_client`,
    so every access goes through ``_sessions_lock``.
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        registry: CommandRegistry,
        server: Any = None,
        client_id_prefix: str = "LCC",
        poll_interval: float = 0.1,
        encoding: str = "utf-8",
    ) -> None:
        self.host = host
        self.port = port
        self.registry = registry
        self.server = server
        self.client_id_prefix = client_id_prefix
        self.poll_interval = poll_interval
        self.encoding = encoding
        self.spies = SpyBus()
        self.startup_error: Optional[ServerStartError] = None
        self._state = AcceptorState.STOPPED
        self._state_lock = threading.Lock()
        self._sessions: Dict[str, ClientSession] = {}
        self._sessions_lock = threading.Lock()
        self._ordinals = itertools.count()
        self._listener: Optional[_ListeningServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> AcceptorState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state is AcceptorState.LISTENING

    @property
    def address(self) -> Tuple[str, int]:
        listener = self._listener
        if listener is not None:
            host, port = listener.server_address[:2]
            return host, port
        return self.host, self.port

    def start(self) -> bool:
        with self._state_lock:
            if self._state is not AcceptorState.STOPPED:
                LOGGER.warning("start requested while %s; ignoring", self._state.value)
                return False
            self._state = AcceptorState.STARTING
            self.startup_error = None
            try:
                listener = _ListeningServer((self.host, self.port), self)
            except OSError as exc:
                error = ServerStartError(self.host, self.port, str(exc))
                error.__cause__ = exc
                self.startup_error = error
                self._state = AcceptorState.STOPPED
                LOGGER.error("caught exception on startup: %s", error)
                return False
            self._listener = listener
            with self._sessions_lock:
                self._state = AcceptorState.LISTENING
            self._thread = threading.Thread(
                target=listener.serve_forever,
                kwargs={"poll_interval": self.poll_interval},
                name="linecmd-acceptor",
                daemon=True,
            )
            self._thread.start()
            LOGGER.info("listening on %s:%d", *self.address)
            return True

    def stop(self) -> None:
        """Disconnect every session and close the listener.

        Returns once the shutdown has been issued; session threads finish
        tearing down on their own.
        """
        with self._state_lock:
            if self._state is not AcceptorState.LISTENING:
                LOGGER.warning("stop requested while %s; ignoring", self._state.value)
                return
            with self._sessions_lock:
                self._state = AcceptorState.STOPPING
                live = list(self._sessions.values())
                self._sessions.clear()
            LOGGER.info("stopping acceptor; disconnecting %d client(s)", len(live))
            for session in live:
                session.send(protocol.DISCONNECTED)
                session.cancel()
            listener, self._listener = self._listener, None
            accept_thread, self._thread = self._thread, None
            if listener is not None:
                if accept_thread is threading.current_thread():
                    # shutdown() waits for serve_forever, which is this thread.
                    threading.Thread(target=self._close_listener, args=(listener,), daemon=True).start()
                else:
                    self._close_listener(listener)
            self._state = AcceptorState.STOPPED
            LOGGER.info("acceptor stopped")

    def send_to_client(self, client_id: str, line: str) -> bool:
        with self._sessions_lock:
            if self._state is not AcceptorState.LISTENING:
                return False
            session = self._sessions.get(client_id)
        if session is None:
            return False
        return session.send(line)

    def add_spy(self, spy: ServerSpy) -> None:
        with self._sessions_lock:
            self.spies.add(spy)
            for session in self._sessions.values():
                session.add_spy(spy)

    def remove_spy(self, spy: ServerSpy) -> None:
        with self._sessions_lock:
            self.spies.remove(spy)
            for session in self._sessions.values():
                session.remove_spy(spy)

    def session_ids(self) -> List[str]:
        with self._sessions_lock:
            return sorted(self._sessions)

    def get_session(self, client_id: str) -> Optional[ClientSession]:
        with self._sessions_lock:
            return self._sessions.get(client_id)

    def _accept(self, request: socket.socket, client_address: Any) -> None:
        with self._sessions_lock:
            if self._state is not AcceptorState.LISTENING:
                session = None
            else:
                session_id = f"{self.client_id_prefix}{next(self._ordinals):02d}"
                session = ClientSession(
                    session_id,
                    request,
                    registry=self.registry,
                    server=self.server,
                    spies=self.spies.snapshot(),
                    on_close=self._session_closed,
                    encoding=self.encoding,
                )
                self._sessions[session_id] = session
        if session is None:
            LOGGER.debug("dropping connection from %s during shutdown", client_address)
            request.close()
            return
        LOGGER.info("accepted %s from %s", session.session_id, client_address)
        self.spies.notify_connected(self.server, session.session_id)
        session.start()

    def _session_closed(self, session: ClientSession) -> None:
        with self._sessions_lock:
            if self._sessions.get(session.session_id) is session:
                del self._sessions[session.session_id]

    @staticmethod
    def _close_listener(listener: _ListeningServer) -> None:
        listener.shutdown()
        listener.server_close()


__all__ = ["AcceptorState", "ConnectionAcceptor"]
