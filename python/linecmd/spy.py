"""Traffic observers ("spies") and the bus that fans events out to them."""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterator, List, Optional

LOGGER = logging.getLogger("linecmd.spy")


class ServerSpy:
    """Observer of server traffic; override the callbacks you care about.

    Callbacks run synchronously on the thread that produced the event: the
    session thread for traffic and hangups, the acceptor thread for new
    connections.  Keep them short.
    """

    def message_received(self, server: Any, client_id: str, raw_message: str) -> None:
        pass

    def message_sent(self, server: Any, client_id: str, raw_message: str) -> None:
        pass

    def client_connected(self, server: Any, client_id: str) -> None:
        pass

    def client_disconnected(self, server: Any, client_id: str) -> None:
        pass


class LoggingSpy(ServerSpy):
    """Writes every event to a logger."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO) -> None:
        self.logger = logger or logging.getLogger("linecmd.traffic")
        self.level = level

    def message_received(self, server: Any, client_id: str, raw_message: str) -> None:
        self.logger.log(self.level, "%s >> %s", client_id, raw_message)

    def message_sent(self, server: Any, client_id: str, raw_message: str) -> None:
        self.logger.log(self.level, "%s << %s", client_id, raw_message)

    def client_connected(self, server: Any, client_id: str) -> None:
        self.logger.log(self.level, "%s connected", client_id)

    def client_disconnected(self, server: Any, client_id: str) -> None:
        self.logger.log(self.level, "%s disconnected", client_id)


class SpyBus:
    """Multicast a server event to every registered spy."""

    def __init__(self, spies: Optional[List[ServerSpy]] = None) -> None:
        self._spies: List[ServerSpy] = []
        self._lock = threading.Lock()
        for spy in spies or []:
            self.add(spy)

    def add(self, spy: ServerSpy) -> bool:
        with self._lock:
            if any(existing is spy for existing in self._spies):
                return False
            self._spies.append(spy)
            return True

    def remove(self, spy: ServerSpy) -> bool:
        with self._lock:
            for index, existing in enumerate(self._spies):
                if existing is spy:
                    del self._spies[index]
                    return True
            return False

    def snapshot(self) -> List[ServerSpy]:
        with self._lock:
            return list(self._spies)

    def __len__(self) -> int:
        with self._lock:
            return len(self._spies)

    def __iter__(self) -> Iterator[ServerSpy]:
        return iter(self.snapshot())

    def __contains__(self, spy: object) -> bool:
        with self._lock:
            return any(existing is spy for existing in self._spies)

    def notify_received(self, server: Any, client_id: str, raw_message: str) -> None:
        self._publish("message_received", server, client_id, raw_message)

    def notify_sent(self, server: Any, client_id: str, raw_message: str) -> None:
        self._publish("message_sent", server, client_id, raw_message)

    def notify_connected(self, server: Any, client_id: str) -> None:
        self._publish("client_connected", server, client_id)

    def notify_disconnected(self, server: Any, client_id: str) -> None:
        self._publish("client_disconnected", server, client_id)

    def _publish(self, callback_name: str, *args: Any) -> None:
        for spy in self.snapshot():
            try:
                getattr(spy, callback_name)(*args)
            except Exception:
                LOGGER.exception("spy %r failed in %s", spy, callback_name)


__all__ = ["LoggingSpy", "ServerSpy", "SpyBus"]
