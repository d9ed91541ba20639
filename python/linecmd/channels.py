"""Named broadcast channels built on the server's out-of-band send."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Set

from . import protocol
from .spy import ServerSpy

LOGGER = logging.getLogger("linecmd.channels")


def normalise_channel(channel: Optional[str]) -> str:
    name = (channel or "").strip()
    if not name:
        raise ValueError("channel name must not be blank")
    return name


class ChannelManager(ServerSpy):
    """Tracks which clients listen on which channel.

    Registered as a spy on its server so a client that hangs up is dropped
    from every channel it had joined.
    """

    def __init__(self, server: Any = None) -> None:
        self.server = server
        self._channels: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def subscribe(self, client_id: str, channel: str) -> bool:
        name = normalise_channel(channel)
        with self._lock:
            members = self._channels.setdefault(name, set())
            if client_id in members:
                return False
            members.add(client_id)
        LOGGER.debug("%s subscribed to %s", client_id, name)
        return True

    def unsubscribe(self, client_id: str, channel: str) -> bool:
        name = normalise_channel(channel)
        with self._lock:
            members = self._channels.get(name)
            if not members or client_id not in members:
                return False
            members.discard(client_id)
            if not members:
                del self._channels[name]
        LOGGER.debug("%s unsubscribed from %s", client_id, name)
        return True

    def unsubscribe_all(self, client_id: str) -> List[str]:
        dropped: List[str] = []
        with self._lock:
            for name in list(self._channels):
                members = self._channels[name]
                if client_id in members:
                    members.discard(client_id)
                    dropped.append(name)
                    if not members:
                        del self._channels[name]
        return sorted(dropped)

    def subscribers(self, channel: str) -> List[str]:
        name = normalise_channel(channel)
        with self._lock:
            return sorted(self._channels.get(name, ()))

    def channels(self) -> Dict[str, int]:
        with self._lock:
            return {name: len(self._channels[name]) for name in sorted(self._channels)}

    def channels_for(self, client_id: str) -> List[str]:
        with self._lock:
            return sorted(name for name, members in self._channels.items() if client_id in members)

    def publish(self, channel: str, message: str, *, sender: Optional[str] = None) -> int:
        """Push ``MSG:<channel>:<message>`` to every subscriber except the sender."""
        name = normalise_channel(channel)
        line = protocol.DELIMITER.join([protocol.CHANNEL_MESSAGE, name, message.replace("\n", " ")])
        delivered = 0
        for client_id in self.subscribers(name):
            if client_id == sender or self.server is None:
                continue
            if self.server.send_to_client(client_id, line):
                delivered += 1
        LOGGER.debug("published to %s: %d recipient(s)", name, delivered)
        return delivered

    def client_disconnected(self, server: Any, client_id: str) -> None:
        dropped = self.unsubscribe_all(client_id)
        if dropped:
            LOGGER.debug("%s left channels %s", client_id, ", ".join(dropped))


__all__ = ["ChannelManager", "normalise_channel"]
