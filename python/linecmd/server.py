"""Public server entry point: handler registration, lifecycle and spies."""

from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from . import protocol
from .acceptor import ConnectionAcceptor
from .channels import ChannelManager
from .errors import ServerStartError
from .handlers import builtin_handlers
from .registry import CommandHandler, CommandRegistry, FunctionHandler, HandlerFunc, command
from .spy import ServerSpy, SpyBus
from .version import __version__

LOGGER = logging.getLogger("linecmd.server")

DEFAULT_PORT = 1975
DEFAULT_SERVER_NAME = f"linecmd {__version__}"
CLIENT_ID_PREFIX = "LCC"


@dataclass
class ServerConfig:
    host: str = "localhost"
    port: int = DEFAULT_PORT
    server_name: str = DEFAULT_SERVER_NAME
    client_id_prefix: str = CLIENT_ID_PREFIX
    enforce_param_counts: bool = False
    poll_interval: float = 0.1
    install_builtins: bool = True
    encoding: str = "utf-8"


class CommandServer:
    """Line-protocol server exposing registered commands over TCP."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        *,
        config: Optional[ServerConfig] = None,
    ) -> None:
        cfg = config or ServerConfig()
        overrides = {}
        if host is not None:
            overrides["host"] = host
        if port is not None:
            overrides["port"] = port
        if overrides:
            cfg = dataclasses.replace(cfg, **overrides)
        if not cfg.server_name or not cfg.server_name.strip():
            cfg = dataclasses.replace(cfg, server_name=DEFAULT_SERVER_NAME)
        self.config = cfg
        self.registry = CommandRegistry(self, enforce_param_counts=cfg.enforce_param_counts)
        self.spies = SpyBus()
        self.channels = ChannelManager(self)
        self.spies.add(self.channels)
        self.startup_error: Optional[ServerStartError] = None
        self._acceptor: Optional[ConnectionAcceptor] = None
        self._lifecycle_lock = threading.Lock()
        if cfg.install_builtins:
            for handler in builtin_handlers():
                self.registry.register(handler)

    def __enter__(self) -> "CommandServer":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self.is_up:
            self.stop()

    #
    # Lifecycle
    #
    @property
    def server_name(self) -> str:
        return self.config.server_name

    @property
    def is_up(self) -> bool:
        acceptor = self._acceptor
        return acceptor is not None and acceptor.is_listening

    @property
    def address(self) -> Tuple[str, int]:
        acceptor = self._acceptor
        if acceptor is not None:
            return acceptor.address
        return self.config.host, self.config.port

    @property
    def port(self) -> int:
        return self.address[1]

    def start(self) -> bool:
        """Bind and start accepting; False (with ``startup_error`` set) on failure."""
        with self._lifecycle_lock:
            if self._acceptor is not None:
                LOGGER.warning("received start() while the server is already up; ignoring")
                return False
            LOGGER.info("starting server on %s:%d", self.config.host, self.config.port)
            self.startup_error = None
            acceptor = ConnectionAcceptor(
                self.config.host,
                self.config.port,
                registry=self.registry,
                server=self,
                client_id_prefix=self.config.client_id_prefix,
                poll_interval=self.config.poll_interval,
                encoding=self.config.encoding,
            )
            for spy in self.spies:
                acceptor.add_spy(spy)
            if not acceptor.start():
                self.startup_error = acceptor.startup_error
                return False
            self._acceptor = acceptor
            return True

    def stop(self) -> None:
        with self._lifecycle_lock:
            acceptor, self._acceptor = self._acceptor, None
            if acceptor is None:
                LOGGER.warning("received stop() while the server is not running; ignoring")
                return
            LOGGER.info("shutting down server")
            acceptor.stop()

    def send_to_client(self, client_id: str, line: str) -> bool:
        acceptor = self._acceptor
        if acceptor is None:
            return False
        return acceptor.send_to_client(client_id, line)

    def session_ids(self) -> List[str]:
        acceptor = self._acceptor
        return acceptor.session_ids() if acceptor is not None else []

    #
    # Spies
    #
    def add_spy(self, spy: ServerSpy) -> None:
        self.spies.add(spy)
        acceptor = self._acceptor
        if acceptor is not None:
            acceptor.add_spy(spy)

    def remove_spy(self, spy: ServerSpy) -> None:
        self.spies.remove(spy)
        acceptor = self._acceptor
        if acceptor is not None:
            acceptor.remove_spy(spy)

    #
    # Handlers
    #
    def register_handler(self, handler: Optional[CommandHandler]) -> None:
        self.registry.register(handler)

    def unregister_handler(self, name_or_alias: Optional[str]) -> None:
        self.registry.unregister(name_or_alias)

    def remove_all_handlers(self) -> None:
        self.registry.clear()

    def get_handler(self, name_or_alias: Optional[str]) -> Optional[CommandHandler]:
        return self.registry.lookup(name_or_alias)

    def list_commands(self) -> List[str]:
        return self.registry.list_commands()

    def execute_command(self, client_id: str, line: str) -> str:
        return self.registry.dispatch(client_id, line)

    @staticmethod
    def get_command_name(line: Optional[str]) -> str:
        return protocol.command_name(line)

    def command(self, name: str, **options: Any) -> Callable[[HandlerFunc], FunctionHandler]:
        """Decorator registering a function as a command handler."""

        def decorator(func: HandlerFunc) -> FunctionHandler:
            handler = command(name, **options)(func)
            self.register_handler(handler)
            return handler

        return decorator


__all__ = ["CLIENT_ID_PREFIX", "DEFAULT_PORT", "DEFAULT_SERVER_NAME", "CommandServer", "ServerConfig"]
