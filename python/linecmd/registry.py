"""Command handlers and the name/alias registry that dispatches to them."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from . import protocol

LOGGER = logging.getLogger("linecmd.registry")

UNNAMED_COMMAND = "UNNAMED_COMMAND"

HandlerFunc = Callable[[Any, str, str], str]


@dataclass(eq=False)
class CommandHandler:
    """Server-side behaviour bound to a command name and optional alias.

    ``min_params``/``max_params`` are advisory; the registry only checks them
    when the server is configured to enforce parameter counts.  A
    ``max_params`` of ``None`` means unbounded.
    """

    name: str
    alias: Optional[str] = None
    min_params: int = 0
    max_params: Optional[int] = None
    help_text: str = ""
    usage_text: str = ""

    def __post_init__(self) -> None:
        name = protocol.normalise_name(self.name)
        self.name = name or UNNAMED_COMMAND
        self.alias = protocol.normalise_name(self.alias) or None
        if not self.usage_text:
            self.usage_text = self.name

    def handle(self, server: Any, client_id: str, line: str) -> str:
        raise NotImplementedError("CommandHandler must implement handle()")

    def accepts_param_count(self, count: int) -> bool:
        if count < self.min_params:
            return False
        return self.max_params is None or count <= self.max_params

    def describe_param_range(self) -> str:
        if self.max_params is None:
            return f"at least {self.min_params} parameters"
        if self.min_params == self.max_params:
            return f"exactly {self.min_params} parameters"
        return f"between {self.min_params} and {self.max_params} parameters"

    def listing(self) -> str:
        if self.alias:
            return f"{self.name} (alias {self.alias})"
        return self.name

    # Framing helpers for subclasses.
    split_fields = staticmethod(protocol.split_fields)
    fields_to_end = staticmethod(protocol.fields_to_end)
    ok_response = staticmethod(protocol.ok_response)
    error_response = staticmethod(protocol.error_response)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CommandHandler):
            return NotImplemented
        return (self.name, self.alias) == (other.name, other.alias)

    def __hash__(self) -> int:
        return hash((self.name, self.alias))

    def __str__(self) -> str:
        return self.name


@dataclass(eq=False)
class FunctionHandler(CommandHandler):
    """Handler backed by a plain ``(server, client_id, line) -> str`` callable."""

    func: Optional[HandlerFunc] = None

    def handle(self, server: Any, client_id: str, line: str) -> str:
        if self.func is None:
            raise NotImplementedError(f"{self.name} has no handler function")
        return self.func(server, client_id, line)


def command(
    name: str,
    *,
    alias: Optional[str] = None,
    min_params: int = 0,
    max_params: Optional[int] = None,
    help_text: str = "",
    usage_text: str = "",
) -> Callable[[HandlerFunc], FunctionHandler]:
    """Decorator turning a function into a :class:`FunctionHandler`."""

    def decorator(func: HandlerFunc) -> FunctionHandler:
        return FunctionHandler(
            name=name,
            alias=alias,
            min_params=min_params,
            max_params=max_params,
            help_text=help_text or (func.__doc__ or "").strip(),
            usage_text=usage_text,
            func=func,
        )

    return decorator


class CommandRegistry:
    """Maps normalised names and aliases to handlers; last registration wins."""

    def __init__(self, context: Any = None, *, enforce_param_counts: bool = False) -> None:
        self.context = context
        self.enforce_param_counts = enforce_param_counts
        self._handlers: Dict[str, CommandHandler] = {}
        self._lock = threading.Lock()

    def register(self, handler: Optional[CommandHandler]) -> None:
        if handler is None:
            return
        with self._lock:
            for key in (handler.name, handler.alias):
                if key and key in self._handlers:
                    self._evict(self._handlers[key])
            self._handlers[handler.name] = handler
            if handler.alias:
                self._handlers[handler.alias] = handler

    def unregister(self, name_or_alias: Optional[str]) -> None:
        key = protocol.normalise_name(name_or_alias)
        if not key:
            return
        with self._lock:
            handler = self._handlers.get(key)
            if handler is not None:
                self._evict(handler)

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()

    def lookup(self, name_or_alias: Optional[str]) -> Optional[CommandHandler]:
        key = protocol.normalise_name(name_or_alias)
        if not key:
            return None
        with self._lock:
            return self._handlers.get(key)

    def handlers(self) -> List[CommandHandler]:
        with self._lock:
            unique = {id(handler): handler for handler in self._handlers.values()}
        return sorted(unique.values(), key=lambda handler: handler.name)

    def list_commands(self) -> List[str]:
        return sorted(handler.listing() for handler in self.handlers())

    def __len__(self) -> int:
        return len(self.handlers())

    def __contains__(self, name_or_alias: object) -> bool:
        return isinstance(name_or_alias, str) and self.lookup(name_or_alias) is not None

    def dispatch(self, client_id: str, line: str) -> str:
        handler = self.lookup(protocol.command_name(line))
        if handler is None:
            return protocol.UNRECOGNIZED_COMMAND
        if self.enforce_param_counts:
            count = len(protocol.split_fields(line)) - 1
            if not handler.accepts_param_count(count):
                return protocol.error_response(f"{handler.name} expects {handler.describe_param_range()}")
        try:
            result = handler.handle(self.context, client_id, line)
        except Exception as exc:
            LOGGER.exception("handler %s failed for client %s", handler.name, client_id)
            return protocol.error_response(f"{handler.name} failed: {exc}")
        if not isinstance(result, str):
            LOGGER.error("handler %s returned %r for client %s", handler.name, result, client_id)
            return protocol.error_response(f"{handler.name} failed: returned {type(result).__name__}")
        return result

    def _evict(self, handler: CommandHandler) -> None:
        for key in (handler.name, handler.alias):
            if key and self._handlers.get(key) is handler:
                del self._handlers[key]


__all__ = [
    "UNNAMED_COMMAND",
    "CommandHandler",
    "CommandRegistry",
    "FunctionHandler",
    "HandlerFunc",
    "command",
]
