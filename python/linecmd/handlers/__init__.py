"""Built-in command handlers."""

from __future__ import annotations

from typing import List

from ..registry import CommandHandler
from .channel import ChannelsHandler, SendHandler, SubscribeHandler, UnsubscribeHandler
from .echo import EchoHandler
from .help import HelpHandler
from .version import VersionHandler
from .who import WhoHandler


def builtin_handlers() -> List[CommandHandler]:
    return [
        EchoHandler(),
        HelpHandler(),
        WhoHandler(),
        VersionHandler(),
        SubscribeHandler(),
        UnsubscribeHandler(),
        SendHandler(),
        ChannelsHandler(),
    ]


__all__ = [
    "ChannelsHandler",
    "EchoHandler",
    "HelpHandler",
    "SendHandler",
    "SubscribeHandler",
    "UnsubscribeHandler",
    "VersionHandler",
    "WhoHandler",
    "builtin_handlers",
]
