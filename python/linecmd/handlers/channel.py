"""Channel commands: SUB, UNSUB, SEND and CHANNELS."""

from __future__ import annotations

from typing import Any

from ..registry import CommandHandler


class SubscribeHandler(CommandHandler):
    def __init__(self) -> None:
        super().__init__(
            "SUB",
            "SUBSCRIBE",
            min_params=1,
            max_params=1,
            help_text="Starts listening for messages on the given channel.",
        )
        self.usage_text = f"{self.name}:<channel>"

    def handle(self, server: Any, client_id: str, line: str) -> str:
        parts = self.split_fields(line)
        if len(parts) != 2:
            return self.error_response("Expected 1 parameter (channel name)")
        try:
            server.channels.subscribe(client_id, parts[1])
        except ValueError as exc:
            return self.error_response(str(exc))
        return self.ok_response()


class UnsubscribeHandler(CommandHandler):
    def __init__(self) -> None:
        super().__init__(
            "UNSUB",
            "UNSUBSCRIBE",
            min_params=1,
            max_params=1,
            help_text="Stops listening for messages on the given channel.",
        )
        self.usage_text = f"{self.name}:<channel>"

    def handle(self, server: Any, client_id: str, line: str) -> str:
        parts = self.split_fields(line)
        if len(parts) != 2:
            return self.error_response("Expected 1 parameter (channel name)")
        try:
            server.channels.unsubscribe(client_id, parts[1])
        except ValueError as exc:
            return self.error_response(str(exc))
        return self.ok_response()


class SendHandler(CommandHandler):
    def __init__(self) -> None:
        super().__init__(
            "SEND",
            "PUBLISH",
            min_params=2,
            help_text="Sends a message to every other subscriber of a channel.",
        )
        self.usage_text = f"{self.name}:<channel>:<message>"

    def handle(self, server: Any, client_id: str, line: str) -> str:
        parts = self.split_fields(line)
        if len(parts) < 3:
            return self.error_response("Expected 2 parameters (channel name and message)")
        try:
            delivered = server.channels.publish(parts[1], self.fields_to_end(line, 2), sender=client_id)
        except ValueError as exc:
            return self.error_response(str(exc))
        return self.ok_response(str(delivered))


class ChannelsHandler(CommandHandler):
    def __init__(self) -> None:
        super().__init__(
            "CHANNELS",
            max_params=0,
            help_text="Lists active channels and their subscriber counts.",
        )

    def handle(self, server: Any, client_id: str, line: str) -> str:
        listing = [f"{name} ({count} subscribers)" for name, count in server.channels.channels().items()]
        return self.ok_response("\n".join(listing))
