"""Channel broadcast tests: ChannelManager bookkeeping and ChannelSubscriber delivery."""

from __future__ import annotations

import threading

import pytest

from conftest import wait_until
from linecmd import ChannelManager, ChannelSubscriber
from linecmd.channels import normalise_channel


class _Inbox:
    def __init__(self) -> None:
        self.messages = []
        self._lock = threading.Lock()

    def __call__(self, channel: str, message: str) -> None:
        with self._lock:
            self.messages.append((channel, message))


def test_normalise_channel():
    assert normalise_channel("  news ") == "news"
    with pytest.raises(ValueError):
        normalise_channel("   ")
    with pytest.raises(ValueError):
        normalise_channel(None)


def test_manager_bookkeeping():
    manager = ChannelManager()
    assert manager.subscribe("LCC00", "news")
    assert not manager.subscribe("LCC00", "news")
    assert manager.subscribe("LCC01", "news")
    assert manager.subscribe("LCC01", "alerts")
    assert manager.channels() == {"alerts": 1, "news": 2}
    assert manager.channels_for("LCC01") == ["alerts", "news"]
    assert manager.unsubscribe("LCC00", "news")
    assert not manager.unsubscribe("LCC00", "news")
    assert manager.unsubscribe_all("LCC01") == ["alerts", "news"]
    assert manager.channels() == {}


def test_manager_publish_skips_sender():
    class _Server:
        def __init__(self) -> None:
            self.sent = []

        def send_to_client(self, client_id, line):
            self.sent.append((client_id, line))
            return True

    server = _Server()
    manager = ChannelManager(server)
    for client_id in ("LCC00", "LCC01", "LCC02"):
        manager.subscribe(client_id, "news")
    assert manager.publish("news", "multi\nline", sender="LCC01") == 2
    assert server.sent == [("LCC00", "MSG:news:multi line"), ("LCC02", "MSG:news:multi line")]


def test_manager_drops_client_on_disconnect():
    manager = ChannelManager()
    manager.subscribe("LCC00", "news")
    manager.client_disconnected(None, "LCC00")
    assert manager.subscribers("news") == []


def test_subscriber_receives_published_messages(server, client):
    inbox = _Inbox()
    subscriber = ChannelSubscriber("127.0.0.1", server.port, ["news", "alerts"], inbox)
    assert subscriber.connect()
    try:
        assert subscriber.is_listening
        assert subscriber.errors == []
        assert wait_until(lambda: server.channels.channels() == {"alerts": 1, "news": 1})

        response = client.send_command("SEND", "news", "hello:world")
        assert response.is_success
        assert response.message == "1"
        client.send_command("PUBLISH", "alerts", "fire")
        assert wait_until(lambda: len(inbox.messages) == 2)
        assert inbox.messages == [("news", "hello:world"), ("alerts", "fire")]
    finally:
        subscriber.close()


def test_sender_does_not_receive_its_own_message(server, client):
    assert client.send_command("SUB", "news").is_success
    response = client.send_command("SEND", "news", "echo?")
    assert response.message == "0"
    assert client.send_command("ECHO", "next").message == "next"


def test_subscriber_records_rejected_channel(server):
    subscriber = ChannelSubscriber("127.0.0.1", server.port, ["news", " "], _Inbox())
    assert subscriber.connect()
    try:
        assert len(subscriber.errors) == 1
        assert "Expected 1 parameter (channel name)" in subscriber.errors[0]
    finally:
        subscriber.close()


def test_subscriber_stops_when_server_stops(server):
    subscriber = ChannelSubscriber("127.0.0.1", server.port, ["news"], _Inbox())
    assert subscriber.connect()
    assert wait_until(lambda: server.channels.subscribers("news") != [])
    server.stop()
    assert wait_until(lambda: not subscriber.is_listening)
    subscriber.close()


def test_subscriber_cleanup_on_hangup(server):
    subscriber = ChannelSubscriber("127.0.0.1", server.port, ["news"], _Inbox())
    assert subscriber.connect()
    assert wait_until(lambda: server.channels.subscribers("news") != [])
    subscriber.close()
    assert wait_until(lambda: server.channels.channels() == {})


def test_subscriber_connect_failure():
    subscriber = ChannelSubscriber("127.0.0.1", 1, ["news"], _Inbox(), connect_timeout=1.0)
    assert not subscriber.connect()
    assert not subscriber.is_listening
