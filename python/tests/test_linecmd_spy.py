from __future__ import annotations

import logging

from linecmd import LoggingSpy, ServerSpy, SpyBus


class RecordingSpy(ServerSpy):
    def __init__(self) -> None:
        self.events = []

    def message_received(self, server, client_id, raw_message):
        self.events.append(("received", client_id, raw_message))

    def message_sent(self, server, client_id, raw_message):
        self.events.append(("sent", client_id, raw_message))

    def client_connected(self, server, client_id):
        self.events.append(("connected", client_id))

    def client_disconnected(self, server, client_id):
        self.events.append(("disconnected", client_id))


class ExplodingSpy(ServerSpy):
    def message_received(self, server, client_id, raw_message):
        raise RuntimeError("spy failure")


def test_bus_fans_out_to_every_spy():
    first, second = RecordingSpy(), RecordingSpy()
    bus = SpyBus([first, second])
    bus.notify_connected(None, "LCC00")
    bus.notify_received(None, "LCC00", "ECHO:hi")
    bus.notify_sent(None, "LCC00", "OK:hi")
    bus.notify_disconnected(None, "LCC00")
    expected = [
        ("connected", "LCC00"),
        ("received", "LCC00", "ECHO:hi"),
        ("sent", "LCC00", "OK:hi"),
        ("disconnected", "LCC00"),
    ]
    assert first.events == expected
    assert second.events == expected


def test_bus_add_and_remove_by_identity():
    spy = RecordingSpy()
    bus = SpyBus()
    assert bus.add(spy)
    assert not bus.add(spy)
    assert len(bus) == 1
    assert spy in bus
    assert bus.remove(spy)
    assert not bus.remove(spy)
    bus.notify_received(None, "LCC00", "ECHO:hi")
    assert spy.events == []


def test_failing_spy_does_not_stop_others(caplog):
    good = RecordingSpy()
    bus = SpyBus([ExplodingSpy(), good])
    with caplog.at_level(logging.ERROR, logger="linecmd.spy"):
        bus.notify_received(None, "LCC00", "WHO")
    assert good.events == [("received", "LCC00", "WHO")]
    assert "spy failure" in caplog.text


def test_base_spy_ignores_everything():
    bus = SpyBus([ServerSpy()])
    bus.notify_connected(None, "LCC00")
    bus.notify_disconnected(None, "LCC00")


def test_logging_spy_writes_traffic(caplog):
    bus = SpyBus([LoggingSpy()])
    with caplog.at_level(logging.INFO, logger="linecmd.traffic"):
        bus.notify_received(None, "LCC00", "ECHO:hi")
        bus.notify_sent(None, "LCC00", "OK:hi")
    assert "LCC00 >> ECHO:hi" in caplog.text
    assert "LCC00 << OK:hi" in caplog.text
