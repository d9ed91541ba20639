"""
Pytest configuration and fixtures for linecmd tests.
"""
import time

import pytest

from linecmd import ClientConfig, CommandServer, LineClient, ServerConfig


def wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` until it is truthy or ``timeout`` expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())


@pytest.fixture
def server():
    srv = CommandServer(config=ServerConfig(host="127.0.0.1", port=0, poll_interval=0.05))
    assert srv.start(), srv.startup_error
    yield srv
    if srv.is_up:
        srv.stop()


@pytest.fixture
def client(server):
    cli = LineClient(ClientConfig(read_timeout=5.0))
    assert cli.connect("127.0.0.1", server.port)
    yield cli
    cli.disconnect()
