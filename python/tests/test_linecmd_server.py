"""End-to-end tests: a real CommandServer on a loopback port and LineClient peers."""

from __future__ import annotations

import socket
import threading

import pytest

from conftest import wait_until
from linecmd import (
    AcceptorState,
    ClientConfig,
    CommandServer,
    ConnectionAcceptor,
    LineClient,
    ServerConfig,
    ServerSpy,
    ServerStartError,
    SessionEnd,
)
from linecmd.handlers import EchoHandler


class CountingSpy(ServerSpy):
    def __init__(self) -> None:
        self.received = []
        self.sent = []
        self.connected = []
        self.disconnected = []

    def message_received(self, server, client_id, raw_message):
        self.received.append(raw_message)

    def message_sent(self, server, client_id, raw_message):
        self.sent.append(raw_message)

    def client_connected(self, server, client_id):
        self.connected.append(client_id)

    def client_disconnected(self, server, client_id):
        self.disconnected.append(client_id)


def _connect(port: int) -> LineClient:
    cli = LineClient(ClientConfig(read_timeout=5.0))
    assert cli.connect("127.0.0.1", port)
    return cli


def test_echo_round_trip(client):
    response = client.send_command("ECHO", "blah", "blooh")
    assert response.is_success
    assert response.message == "blah:blooh"
    assert response.original_command == "ECHO:blah:blooh"


def test_unknown_commands(client):
    for name in ("HELLO", "FOO"):
        response = client.send_command(name)
        assert response.is_error
        assert response.message == "Unknown command"


def test_blank_command_is_answered_locally(client):
    response = client.send_command("   ")
    assert response.is_error
    assert response.message == "Unknown command"
    assert response.original_command == ""
    assert client.is_connected


def test_blank_command_sends_nothing_over_the_wire(server, client):
    spy = CountingSpy()
    server.add_spy(spy)
    client.send_command("   ")
    client.send_command("")
    assert client.send_command("ECHO", "x").message == "x"
    assert spy.received == ["ECHO:x"]


def test_send_without_connection_returns_none():
    assert LineClient().send_command("ECHO", "x") is None


def test_connect_failure_returns_false():
    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        port = probe.getsockname()[1]
    cli = LineClient(ClientConfig(connect_timeout=1.0))
    assert not cli.connect("127.0.0.1", port)
    assert not cli.is_connected


def test_help_over_the_wire(client):
    response = client.send_command("HELP")
    assert response.is_success
    assert "ECHO - Simply echoes whatever parameters you supply." in response.message.splitlines()
    usage = client.send_command("HELP", "ECHO")
    assert usage.is_success
    assert usage.message.endswith("USAGE: ECHO:<message>")


def test_who_reports_client_id(server, client):
    response = client.send_command("WHO")
    assert response.is_success
    assert response.message.startswith("LCC")
    assert response.message in server.session_ids()


def test_handler_fault_keeps_session_alive(server, client):
    @server.command("BOOM")
    def boom(srv, client_id, line):
        raise ValueError("no good")

    response = client.send_command("BOOM")
    assert response.is_error
    assert response.message == "BOOM failed: no good"
    assert client.send_command("ECHO", "still here").message == "still here"


def test_handler_returning_non_string_keeps_session_alive(server, client):
    @server.command("NADA")
    def nada(srv, client_id, line):
        return None

    response = client.send_command("NADA")
    assert response.is_error
    assert response.message == "NADA failed: returned NoneType"
    assert client.is_connected
    assert client.send_command("ECHO", "after").message == "after"


def test_disconnect_from_another_thread_unblocks_pending_command(server, client):
    gate = threading.Event()
    entered = threading.Event()

    @server.command("HANG")
    def hang(srv, client_id, line):
        entered.set()
        gate.wait(5.0)
        return "OK"

    result = {}
    sender = threading.Thread(target=lambda: result.setdefault("response", client.send_command("HANG")))
    sender.start()
    try:
        assert entered.wait(2.0)
        closer = threading.Thread(target=client.disconnect)
        closer.start()
        closer.join(timeout=2.0)
        assert not closer.is_alive()
        sender.join(timeout=2.0)
        assert not sender.is_alive()
    finally:
        gate.set()
    assert result["response"].is_server_disconnect_error
    assert not client.is_connected


def test_handlers_registered_while_running(server, client):
    server.register_handler(EchoHandler("ECHO", "BLAH"))
    assert client.send_command("BLAH", "x").message == "x"
    server.unregister_handler("BLAH")
    assert client.send_command("ECHO", "x").message == "Unknown command"


def test_stop_disconnects_clients_and_allows_restart(server, client):
    assert client.send_command("ECHO", "before").is_success
    server.stop()
    assert not server.is_up
    response = client.send_command("ECHO", "after")
    assert response.is_error
    assert response.is_server_disconnect_error
    assert not client.is_connected

    assert server.start()
    again = _connect(server.port)
    try:
        assert again.send_command("ECHO", "back").message == "back"
    finally:
        again.disconnect()


def test_fixed_port_can_be_reused_after_stop():
    first = CommandServer("127.0.0.1", 0)
    assert first.start()
    port = first.port
    first.stop()
    second = CommandServer("127.0.0.1", port)
    try:
        assert second.start(), second.startup_error
        assert second.port == port
    finally:
        second.stop()


def test_bind_failure_is_captured(server):
    clash = CommandServer("127.0.0.1", server.port)
    assert not clash.start()
    assert not clash.is_up
    assert isinstance(clash.startup_error, ServerStartError)
    assert isinstance(clash.startup_error.__cause__, OSError)
    assert str(server.port) in str(clash.startup_error)


def test_duplicate_start_and_stop_are_ignored(server):
    assert not server.start()
    assert server.is_up
    server.stop()
    server.stop()
    assert not server.is_up


def test_context_manager_starts_and_stops():
    with CommandServer(config=ServerConfig(host="127.0.0.1", port=0)) as srv:
        assert srv.is_up
        cli = _connect(srv.port)
        assert cli.send_command("VER").message == srv.server_name
        cli.disconnect()
    assert not srv.is_up


def test_spy_sees_traffic_until_removed(server, client):
    spy = CountingSpy()
    server.add_spy(spy)
    client.send_command("ECHO", "one")
    assert spy.received == ["ECHO:one"]
    assert spy.sent == ["OK:one"]
    server.remove_spy(spy)
    client.send_command("ECHO", "two")
    assert spy.received == ["ECHO:one"]
    assert spy.sent == ["OK:one"]


def test_spy_sees_connects_and_disconnects(server):
    spy = CountingSpy()
    server.add_spy(spy)
    clients = [_connect(server.port) for _ in range(3)]
    assert wait_until(lambda: len(spy.connected) == 3)
    for cli in clients:
        cli.disconnect()
    assert wait_until(lambda: len(spy.disconnected) == 3)
    assert sorted(spy.connected) == sorted(spy.disconnected)
    assert wait_until(lambda: server.session_ids() == [])


def test_client_ids_are_unique(server):
    clients = [_connect(server.port) for _ in range(4)]
    try:
        ids = [cli.send_command("WHO").message for cli in clients]
    finally:
        for cli in clients:
            cli.disconnect()
    assert len(set(ids)) == 4
    assert all(client_id.startswith("LCC") for client_id in ids)


def test_concurrent_clients_do_not_cross_talk(server):
    failures = []

    def worker(index: int) -> None:
        cli = _connect(server.port)
        try:
            for round_no in range(20):
                token = f"c{index}-r{round_no}"
                response = cli.send_command("ECHO", token)
                if response is None or response.message != token:
                    failures.append((token, response))
        finally:
            cli.disconnect()

    threads = [threading.Thread(target=worker, args=(idx,)) for idx in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    assert failures == []


def test_send_to_client_pushes_a_line(server):
    with socket.create_connection(("127.0.0.1", server.port), timeout=5) as sock:
        rfile = sock.makefile("rb")
        sock.sendall(b"WHO\n")
        client_id = rfile.readline().decode().strip().split(":", 1)[1]
        assert server.send_to_client(client_id, "hello there")
        assert rfile.readline() == b"hello there\n"
        rfile.close()
    assert not server.send_to_client("LCC99", "nobody")


def test_client_disconnect_notice_ends_session(server):
    spy = CountingSpy()
    server.add_spy(spy)
    with socket.create_connection(("127.0.0.1", server.port), timeout=5) as sock:
        assert wait_until(lambda: len(server.session_ids()) == 1)
        session_id = server.session_ids()[0]
        session = server._acceptor.get_session(session_id)
        sock.sendall(b"ERR:Disconnected\n")
        assert wait_until(lambda: spy.disconnected == [session_id])
        assert session.end_reason is SessionEnd.DISCONNECT_NOTICE
    assert spy.received == []


def test_acceptor_lifecycle_states(server):
    acceptor = ConnectionAcceptor("127.0.0.1", 0, registry=server.registry, server=server)
    assert acceptor.state is AcceptorState.STOPPED
    assert acceptor.start()
    assert acceptor.state is AcceptorState.LISTENING
    assert not acceptor.start()
    acceptor.stop()
    assert acceptor.state is AcceptorState.STOPPED


@pytest.mark.parametrize("enforce", [False, True])
def test_parameter_enforcement_over_the_wire(enforce):
    config = ServerConfig(host="127.0.0.1", port=0, enforce_param_counts=enforce)
    with CommandServer(config=config) as srv:
        cli = _connect(srv.port)
        try:
            response = cli.send_command("WHO", "extra")
        finally:
            cli.disconnect()
    assert response.is_error is enforce
