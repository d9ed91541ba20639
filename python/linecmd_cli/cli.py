"""linecmd CLI entry point."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import threading
from pathlib import Path
from typing import List, Optional

from linecmd import ClientConfig, CommandServer, LineClient, LoggingSpy, ServerConfig
from linecmd.server import DEFAULT_PORT, DEFAULT_SERVER_NAME

from .history import HistoryStore
from .output import emit_response
from .parser import split_input
from .repl import ClientREPL

LOG = logging.getLogger("linecmd_cli.cli")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="linecmd", description="Line command protocol server and client")
    parser.add_argument("--log-level", default=os.environ.get("LINECMD_LOG", "INFO"), help="Logging level (default INFO)")
    modes = parser.add_subparsers(dest="mode", required=True)

    server = modes.add_parser("server", help="Run a command server until interrupted")
    server.add_argument("--host", default="0.0.0.0", help="Listen host")
    server.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"Listen port (default {DEFAULT_PORT})")
    server.add_argument("--name", default=DEFAULT_SERVER_NAME, help="Banner reported by the VERSION command")
    server.add_argument("--spy", action="store_true", help="Log every line received and sent")

    client = modes.add_parser("client", help="Connect to a command server")
    client.add_argument("--host", default="127.0.0.1", help="Server host")
    client.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"Server port (default {DEFAULT_PORT})")
    client.add_argument("--timeout", type=float, help="Read timeout in seconds (default: wait forever)")
    client.add_argument(
        "-c",
        "--command",
        help="Send a single command non-interactively (e.g. 'ECHO:hello')",
    )
    client.add_argument(
        "--history",
        type=Path,
        default=Path.home() / ".linecmd-history",
        help="Path to the interactive command history file",
    )
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    LOG.debug("starting %s mode", args.mode)
    if args.mode == "server":
        return run_server(args)
    return run_client(args)


def run_server(args: argparse.Namespace, stop_event: Optional[threading.Event] = None) -> int:
    server = CommandServer(config=ServerConfig(host=args.host, port=args.port, server_name=args.name))
    if args.spy:
        server.add_spy(LoggingSpy())
    if not server.start():
        print(f"[linecmd] {server.startup_error}", file=sys.stderr)
        return 1
    host, port = server.address
    print(f"[linecmd] listening on {host}:{port}")
    stop_event = stop_event or threading.Event()
    try:
        while not stop_event.wait(0.5):
            pass
    except KeyboardInterrupt:
        print("\n[linecmd] shutting down")
    finally:
        server.stop()
    return 0


def run_client(args: argparse.Namespace) -> int:
    client = LineClient(ClientConfig(read_timeout=args.timeout))
    if not client.connect(args.host, args.port):
        print(f"error: unable to connect to {args.host} on port {args.port}", file=sys.stderr)
        return 1
    try:
        if args.command:
            return _run_single_command(client, args.command)
        repl = ClientREPL(client, history_store=HistoryStore(args.history))
        return repl.run()
    except KeyboardInterrupt:
        print()
        return 0
    finally:
        client.disconnect()


def _run_single_command(client: LineClient, command_line: str) -> int:
    command, params = split_input(command_line)
    if not command.strip():
        return 0
    response = client.send_command(command, *params)
    emit_response(response)
    if response is None or response.is_error:
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
