"""
linecmd - line-oriented command protocol over raw TCP.

A server binds a port and answers one command line at a time with a framed
``OK``/``ERR`` response; a client sends a line and reads until the marker
line.  Each module keeps one responsibility:

    protocol.py   → constants, command encoding, response decoding
    registry.py   → command handlers and name/alias dispatch
    spy.py        → traffic observers and their fan-out bus
    session.py    → one accepted connection and its reader thread
    acceptor.py   → listening socket, accept loop, coordinated shutdown
    server.py     → public server facade (CommandServer)
    client.py     → request/response client (LineClient)
    channels.py   → named broadcast channels
    subscriber.py → client that listens for channel broadcasts
"""

from .version import __version__  # noqa: F401
from .errors import LineCmdError, ServerStartError  # noqa: F401
from .protocol import (  # noqa: F401
    DELIMITER,
    DISCONNECTED,
    ERROR_HEADER,
    OK_HEADER,
    RESPONSE_ERR,
    RESPONSE_OK,
    UNRECOGNIZED_COMMAND,
    ServerResponse,
    decode_response,
    encode_command,
)
from .registry import CommandHandler, CommandRegistry, FunctionHandler, command  # noqa: F401
from .spy import LoggingSpy, ServerSpy, SpyBus  # noqa: F401
from .session import ClientSession, SessionEnd  # noqa: F401
from .acceptor import AcceptorState, ConnectionAcceptor  # noqa: F401
from .channels import ChannelManager  # noqa: F401
from .server import CommandServer, ServerConfig  # noqa: F401
from .client import ClientConfig, LineClient  # noqa: F401
from .subscriber import ChannelSubscriber  # noqa: F401

__all__ = [
    "AcceptorState",
    "ChannelManager",
    "ChannelSubscriber",
    "ClientConfig",
    "ClientSession",
    "CommandHandler",
    "CommandRegistry",
    "CommandServer",
    "ConnectionAcceptor",
    "DELIMITER",
    "DISCONNECTED",
    "ERROR_HEADER",
    "FunctionHandler",
    "LineClient",
    "LineCmdError",
    "LoggingSpy",
    "OK_HEADER",
    "RESPONSE_ERR",
    "RESPONSE_OK",
    "ServerConfig",
    "ServerResponse",
    "ServerSpy",
    "ServerStartError",
    "SessionEnd",
    "SpyBus",
    "UNRECOGNIZED_COMMAND",
    "command",
    "decode_response",
    "encode_command",
]
