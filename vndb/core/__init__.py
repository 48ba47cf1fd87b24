"""vndb core — the protocol session engine.

This package provides the foundation for every command helper:

* codec — frame encode/decode and stream reassembly
* VndbConnection — TLS socket, login exchange, inbound reader thread
* Correlator — matches responses to requests in FIFO order
* Session — one logged-in, pipelined connection
* SessionRegistry — the process-wide global session
* Exception hierarchy — all vndb errors

The command helpers in ``vndb.commands`` only format arguments and call
``Session.dispatch``.
"""

from __future__ import annotations

from vndb.core import codec
from vndb.core.connection import Endpoint, VndbConnection
from vndb.core.correlator import Correlator, Waiter
from vndb.core.exceptions import (
    AlreadyRunningError,
    ConnectError,
    DecodeError,
    DesynchronizedError,
    HandshakeError,
    NotRunningError,
    RegistryError,
    RequestTimeoutError,
    SessionClosedError,
    SessionError,
    SessionFailedError,
    TransportError,
    VndbError,
)
from vndb.core.registry import SessionRegistry, default_registry
from vndb.core.session import Credentials, Session, login_args

__all__ = [
    # Codec
    "codec",
    # Connection
    "Endpoint",
    "VndbConnection",
    # Correlation
    "Correlator",
    "Waiter",
    # Session
    "Session",
    "Credentials",
    "login_args",
    # Registry
    "SessionRegistry",
    "default_registry",
    # Exceptions
    "VndbError",
    "ConnectError",
    "HandshakeError",
    "TransportError",
    "DecodeError",
    "RequestTimeoutError",
    "SessionError",
    "SessionClosedError",
    "SessionFailedError",
    "DesynchronizedError",
    "RegistryError",
    "AlreadyRunningError",
    "NotRunningError",
]
