"""vndb — client for the VNDB TCP API.

Quick start::

    import vndb

    # Global session, used by the module-level helpers
    vndb.start()
    keyword, stats = vndb.dbstats()
    keyword, page = vndb.get("vn", "basic", vndb.filters.f("id = 17"))
    vndb.stop()

    # Local sessions, any number of them, addressed by handle
    with vndb.Client().open() as session:
        keyword, stats = vndb.dbstats(session)
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Union

from vndb import commands, filters
from vndb.client import Client
from vndb.core.correlator import Response
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
from vndb.core.session import CLIENT_VERSION, Credentials, Session

logger = logging.getLogger("vndb")

_default_client = Client()


def _resolve(session: Optional[Session]) -> Session:
    return session if session is not None else default_registry.require()


def start(
    username: Optional[str] = None,
    password: Optional[str] = None,
    *,
    global_session: bool = True,
    client: Optional[Client] = None,
) -> Session:
    """Start a session against the public API server.

    Parameters
    ----------
    username, password : str, optional
        Login credentials; both or neither.
    global_session : bool, optional
        Register as the global session (default) or return a local one.
    client : Client, optional
        Connection settings; defaults to ``Client()``.

    Raises
    ------
    AlreadyRunningError
        A global session is already running.
    """
    client = client if client is not None else _default_client
    return client.start(username, password, global_session=global_session)


def stop(session: Optional[Session] = None) -> None:
    """Stop *session*, or the global session.  Does nothing if none is running."""
    if session is None:
        default_registry.stop_global()
    else:
        default_registry.stop(session)


def dbstats(session: Optional[Session] = None, *, timeout: Optional[float] = None) -> Response:
    """Retrieve database statistics on *session* (default: the global session)."""
    return commands.dbstats(_resolve(session), timeout=timeout)


def get(
    type: str,
    flags: Union[str, Iterable[str]] = commands.DEFAULT_FLAGS,
    filters: str = commands.DEFAULT_FILTERS,
    options: Optional[dict[str, Any]] = None,
    *,
    session: Optional[Session] = None,
    timeout: Optional[float] = None,
) -> Response:
    """Fetch records; see :func:`vndb.commands.get`."""
    return commands.get(_resolve(session), type, flags, filters, options, timeout=timeout)


def set(  # noqa: A001
    type: str,
    id: int,
    fields: Optional[dict[str, Any]] = None,
    *,
    session: Optional[Session] = None,
    timeout: Optional[float] = None,
) -> Response:
    """Modify a record; see :func:`vndb.commands.set`."""
    return commands.set(_resolve(session), type, id, fields, timeout=timeout)


__all__ = [
    # Convenience functions
    "start",
    "stop",
    "dbstats",
    "get",
    "set",
    # Modules
    "commands",
    "filters",
    # Sessions
    "Client",
    "Session",
    "Credentials",
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

__version__ = CLIENT_VERSION
