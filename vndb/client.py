"""Top‑level client factory.

Provides the ``Client`` class that holds connection settings and opens
sessions, either registered as the process-wide global session or as
independent local sessions.

Usage::

    from vndb import Client

    api = Client()

    # Context manager — a local session, closed on exit
    with api.open() as session:
        print(session.dispatch("dbstats"))

    # Global session, reachable from vndb.dbstats() etc.
    api.start(username="...", password="...")
    ...
    api.stop()
"""

from __future__ import annotations

import logging
from typing import Optional

from vndb.core.connection import Endpoint
from vndb.core.registry import SessionRegistry, default_registry
from vndb.core.session import Credentials, FaultCallback, Session

logger = logging.getLogger("vndb.client")

_DEFAULT_HOST = "api.vndb.org"
_DEFAULT_PORT = 19_534
_DEFAULT_TLS_PORT = 19_535
_DEFAULT_CONNECT_TIMEOUT = 10.0


def _credentials(username: Optional[str], password: Optional[str]) -> Optional[Credentials]:
    if username is None and password is None:
        return None
    if username is None or password is None:
        raise ValueError("username and password must be given together")
    return Credentials(username=username, password=password)


class Client:
    """Factory that opens sessions against one API server.

    Parameters
    ----------
    host:
        API server host (default ``api.vndb.org``).
    port:
        API server port; defaults to 19535 with TLS and 19534 without.
    use_tls:
        Whether sessions use TLS (default ``True``).
    connect_timeout:
        Seconds allowed for connecting and logging in.
    request_timeout:
        Default per-request timeout; ``None`` waits indefinitely.
    registry:
        Registry used for the global session (default: the process-wide one).
    on_fault:
        Observer called when a session dies on its own.
    """

    def __init__(
        self,
        host: str = _DEFAULT_HOST,
        port: Optional[int] = None,
        *,
        use_tls: bool = True,
        connect_timeout: float = _DEFAULT_CONNECT_TIMEOUT,
        request_timeout: Optional[float] = None,
        registry: Optional[SessionRegistry] = None,
        on_fault: Optional[FaultCallback] = None,
    ) -> None:
        if port is None:
            port = _DEFAULT_TLS_PORT if use_tls else _DEFAULT_PORT
        self._endpoint = Endpoint(host=host, port=port)
        self._use_tls = use_tls
        self._connect_timeout = connect_timeout
        self._request_timeout = request_timeout
        self._registry = registry if registry is not None else default_registry
        self._on_fault = on_fault
        logger.debug("Client created for %s:%d (tls=%s)", host, port, use_tls)

    # -- properties --------------------------------------------------------

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    # -- factory methods ---------------------------------------------------

    def session(self, credentials: Optional[Credentials] = None) -> Session:
        """Create a session without connecting it."""
        return Session(
            self._endpoint,
            credentials,
            use_tls=self._use_tls,
            connect_timeout=self._connect_timeout,
            request_timeout=self._request_timeout,
            on_fault=self._on_fault,
        )

    def open(self, credentials: Optional[Credentials] = None) -> Session:
        """Connect and log in.  Nothing is returned if either step fails."""
        return self.session(credentials).connect()

    def start(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        *,
        global_session: bool = True,
    ) -> Session:
        """Open a session, registered globally unless *global_session* is false.

        Raises AlreadyRunningError if a global session is already live.
        """
        credentials = _credentials(username, password)
        if global_session:
            return self._registry.start_global(self, credentials)
        return self._registry.start_local(self, credentials)

    def stop(self, session: Optional[Session] = None) -> None:
        """Close *session*, or the global session when none is given."""
        if session is None:
            self._registry.stop_global()
        else:
            self._registry.stop(session)
