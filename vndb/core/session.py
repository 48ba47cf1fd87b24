"""Session: one logged-in connection to the VNDB API.

``Session`` encapsulates the full lifecycle:

    connect() → open socket → login (synchronous) → start inbound delivery

    dispatch() → queue waiter + write request → wait for the reply

    close() → close socket → fail pending waiters

All requests on a session share one connection and are pipelined: a caller
blocks only on its own reply, never on the requests of other callers.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from vndb.core.connection import Endpoint, VndbConnection
from vndb.core.correlator import Correlator, Response
from vndb.core.exceptions import (
    DesynchronizedError,
    RequestTimeoutError,
    SessionClosedError,
    SessionError,
    SessionFailedError,
)

logger = logging.getLogger("vndb.core.session")

PROTOCOL_VERSION = 1
CLIENT_NAME = "vndbpy"
CLIENT_VERSION = "0.1.0"

FaultCallback = Callable[["Session", Exception], None]


@dataclass(frozen=True, slots=True)
class Credentials:
    """Username/password pair sent with ``login``."""

    username: str
    password: str = field(repr=False)


def login_args(credentials: Optional[Credentials] = None) -> dict[str, Any]:
    """Build the ``login`` payload, with credentials only when given."""
    args: dict[str, Any] = {
        "protocol": PROTOCOL_VERSION,
        "client": CLIENT_NAME,
        "clientver": CLIENT_VERSION,
    }
    if credentials is not None:
        args["username"] = credentials.username
        args["password"] = credentials.password
    return args


class Session:
    """A single logged-in connection.

    Parameters
    ----------
    endpoint:
        API server host/port.
    credentials:
        Optional login credentials; fixed for the lifetime of the session.
    use_tls:
        Whether to wrap the socket in TLS (default ``True``).
    connect_timeout:
        Seconds allowed for connecting and for the login reply.
    request_timeout:
        Default for :meth:`dispatch`; ``None`` waits forever.
    on_fault:
        Called with ``(session, exc)`` when the session dies on its own
        (connection lost, unsolicited response).
    """

    def __init__(
        self,
        endpoint: Endpoint,
        credentials: Optional[Credentials] = None,
        *,
        use_tls: bool = True,
        connect_timeout: float = 10.0,
        request_timeout: Optional[float] = None,
        on_fault: Optional[FaultCallback] = None,
    ) -> None:
        self._endpoint = endpoint
        self._credentials = credentials
        self._request_timeout = request_timeout
        self._on_fault = on_fault

        self._connection = VndbConnection(
            endpoint, use_tls=use_tls, connect_timeout=connect_timeout
        )
        self._correlator = Correlator(self._connection.send)
        self._login_response: Optional[Response] = None
        self._fault: Optional[Exception] = None

        self._initialized = False
        self._closed = False
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open" if self._initialized else "new"
        user = self._credentials.username if self._credentials else None
        return f"<Session {self._endpoint.host}:{self._endpoint.port} user={user!r} {state}>"

    # -- properties --------------------------------------------------------

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    @property
    def connected(self) -> bool:
        return self._initialized and not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def fault(self) -> Optional[Exception]:
        """The error that killed the session, if it died on its own."""
        return self._fault

    @property
    def login_response(self) -> Optional[Response]:
        """The decoded reply to ``login``.  Recorded, never validated."""
        return self._login_response

    @property
    def pending(self) -> int:
        return self._correlator.pending

    # -- public API --------------------------------------------------------

    def connect(self) -> "Session":
        """Connect and log in.  Idempotent while the session is open."""
        if self._initialized and not self._closed:
            return self
        with self._lock:
            if self._closed:
                raise SessionClosedError("Session has already been closed")
            if self._initialized:
                return self
            try:
                self._do_initialize()
            except Exception:
                self._closed = True
                self._connection.close()
                raise
            self._initialized = True
        return self

    def dispatch(
        self,
        command: str,
        args: Any = None,
        *,
        timeout: Optional[float] = None,
    ) -> Response:
        """Send *command* and block until its ``(keyword, payload)`` reply arrives.

        *timeout* (or the session's ``request_timeout``) bounds the wait.  A
        request that timed out keeps its place in the queue, so its late
        reply is consumed and discarded instead of being handed to the next
        caller.
        """
        if self._closed:
            raise self._fault or SessionClosedError("Session is closed")
        if not self._initialized:
            raise SessionError("Session is not connected; call connect() first")

        try:
            waiter = self._correlator.dispatch(command, args)
        except SessionFailedError as exc:
            self._fail(exc)
            raise

        if timeout is None:
            timeout = self._request_timeout
        try:
            return waiter.result(timeout)
        except FutureTimeoutError as exc:
            if not waiter.cancel():
                return waiter.result()
            raise RequestTimeoutError(f"No response to '{command}' within {timeout:.2f} sec") from exc

    def close(self) -> None:
        """Close the connection.  Requests still pending fail with SessionClosedError."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        self._connection.close()
        failed = self._correlator.fail_all(SessionClosedError("Session was closed"))
        if failed:
            logger.warning("Session closed with %d request(s) unanswered", failed)
        logger.info("Session to %s closed", self._endpoint.host)

    # -- context manager ---------------------------------------------------

    def __enter__(self) -> "Session":
        return self.connect()

    def __exit__(self, *_exc: Any) -> None:
        self.close()

    # -- private -----------------------------------------------------------

    def _do_initialize(self) -> None:
        self._connection.open()
        self._login_response = self._connection.handshake(login_args(self._credentials))

        keyword = self._login_response[0]
        if keyword != "ok":
            # Accepted regardless; the server reply is only recorded.
            logger.warning("Login answered with '%s': %s", keyword, self._login_response[1])

        self._connection.start_delivery(self._on_frame, self._on_lost)
        logger.info(
            "Session established to %s:%d (user=%s)",
            self._endpoint.host,
            self._endpoint.port,
            self._credentials.username if self._credentials else None,
        )

    def _on_frame(self, data: bytes) -> None:
        try:
            self._correlator.on_message(data)
        except DesynchronizedError as exc:
            self._fail(exc)

    def _on_lost(self, exc: Exception) -> None:
        failure = SessionFailedError(f"Connection to {self._endpoint.host} lost: {exc}")
        failure.__cause__ = exc
        self._fail(failure)

    def _fail(self, exc: Exception) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._fault = exc

        logger.error("Session to %s failed: %s", self._endpoint.host, exc)
        self._correlator.fail_all(exc)
        self._connection.close()
        if self._on_fault is not None:
            try:
                self._on_fault(self, exc)
            except Exception:
                logger.warning("Fault observer raised", exc_info=True)
