"""Persistent TLS connection to the VNDB API server.

VndbConnection owns the socket.  It performs the login exchange synchronously
and then hands the socket over to a reader thread that pushes every complete
inbound frame to a callback.
"""

from __future__ import annotations

import logging
import socket
import ssl
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from vndb.core import codec
from vndb.core.exceptions import ConnectError, DecodeError, HandshakeError, TransportError

logger = logging.getLogger("vndb.core.connection")

# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

_CHUNK_SIZE = 65_536

FrameCallback = Callable[[bytes], None]
LostCallback = Callable[[Exception], None]


@dataclass(frozen=True, slots=True)
class Endpoint:
    """API server host/port pair."""

    host: str
    port: int


def _redact(login_args: dict[str, Any]) -> dict[str, Any]:
    if "password" not in login_args:
        return login_args
    return {**login_args, "password": "***"}


# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------


class VndbConnection:
    """TCP/TLS socket to the API server.

    Lifecycle
    ---------
    1. ``open()`` — connect (and wrap in TLS).
    2. ``handshake(login_args)`` — send ``login`` and block for its reply.
    3. ``start_delivery(on_frame, on_lost)`` — spawn the reader thread.
    4. ``send(data)`` — write a framed request.
    5. ``close()`` — tear everything down.

    ``send`` is not locked here; the session serializes writers.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        *,
        use_tls: bool = True,
        connect_timeout: float = 10.0,
    ) -> None:
        self._endpoint = endpoint
        self._use_tls = use_tls
        self._connect_timeout = connect_timeout

        self._sock: Optional[socket.socket] = None
        self._frames = codec.FrameBuffer()
        self._reader: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._closing = False

    # -- public ------------------------------------------------------------

    def open(self) -> None:
        """Open the socket to the API server."""
        with self._lock:
            if self._sock is not None:
                return
            self._sock = self._open_socket()
        logger.debug(
            "Connected to %s:%d (tls=%s)",
            self._endpoint.host,
            self._endpoint.port,
            self._use_tls,
        )

    def handshake(self, login_args: dict[str, Any]) -> tuple[str, Any]:
        """Send ``login`` and synchronously read exactly one reply.

        Wire format:
            Client → Server
                login {"protocol":1,"client":...,"clientver":...}<0x04>
            Server → Client
                ok<0x04>   (or any other single frame)
        """
        if self._sock is None:
            raise HandshakeError("Connection is not open")

        logger.debug("Sending login %s", _redact(login_args))
        try:
            self._sock.sendall(codec.encode("login", login_args))
            frame = self._read_frame()
        except OSError as exc:
            raise HandshakeError(f"Login I/O failure: {exc}") from exc

        try:
            response = codec.decode(frame)
        except DecodeError as exc:
            raise HandshakeError(f"Malformed login response: {exc}") from exc

        logger.debug("Login response keyword=%s", response[0])
        return response

    def start_delivery(self, on_frame: FrameCallback, on_lost: LostCallback) -> None:
        """Switch to event-driven delivery: a reader thread feeds *on_frame*."""
        if self._sock is None:
            raise TransportError("Connection is not open")
        with self._lock:
            if self._reader is not None:
                return
            self._sock.settimeout(None)
            self._reader = threading.Thread(
                target=self._read_loop,
                args=(on_frame, on_lost),
                name=f"vndb-reader-{self._endpoint.host}",
                daemon=True,
            )
            self._reader.start()

    def send(self, data: bytes) -> None:
        """Write one framed message."""
        sock = self._sock
        if sock is None or self._closing:
            raise TransportError("Connection is closed")
        try:
            sock.sendall(data)
        except OSError as exc:
            raise TransportError(f"Write to {self._endpoint.host} failed: {exc}") from exc

    def close(self) -> None:
        """Close the socket gracefully and stop the reader thread."""
        with self._lock:
            if self._closing:
                return
            self._closing = True
            sock = self._sock
            reader = self._reader

        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            sock.close()

        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=5)

        logger.debug("Connection to %s closed", self._endpoint.host)

    # -- private -----------------------------------------------------------

    def _open_socket(self) -> socket.socket:
        address = (self._endpoint.host, self._endpoint.port)
        try:
            raw = socket.create_connection(address, timeout=self._connect_timeout)
        except OSError as exc:
            raise ConnectError(
                f"Could not connect to {self._endpoint.host}:{self._endpoint.port}: {exc}"
            ) from exc

        if not self._use_tls:
            return raw
        try:
            ctx = ssl.create_default_context()
            return ctx.wrap_socket(raw, server_hostname=self._endpoint.host)
        except (OSError, ssl.SSLError) as exc:
            raw.close()
            raise ConnectError(
                f"TLS handshake with {self._endpoint.host}:{self._endpoint.port} failed: {exc}"
            ) from exc

    def _read_frame(self) -> bytes:
        """Block until one full frame is buffered.  Extra bytes stay buffered."""
        assert self._sock is not None
        while True:
            frame = self._frames.next_frame()
            if frame is not None:
                return frame
            chunk = self._sock.recv(_CHUNK_SIZE)
            if not chunk:
                raise HandshakeError("Server closed the connection during login")
            self._frames.feed(chunk)

    def _read_loop(self, on_frame: FrameCallback, on_lost: LostCallback) -> None:
        sock = self._sock
        assert sock is not None
        error: Optional[Exception] = None
        try:
            while True:
                # Frames already buffered may have arrived with the login reply.
                for frame in iter(self._frames.next_frame, None):
                    on_frame(frame)
                chunk = sock.recv(_CHUNK_SIZE)
                if not chunk:
                    error = TransportError("Server closed the connection")
                    break
                self._frames.feed(chunk)
        except OSError as exc:
            error = TransportError(f"Read from {self._endpoint.host} failed: {exc}")
        except Exception as exc:
            logger.exception("Inbound delivery stopped")
            error = exc

        if self._closing:
            logger.debug("Reader thread exiting after close")
            return
        on_lost(error)
