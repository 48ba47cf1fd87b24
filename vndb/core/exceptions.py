"""Custom exceptions for the vndb client.

All exceptions inherit from VndbError to allow catching any client error.
Secrets (passwords) are never included in exception messages.
"""

from __future__ import annotations


class VndbError(Exception):
    """Base exception for all vndb client errors."""


class ConnectError(VndbError):
    """Raised when the TCP/TLS connection to the API server cannot be opened."""


class HandshakeError(VndbError):
    """Raised when the login exchange fails (I/O error, EOF, malformed reply)."""


class TransportError(VndbError):
    """Raised when reading from or writing to an open connection fails."""


class DecodeError(VndbError):
    """Raised when a received frame cannot be decoded."""


class RequestTimeoutError(VndbError):
    """Raised when a caller gives up waiting for its response."""


class SessionError(VndbError):
    """Base class for errors that end a session."""


class SessionClosedError(SessionError):
    """Raised for requests issued on, or still pending on, a closed session."""


class SessionFailedError(SessionError):
    """Raised when the connection broke underneath a session."""


class DesynchronizedError(SessionError):
    """Raised when the server sent a response no request was waiting for."""


class RegistryError(VndbError):
    """Base class for global session registry errors."""


class AlreadyRunningError(RegistryError):
    """Raised when a global session is started while another one is live."""


class NotRunningError(RegistryError):
    """Raised when the global session is needed but none is running."""
