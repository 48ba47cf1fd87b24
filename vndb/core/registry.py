"""Process-wide table of the global session.

At most one *global* session may be live at a time; any number of *local*
sessions can run next to it.  Opening a global session happens under the
registry lock, so two threads racing to start one cannot both succeed.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Optional

from vndb.core.exceptions import AlreadyRunningError, NotRunningError
from vndb.core.session import Credentials, Session

if TYPE_CHECKING:
    from vndb.client import Client

logger = logging.getLogger("vndb.core.registry")


class SessionRegistry:
    """Holds the global session, if any.  Thread-safe.

    A registered session that has since been closed or has failed is no
    longer considered live; it is dropped the next time the table is read.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._global: Optional[Session] = None

    # -- table -------------------------------------------------------------

    def register(self, session: Session) -> None:
        """Install *session* as the global session."""
        with self._lock:
            self._register_locked(session)

    def unregister(self, session: Optional[Session] = None) -> Optional[Session]:
        """Remove the global entry (only if it is *session*, when given)."""
        with self._lock:
            current = self._global
            if current is None or (session is not None and session is not current):
                return None
            self._global = None
            return current

    def lookup(self) -> Optional[Session]:
        """Return the live global session, or ``None``."""
        with self._lock:
            return self._live_locked()

    def require(self) -> Session:
        """Return the live global session or raise NotRunningError."""
        session = self.lookup()
        if session is None:
            raise NotRunningError("No global session is running; call start() first")
        return session

    # -- lifecycle ---------------------------------------------------------

    def start_global(self, client: "Client", credentials: Optional[Credentials] = None) -> Session:
        """Open a session and register it as the global one."""
        with self._lock:
            if self._live_locked() is not None:
                raise AlreadyRunningError("A global session is already running")
            session = client.open(credentials)
            self._register_locked(session)
        logger.debug("Global session started: %r", session)
        return session

    def start_local(self, client: "Client", credentials: Optional[Credentials] = None) -> Session:
        """Open a session that is addressed only through the returned handle."""
        session = client.open(credentials)
        logger.debug("Local session started: %r", session)
        return session

    def stop_global(self) -> None:
        """Close and remove the global session.  No-op when none is running."""
        session = self.unregister()
        if session is None:
            return
        session.close()
        logger.debug("Global session stopped")

    def stop(self, session: Session) -> None:
        """Close *session*, global or local."""
        self.unregister(session)
        session.close()

    # -- private -----------------------------------------------------------

    def _live_locked(self) -> Optional[Session]:
        if self._global is not None and self._global.closed:
            logger.debug("Dropping dead global session %r", self._global)
            self._global = None
        return self._global

    def _register_locked(self, session: Session) -> None:
        if self._live_locked() is not None:
            raise AlreadyRunningError("A global session is already running")
        self._global = session


default_registry = SessionRegistry()
