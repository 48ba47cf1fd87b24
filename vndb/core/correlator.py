"""Positional request/response correlation.

The protocol carries no request identifier: the n-th response read from the
wire answers the n-th request written to it.  The Correlator keeps one FIFO
of waiters and guarantees that appending a waiter and writing its request
happen as one step, so queue order always equals wire order.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import Future, InvalidStateError
from typing import Any, Callable, Optional

from vndb.core import codec
from vndb.core.exceptions import (
    DecodeError,
    DesynchronizedError,
    SessionFailedError,
    TransportError,
)

logger = logging.getLogger("vndb.core.correlator")

Response = tuple[str, Any]


class Waiter(Future):
    """Reply slot for one outstanding request.  Resolved exactly once."""

    def __init__(self, command: str) -> None:
        super().__init__()
        self.command = command

    def __repr__(self) -> str:
        return f"<Waiter command={self.command!r} done={self.done()}>"


def _resolve(waiter: Waiter, outcome: Any) -> bool:
    """Complete *waiter* unless its caller already gave up on it."""
    try:
        if isinstance(outcome, BaseException):
            waiter.set_exception(outcome)
        else:
            waiter.set_result(outcome)
    except InvalidStateError:
        logger.debug("Dropping response to abandoned request '%s'", waiter.command)
        return False
    return True


class Correlator:
    """Matches inbound frames to the oldest outstanding request.

    Parameters
    ----------
    write:
        Callable that puts one encoded frame on the wire.  Writes are
        serialized by a lock of their own; the queue lock is never held
        across a write, so the reader can keep draining replies while a
        large request is still being sent.
    """

    def __init__(self, write: Callable[[bytes], None]) -> None:
        self._write = write
        self._queue: deque[Waiter] = deque()
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._error: Optional[Exception] = None

    # -- properties --------------------------------------------------------

    @property
    def pending(self) -> int:
        """Number of requests written but not yet answered."""
        with self._lock:
            return len(self._queue)

    # -- public ------------------------------------------------------------

    def dispatch(self, command: str, args: Any = None) -> Waiter:
        """Queue a waiter and write *command*.  Does not wait for the reply."""
        data = codec.encode(command, args)
        waiter = Waiter(command)
        with self._write_lock:
            # Queue order must equal wire order: append and write both
            # happen inside the write lock.
            with self._lock:
                if self._error is not None:
                    raise self._error
                self._queue.append(waiter)
                pending = len(self._queue)
            try:
                self._write(data)
            except TransportError as exc:
                failure = SessionFailedError(f"Connection lost while sending '{command}': {exc}")
                self.fail_all(failure)
                raise failure from exc
        logger.debug("-> %s (pending=%d)", command, pending)
        return waiter

    def on_message(self, data: bytes) -> None:
        """Resolve the head waiter with the decoded *data*.

        Raises DesynchronizedError if nothing was waiting.
        """
        with self._lock:
            if not self._queue:
                raise DesynchronizedError(
                    f"Received unsolicited response ({len(data)} bytes) with no pending request"
                )
            waiter = self._queue.popleft()

        try:
            response = codec.decode(data)
        except DecodeError as exc:
            logger.warning("Could not decode response to '%s': %s", waiter.command, exc)
            _resolve(waiter, exc)
            return

        logger.debug("<- %s for %s", response[0], waiter.command)
        _resolve(waiter, response)

    def fail_all(self, exc: Exception) -> int:
        """Fail every queued waiter with *exc* and refuse further dispatches.

        Returns the number of waiters that were failed.
        """
        with self._lock:
            return self._fail_locked(exc)

    # -- private -----------------------------------------------------------

    def _fail_locked(self, exc: Exception) -> int:
        if self._error is None:
            self._error = exc
        failed = 0
        while self._queue:
            if _resolve(self._queue.popleft(), exc):
                failed += 1
        return failed
