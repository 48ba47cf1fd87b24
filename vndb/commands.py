"""Command helpers.

Each helper formats its arguments into a command line and hands it to
``Session.dispatch``; the reply is returned as ``(keyword, payload)``.

    dbstats(session)
    get(session, "vn", "basic,details", "(id = 17)", {"results": 10})
    set(session, "votelist", 17, {"vote": 80})
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Union

from vndb.core.correlator import Response
from vndb.core.session import Session

DEFAULT_FLAGS = "basic"
DEFAULT_FILTERS = "(id >= 1)"


def _flags(flags: Union[str, Iterable[str]]) -> str:
    if isinstance(flags, str):
        return flags
    return ",".join(flags)


def dbstats(session: Session, *, timeout: Optional[float] = None) -> Response:
    """Retrieve database statistics (``dbstats``)."""
    return session.dispatch("dbstats", timeout=timeout)


def get(
    session: Session,
    type: str,
    flags: Union[str, Iterable[str]] = DEFAULT_FLAGS,
    filters: str = DEFAULT_FILTERS,
    options: Optional[dict[str, Any]] = None,
    *,
    timeout: Optional[float] = None,
) -> Response:
    """Fetch records: ``get <type> <flags> <filters> [<options>]``.

    *filters* is passed through untouched; see :mod:`vndb.filters`.
    *options* carries paging and sorting, e.g. ``{"page": 2, "results": 25}``.
    """
    command = f"get {type} {_flags(flags)} {filters}"
    return session.dispatch(command, options, timeout=timeout)


def set(  # noqa: A001
    session: Session,
    type: str,
    id: int,
    fields: Optional[dict[str, Any]] = None,
    *,
    timeout: Optional[float] = None,
) -> Response:
    """Modify a record: ``set <type> <id> [<fields>]``.

    Sending no fields deletes the entry on the server side.
    """
    return session.dispatch(f"set {type} {id}", fields, timeout=timeout)
