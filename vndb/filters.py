"""Helpers for building filter expressions.

Filters are plain strings to the rest of the client; nothing here is
validated against the server grammar.

    >>> f("id = 5 and id = 6")
    '(id = 5 and id = 6)'
    >>> condition("title", "~", "sora")
    '(title ~ "sora")'
    >>> and_(condition("id", ">=", 10), condition("released", "!=", None))
    '((id >= 10) and (released != null))'
"""

from __future__ import annotations

import json
from typing import Any

OPERATORS = frozenset({"=", "!=", ">", ">=", "<", "<=", "~"})


def f(expr: str) -> str:
    """Wrap *expr* in parentheses as-is."""
    return f"({expr})"


def condition(field: str, op: str, value: Any) -> str:
    """A single ``(field op value)`` comparison; *value* is JSON-quoted."""
    if op not in OPERATORS:
        raise ValueError(f"Unknown filter operator: {op!r}")
    return f(f"{field} {op} {json.dumps(value)}")


def _join(word: str, exprs: tuple[str, ...]) -> str:
    if not exprs:
        raise ValueError(f"'{word}' needs at least one expression")
    if len(exprs) == 1:
        return exprs[0]
    return f(f" {word} ".join(exprs))


def and_(*exprs: str) -> str:
    """Combine expressions with ``and``."""
    return _join("and", exprs)


def or_(*exprs: str) -> str:
    """Combine expressions with ``or``."""
    return _join("or", exprs)
