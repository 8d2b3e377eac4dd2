"""
Availability resolver — derives a book's lending status from its copies.

Pure and side-effect free apart from logging. Status is never stored; it is
recomputed from the current copy/checkout snapshot on every read.

A book is available when at least one of its copies is available, and a copy
is available when none of its checkouts is unreturned. A book with no copies
is reported as available. Malformed entries make only that copy unavailable,
and any unexpected failure falls back to "available" (fail-open).
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from typing import Any

import structlog

logger = structlog.get_logger()

_MISSING = object()


class BookStatus(str, enum.Enum):
    AVAILABLE = "available"
    CHECKED_OUT = "checked_out"


class MalformedEntry(Exception):
    """A copy or checkout entry lacks a field the resolver needs."""


def _field(entry: Any, name: str) -> Any:
    if entry is None or isinstance(entry, (str, bytes, int, float, bool)):
        raise MalformedEntry(f"expected an object, got {type(entry).__name__}")
    if isinstance(entry, Mapping):
        value = entry.get(name, _MISSING)
    else:
        value = getattr(entry, name, _MISSING)
    if value is _MISSING:
        raise MalformedEntry(f"missing field {name!r}")
    return value


def is_copy_available(copy: Any) -> bool:
    """A copy is available when every one of its checkouts has been returned.

    Raises ``MalformedEntry`` when the copy or one of its checkouts is not
    shaped like a copy/checkout.
    """
    checkouts = _field(copy, "checkouts")
    if checkouts is None:
        return True
    if isinstance(checkouts, (str, bytes, Mapping)) or not isinstance(checkouts, Iterable):
        raise MalformedEntry("checkouts is not a list")
    return all(_field(checkout, "return_date") is not None for checkout in checkouts)


def resolve_status(copies: Iterable[Any] | None) -> str:
    """Map a book's copies (each with nested checkouts) to a status label."""
    try:
        if not copies:
            return BookStatus.AVAILABLE.value

        for index, copy in enumerate(copies):
            try:
                if is_copy_available(copy):
                    return BookStatus.AVAILABLE.value
            except MalformedEntry as e:
                logger.warning("availability_malformed_copy", index=index, reason=str(e))

        return BookStatus.CHECKED_OUT.value
    except Exception:
        logger.exception("availability_resolve_failed", fallback=BookStatus.AVAILABLE.value)
        return BookStatus.AVAILABLE.value


def annotate_status(book: Any) -> str:
    """Resolve the status of a book-like object exposing ``copies``."""
    copies = getattr(book, "copies", None)
    if copies is None and isinstance(book, Mapping):
        copies = book.get("copies")
    return resolve_status(copies)
