"""Wouch – time helpers.

All persisted timestamps are timezone-aware UTC datetimes produced by
:func:`utc_now`.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""

    return datetime.now(timezone.utc)
