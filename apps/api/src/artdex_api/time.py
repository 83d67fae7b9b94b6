from __future__ import annotations

import datetime as dt
from typing import Callable


UtcNow = Callable[[], dt.datetime]


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


def get_utcnow() -> UtcNow:
    return utcnow


def as_utc(value: dt.datetime) -> dt.datetime:
    """Attach UTC to naive timestamps read back from backends without tz support."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.UTC)
    return value.astimezone(dt.UTC)
