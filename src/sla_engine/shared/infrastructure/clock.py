"""
Time Source
===========

The engine never reads the wall clock inside business logic. Services take a
``Clock`` at construction and every public entry point accepts an explicit
``now``; this module holds the default clock and the minute arithmetic shared
by both bounded contexts.
"""

from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import uuid4

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so arithmetic never mixes naive and aware values."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def resolve_now(now: Optional[datetime], clock: Clock) -> datetime:
    """Pick the explicit ``now`` when given, else ask the clock."""
    return ensure_utc(now if now is not None else clock())


def seconds_between(later: datetime, earlier: datetime) -> float:
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds()


def minutes_between(later: datetime, earlier: datetime) -> int:
    """Whole minutes from ``earlier`` to ``later``, truncated toward zero."""
    return int(seconds_between(later, earlier) / 60)


def generate_id(prefix: str) -> str:
    """Prefixed random identifier, e.g. ``breach-6f1c...``."""
    return f"{prefix}-{uuid4()}"
