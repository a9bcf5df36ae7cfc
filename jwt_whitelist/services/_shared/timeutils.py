"""Time helpers shared by the registry and the claim factory."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

Clock = Callable[[], datetime]


def now_utc() -> datetime:
    """Return a timezone-aware UTC "now"."""
    return datetime.now(UTC)


def to_datetime(value: int | float | datetime) -> datetime:
    """
    Normalize a claim timestamp into an aware UTC datetime.

    :param value: Unix seconds or a datetime (naive values are labelled UTC).
    :returns: Aware UTC datetime.
    :raises TypeError: If the value is neither numeric nor a datetime.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"Unexpected timestamp type: {type(value)!r}")
    return datetime.fromtimestamp(value, tz=UTC)


def to_timestamp(dt: datetime) -> int:
    """Return whole unix seconds for ``dt``."""
    return int(to_datetime(dt).timestamp())


def is_future(value: int | float | datetime, *, now: datetime, leeway: int = 0) -> bool:
    """True when ``value`` lies after ``now`` (plus ``leeway`` seconds)."""
    return to_datetime(value) > now + timedelta(seconds=leeway)


def is_past(value: int | float | datetime, *, now: datetime, leeway: int = 0) -> bool:
    """True when ``value`` lies before ``now`` (minus ``leeway`` seconds)."""
    return to_datetime(value) < now - timedelta(seconds=leeway)
