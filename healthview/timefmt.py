"""Relative-time, timestamp and duration formatting helpers.

All functions are pure; the ones that depend on the current time accept an
optional ``now`` so callers and tests can pin the clock.
"""

import math
from datetime import UTC, datetime, tzinfo

_SECOND_MS = 1000
_MINUTE_MS = 60 * _SECOND_MS
_HOUR_MS = 60 * _MINUTE_MS
_DAY_MS = 24 * _HOUR_MS

# Differences below this are reported as "now".
NOW_THRESHOLD_MS = 500

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves up.

    Python's ``round`` sends halves to the even neighbour; every label in
    the dashboard rounds 2.5 to 3.
    """
    return math.floor(value + 0.5)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def _as_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp such as ``2026-01-28T10:30:00Z``.

    Raises:
        ValueError: If the string is not a valid timestamp.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return _as_aware(datetime.fromisoformat(value))


def time_ago(timestamp: datetime, now: datetime | None = None) -> str:
    """Human-readable relative time, e.g. ``"2 hours ago"``.

    Args:
        timestamp: The instant to describe.
        now: Reference instant (defaults to the current UTC time).

    Returns:
        ``"now"`` for differences under 500ms, otherwise the difference
        rounded to days (3 days and over), hours, minutes or seconds.
    """
    if now is None:
        now = datetime.now(UTC)
    diff = (_as_aware(now) - _as_aware(timestamp)).total_seconds() * 1000

    if diff < NOW_THRESHOLD_MS:
        return "now"
    if diff >= 3 * _DAY_MS:
        return _plural(round_half_up(diff / _DAY_MS), "day") + " ago"
    if diff >= _HOUR_MS:
        return _plural(round_half_up(diff / _HOUR_MS), "hour") + " ago"
    if diff >= _MINUTE_MS:
        return _plural(round_half_up(diff / _MINUTE_MS), "minute") + " ago"
    return _plural(round_half_up(diff / _SECOND_MS), "second") + " ago"


def time_difference(start: datetime, end: datetime) -> str:
    """Pretty difference between two instants, e.g. ``"1 hour 5 minutes"``."""
    ms = (_as_aware(start) - _as_aware(end)).total_seconds() * 1000
    seconds = int(ms // 1000)
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        rem = minutes % 60
        text = _plural(hours, "hour")
        return f"{text} {_plural(rem, 'minute')}" if rem > 0 else text
    if minutes > 0:
        rem = seconds % 60
        text = _plural(minutes, "minute")
        return f"{text} {_plural(rem, 'second')}" if rem > 0 else text
    return _plural(seconds, "second")


def format_timestamp(timestamp: datetime, tz: tzinfo | None = None) -> str:
    """Format as ``YYYY-MM-DD HH:MM:SS`` in ``tz`` (local time by default)."""
    return _as_aware(timestamp).astimezone(tz).strftime("%Y-%m-%d %H:%M:%S")


def from_epoch_ms(timestamp_ms: int, tz: tzinfo | None = None) -> datetime:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC).astimezone(tz)


def format_axis_time(timestamp_ms: int, tz: tzinfo | None = None) -> str:
    """Time-of-day tick label, e.g. ``"3:05 PM"``."""
    d = from_epoch_ms(timestamp_ms, tz)
    suffix = "AM" if d.hour < 12 else "PM"
    return f"{d.hour % 12 or 12}:{d.minute:02d} {suffix}"


def format_axis_date(timestamp_ms: int, tz: tzinfo | None = None) -> str:
    """Date tick label, e.g. ``"Jan 5"``."""
    d = from_epoch_ms(timestamp_ms, tz)
    return f"{_MONTHS[d.month - 1]} {d.day}"


def duration_ms(nanos: float) -> str:
    """Duration in nanoseconds as a rounded millisecond string."""
    return f"{round_half_up(nanos / 1_000_000)}ms"


def format_refresh_interval(seconds: int) -> str:
    """Short label for a refresh interval: ``"30s"``, ``"5m"``."""
    if seconds >= 60:
        minutes = seconds / 60
        return f"{int(minutes) if minutes.is_integer() else minutes}m"
    return f"{seconds}s"
