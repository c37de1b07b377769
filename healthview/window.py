"""Fixed-width display windows over a result history."""

from collections.abc import Sequence
from datetime import datetime
from typing import TypeVar

from .timefmt import time_ago

# Number of slots a health bar shows by default.
DEFAULT_WINDOW_WIDTH = 50

T = TypeVar("T")


def build_display_window(samples: Sequence[T], width: int = DEFAULT_WINDOW_WIDTH) -> list[T | None]:
    """Pad or truncate ``samples`` to exactly ``width`` slots.

    The most recent sample lands in the last slot. When there are fewer
    samples than slots, the front is filled with ``None``.

    Args:
        samples: Samples ordered oldest first.
        width: Number of slots in the window.

    Returns:
        A new list of length ``width``.

    Raises:
        ValueError: If ``width`` is negative.
    """
    if width < 0:
        raise ValueError(f"Window width must be non-negative (got {width})")
    if width == 0:
        return []

    tail = list(samples[-width:])
    return [None] * (width - len(tail)) + tail


def window_labels(
    samples: Sequence, width: int = DEFAULT_WINDOW_WIDTH, now: datetime | None = None
) -> tuple[str, str]:
    """Relative ages of the oldest and newest samples shown in a window.

    Returns:
        ``(oldest, newest)``, or ``("", "")`` when nothing is shown.
    """
    if not samples or width <= 0:
        return "", ""
    oldest = samples[max(0, len(samples) - width)]
    newest = samples[-1]
    return time_ago(oldest.timestamp, now), time_ago(newest.timestamp, now)
