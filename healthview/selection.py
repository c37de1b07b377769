"""Selection coordination between independently rendered strips.

At most one element on a page may hold the persistent (click-pinned)
tooltip. Every strip subscribes to a shared ``SelectionBus``; selecting a
new element first clears every subscriber, then records the new owner.

The bus is owned by the view that contains all strips and is only touched
from the UI thread, so it carries no lock. Ordering still matters:
``clear_all()`` finishes updating every subscriber before
``notify_selected()`` records the new token.
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from .models import SelectionToken

logger = logging.getLogger(__name__)

ClearCallback = Callable[[], None]
HitTest = Callable[[float, float], bool]


class SelectionBus:
    """Broadcast channel enforcing a single active selection."""

    def __init__(self) -> None:
        self._subscribers: dict[int, tuple[ClearCallback, HitTest | None]] = {}
        self._next_handle = 1
        self._active: SelectionToken | None = None

    def subscribe(self, on_clear: ClearCallback, contains: HitTest | None = None) -> int:
        """Register a subscriber.

        Args:
            on_clear: Called whenever every selection is cleared.
            contains: Optional hit test for the subscriber's interactive area.
                Clicks inside it are selection moves, never dismissals.

        Returns:
            Handle to pass to ``unsubscribe``.
        """
        handle = self._next_handle
        self._next_handle += 1
        self._subscribers[handle] = (on_clear, contains)
        logger.debug("Selection subscriber %d registered (%d total)", handle, len(self._subscribers))
        return handle

    def unsubscribe(self, handle: int) -> None:
        """Remove a subscriber. Unknown handles are ignored."""
        if self._subscribers.pop(handle, None) is not None:
            logger.debug("Selection subscriber %d released (%d left)", handle, len(self._subscribers))

    @contextmanager
    def subscription(self, on_clear: ClearCallback, contains: HitTest | None = None) -> Iterator[int]:
        """Subscribe for the duration of a ``with`` block."""
        handle = self.subscribe(on_clear, contains)
        try:
            yield handle
        finally:
            self.unsubscribe(handle)

    def clear_all(self) -> None:
        """Drop the active selection and tell every subscriber."""
        self._active = None
        for on_clear, _ in list(self._subscribers.values()):
            on_clear()

    def notify_selected(self, token: SelectionToken) -> None:
        """Make ``token`` the only active selection."""
        self.clear_all()
        self._active = token
        logger.debug("Selection moved to %s[%d]", token.owner, token.index)

    @property
    def active(self) -> SelectionToken | None:
        return self._active

    def is_selected(self, token: SelectionToken) -> bool:
        return self._active == token

    def hit_test(self, x: float, y: float) -> bool:
        """Whether a point lies inside any subscriber's interactive area."""
        return any(contains is not None and contains(x, y) for _, contains in self._subscribers.values())

    def __len__(self) -> int:
        return len(self._subscribers)
