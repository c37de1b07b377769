"""Health bar: a fixed-width strip of pass/fail/missing result segments."""

import itertools
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from ._svg import Box, render_svg
from .models import Anchor, Sample, SelectionToken, TooltipAction
from .selection import SelectionBus
from .window import DEFAULT_WINDOW_WIDTH, build_display_window, window_labels

logger = logging.getLogger(__name__)

SEGMENT_GAP = 2
SEGMENT_HEIGHT = 24
DEFAULT_SEGMENT_WIDTH = 10

# (normal, selected) fill per segment state
LIGHT_COLORS = {
    "empty": ("#e5e7eb", "#e5e7eb"),
    "success": ("#22c55e", "#15803d"),
    "failure": ("#ef4444", "#b91c1c"),
}
DARK_COLORS = {
    "empty": ("#374151", "#374151"),
    "success": ("#22c55e", "#15803d"),
    "failure": ("#ef4444", "#b91c1c"),
}

TooltipCallback = Callable[[Sample | None, Anchor | None, TooltipAction], None]

_strip_ids = itertools.count(1)


class SegmentState(StrEnum):
    EMPTY = "empty"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class Segment:
    """One rendered slot of a health bar."""

    index: int
    sample: Sample | None
    state: SegmentState
    selected: bool
    rect: Anchor


def _state_of(sample: Sample | None) -> SegmentState:
    if sample is None:
        return SegmentState.EMPTY
    return SegmentState.SUCCESS if sample.success else SegmentState.FAILURE


class HealthBar:
    """Interactive strip showing the most recent results of one entity.

    The strip subscribes to a shared ``SelectionBus`` while mounted so that
    at most one segment on the page is selected at a time.

    Example:
        with HealthBar(bus, endpoint.results, on_tooltip=tooltip.request) as bar:
            bar.click(49)
    """

    def __init__(
        self,
        bus: SelectionBus,
        samples: Sequence[Sample] = (),
        max_results: int = DEFAULT_WINDOW_WIDTH,
        on_tooltip: TooltipCallback | None = None,
        bounds: Anchor | None = None,
        key: str | None = None,
    ) -> None:
        """Initialize the strip.

        Args:
            bus: Page-wide selection coordinator.
            samples: Results ordered oldest first.
            max_results: Number of slots in the strip.
            on_tooltip: Receives ``(sample, anchor, action)`` tooltip requests.
            bounds: Screen rectangle of the whole strip.
            key: Identifier used in selection tokens.
        """
        self._bus = bus
        self._samples = tuple(samples)
        self.max_results = max_results
        self._on_tooltip = on_tooltip
        self.bounds = bounds or Anchor(
            0,
            0,
            max_results * (DEFAULT_SEGMENT_WIDTH + SEGMENT_GAP) - SEGMENT_GAP,
            SEGMENT_HEIGHT,
        )
        self.key = key or f"health-bar-{next(_strip_ids)}"
        self.selected_index: int | None = None
        self._handle: int | None = None
        self._window = build_display_window(self._samples, max_results)

    # -- lifecycle -------------------------------------------------------

    def mount(self) -> None:
        """Start listening for selection clears."""
        if self._handle is None:
            self._handle = self._bus.subscribe(self._clear_selection, self.contains)

    def unmount(self) -> None:
        """Stop listening for selection clears.

        A strip that leaves the page gives up its selection: if it owns the
        active one, every selection is cleared and the pinned tooltip hides.
        """
        if self._owns_selection():
            self._release_selection()
        if self._handle is not None:
            self._bus.unsubscribe(self._handle)
            self._handle = None
        self.selected_index = None

    @property
    def mounted(self) -> bool:
        return self._handle is not None

    def __enter__(self) -> "HealthBar":
        self.mount()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unmount()

    def _clear_selection(self) -> None:
        self.selected_index = None

    def _owns_selection(self) -> bool:
        return self.selected_index is not None and self._bus.is_selected(
            SelectionToken(self.key, self.selected_index)
        )

    def _release_selection(self) -> None:
        self._bus.clear_all()
        self.selected_index = None
        logger.debug("%s: released selection", self.key)
        self._emit(None, None, TooltipAction.CLICK)

    def _reanchor_selection(self) -> None:
        """Point the pinned tooltip at the selected segment's current rectangle."""
        if self._owns_selection():
            self._emit(self._window[self.selected_index], self.segment_rect(self.selected_index), TooltipAction.CLICK)

    # -- data and layout -------------------------------------------------

    @property
    def window(self) -> list[Sample | None]:
        return self._window

    @property
    def samples(self) -> tuple[Sample, ...]:
        return self._samples

    def set_samples(self, samples: Sequence[Sample]) -> None:
        """Replace the shown results (e.g. after a refresh).

        The selection follows its result by timestamp as the window shifts.
        If the result is no longer shown, the selection is released.
        """
        selected = self._sample_at(self.selected_index) if self._owns_selection() else None
        self._samples = tuple(samples)
        self._window = build_display_window(self._samples, self.max_results)
        if selected is None:
            return

        index = next(
            (i for i, s in enumerate(self._window) if s is not None and s.timestamp == selected.timestamp),
            None,
        )
        if index is None:
            self._release_selection()
            return
        if index != self.selected_index:
            self._bus.notify_selected(SelectionToken(self.key, index))
            self.selected_index = index
            logger.debug("%s: selection followed its result to segment %d", self.key, index)
        self._reanchor_selection()

    def set_bounds(self, bounds: Anchor) -> None:
        """Move or resize the strip; a pinned tooltip follows its segment."""
        if bounds == self.bounds:
            return
        self.bounds = bounds
        self._reanchor_selection()

    def _segment_width(self) -> float:
        if self.max_results == 0:
            return 0
        gaps = SEGMENT_GAP * (self.max_results - 1)
        return max(0.0, (self.bounds.width - gaps) / self.max_results)

    def segment_rect(self, index: int) -> Anchor:
        """Screen rectangle of the segment at ``index``."""
        width = self._segment_width()
        return Anchor(
            top=self.bounds.top,
            left=self.bounds.left + index * (width + SEGMENT_GAP),
            width=width,
            height=self.bounds.height,
        )

    def segments(self) -> list[Segment]:
        return [
            Segment(
                index=i,
                sample=sample,
                state=_state_of(sample),
                selected=sample is not None and i == self.selected_index,
                rect=self.segment_rect(i),
            )
            for i, sample in enumerate(self._window)
        ]

    def contains(self, x: float, y: float) -> bool:
        return self.bounds.contains(x, y)

    def segment_at(self, x: float, y: float) -> int | None:
        """Index of the segment under a point, or None for gaps and outside."""
        if not self.contains(x, y) or self.max_results == 0:
            return None
        width = self._segment_width()
        index = int((x - self.bounds.left) // (width + SEGMENT_GAP))
        if index >= self.max_results:
            return None
        if self.segment_rect(index).contains(x, y):
            return index
        return None

    def labels(self, now: datetime | None = None) -> tuple[str, str]:
        """Relative ages of the oldest and newest results shown."""
        return window_labels(self._samples, self.max_results, now)

    # -- interaction -----------------------------------------------------

    def _sample_at(self, index: int) -> Sample | None:
        if 0 <= index < len(self._window):
            return self._window[index]
        return None

    def _emit(self, sample: Sample | None, anchor: Anchor | None, action: TooltipAction) -> None:
        if self._on_tooltip is not None:
            self._on_tooltip(sample, anchor, action)

    def pointer_enter(self, index: int) -> None:
        """Pointer moved onto a segment: show a transient tooltip."""
        sample = self._sample_at(index)
        if sample is None or self._bus.active is not None:
            return
        self._emit(sample, self.segment_rect(index), TooltipAction.HOVER)

    def pointer_leave(self) -> None:
        """Pointer left a segment: hide the transient tooltip."""
        if self._bus.active is not None:
            return
        self._emit(None, None, TooltipAction.HOVER)

    def click(self, index: int) -> bool:
        """Select, move the selection to, or deselect a segment.

        Returns:
            Always True: clicks inside a strip are handled here and must
            not reach page-level dismiss handlers.
        """
        sample = self._sample_at(index)
        if sample is None:
            return True

        if self.selected_index == index:
            self._bus.clear_all()
            logger.debug("%s: deselected segment %d", self.key, index)
            self._emit(None, None, TooltipAction.CLICK)
        else:
            self._bus.notify_selected(SelectionToken(self.key, index))
            self.selected_index = index
            logger.debug("%s: selected segment %d", self.key, index)
            self._emit(sample, self.segment_rect(index), TooltipAction.CLICK)
        return True

    # -- rendering -------------------------------------------------------

    def to_svg(self, dark: bool = False) -> str:
        """Render the strip as SVG, positioned relative to its own bounds."""
        colors = DARK_COLORS if dark else LIGHT_COLORS
        commands = []
        for seg in self.segments():
            normal, selected = colors[seg.state]
            commands.append(
                Box(
                    x=seg.rect.left - self.bounds.left,
                    y=0,
                    width=seg.rect.width,
                    height=seg.rect.height,
                    fill=selected if seg.selected else normal,
                    radius=2,
                    css_class=f"segment segment-{seg.state}" + (" selected" if seg.selected else ""),
                )
            )
        return render_svg(self.bounds.width, self.bounds.height, commands, css_class="health-bar")
