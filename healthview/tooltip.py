"""Page-wide data-point tooltip.

A single ``Tooltip`` serves every health bar and chart on a page. Hover
requests show a transient tooltip; click requests pin it. Pinned tooltips
survive pointer-leave and are dismissed by clicking elsewhere, by clicking
the pinned element again, or by selecting a different element.
"""

import logging
from collections.abc import Callable, Sequence

from ._svg import Box, Text, render_svg
from .models import Anchor, Position, Sample, SeriesPoint, Size, TooltipAction, TooltipState, Viewport
from .placement import BOX_PADDING_X, BOX_PADDING_Y, LINE_HEIGHT, estimate_content_size, place_in_viewport
from .selection import SelectionBus
from .timefmt import format_timestamp, from_epoch_ms, round_half_up

logger = logging.getLogger(__name__)

Measure = Callable[[Sequence[str]], Size]

CHECK_MARK = "✓"
CROSS_MARK = "✗"
BULLET = "•"


def tooltip_sections(content: Sample | SeriesPoint) -> list[tuple[str, list[str]]]:
    """Headed sections of text shown for a data point."""
    if isinstance(content, SeriesPoint):
        return [
            ("Timestamp", [format_timestamp(from_epoch_ms(content.timestamp_ms))]),
            ("Response Time", [f"{round_half_up(content.value_ms)}ms"]),
        ]

    sections = [
        ("Timestamp", [format_timestamp(content.timestamp)]),
        ("Response Time", [f"{content.duration_nanos // 1_000_000}ms"]),
    ]
    if content.condition_results:
        sections.append(
            (
                "Conditions",
                [f"{CHECK_MARK if c.success else CROSS_MARK} {c.description}" for c in content.condition_results],
            )
        )
    if content.errors:
        sections.append(("Errors", [f"{BULLET} {e}" for e in content.errors]))
    return sections


def tooltip_lines(content: Sample | SeriesPoint) -> list[str]:
    lines = []
    for heading, body in tooltip_sections(content):
        lines.append(heading.upper())
        lines.extend(body)
    return lines


class Tooltip:
    """Tooltip state machine with viewport-aware placement.

    Example:
        tooltip = Tooltip(bus, Viewport(1280, 800))
        bar = HealthBar(bus, samples, on_tooltip=tooltip.request)
    """

    def __init__(
        self,
        bus: SelectionBus,
        viewport: Viewport,
        measure: Measure = estimate_content_size,
    ) -> None:
        """Initialize the tooltip.

        Args:
            bus: Selection coordinator shared with every strip on the page.
            viewport: Current viewport size and scroll offset.
            measure: Returns the rendered size of the tooltip's lines.
        """
        self._bus = bus
        self._measure = measure
        self.viewport = viewport
        self.state = TooltipState.hidden()
        self.position: Position | None = None
        self.size: Size | None = None

    @property
    def visible(self) -> bool:
        return self.state.visible

    @property
    def persistent(self) -> bool:
        return self.state.persistent

    def request(
        self,
        content: Sample | SeriesPoint | None,
        anchor: Anchor | None,
        action: TooltipAction | str,
    ) -> None:
        """Handle a tooltip request from a strip or chart."""
        if TooltipAction(action) is TooltipAction.CLICK:
            if content is None:
                self._set(TooltipState.hidden())
            else:
                self._set(TooltipState(content, anchor, persistent=True))
        elif not self.state.persistent:
            self._set(TooltipState(content, anchor, persistent=False))

    def dismiss(self) -> None:
        """Hide the tooltip and clear every selection on the page."""
        logger.debug("Tooltip dismissed")
        self._set(TooltipState.hidden())
        self._bus.clear_all()

    def handle_document_click(self, x: float, y: float) -> bool:
        """Dismiss a pinned tooltip on clicks outside it and outside every strip.

        Args:
            x: Click position, viewport coordinates.
            y: Click position, viewport coordinates.

        Returns:
            True if the click dismissed the tooltip.
        """
        if not self.state.persistent:
            return False
        if self.contains(x, y) or self._bus.hit_test(x, y):
            return False
        self.dismiss()
        return True

    def set_viewport(self, viewport: Viewport) -> None:
        """Window resized or scrolled: re-measure and re-place if visible."""
        self.viewport = viewport
        if self.visible:
            self._update_position()

    def lines(self) -> list[str]:
        if self.state.content is None:
            return []
        return tooltip_lines(self.state.content)

    @property
    def box(self) -> Anchor | None:
        """Placed tooltip rectangle in viewport coordinates."""
        if self.position is None or self.size is None:
            return None
        return Anchor(
            top=self.position.top - self.viewport.scroll_y,
            left=self.position.left - self.viewport.scroll_x,
            width=self.size.width,
            height=self.size.height,
        )

    def contains(self, x: float, y: float) -> bool:
        box = self.box
        return box is not None and box.contains(x, y)

    def _set(self, state: TooltipState) -> None:
        self.state = state
        if state.visible:
            self._update_position()
        else:
            self.position = None
            self.size = None

    def _update_position(self) -> None:
        self.size = self._measure(self.lines())
        self.position = place_in_viewport(self.state.anchor, self.size, self.viewport)

    def to_svg(self, dark: bool = False) -> str:
        """Render the tooltip box, or an empty string when hidden."""
        if not self.visible or self.size is None:
            return ""
        fill, stroke, text = ("#1f2937", "#4b5563", "#f9fafb") if dark else ("#ffffff", "#e5e7eb", "#111827")
        commands = [Box(0, 0, self.size.width, self.size.height, fill, stroke, radius=6)]
        for i, line in enumerate(self.lines()):
            y = BOX_PADDING_Y + (i + 1) * LINE_HEIGHT - 4
            commands.append(Text(BOX_PADDING_X, y, line, text, size=12))
        return render_svg(self.size.width, self.size.height, commands, css_class="tooltip")
