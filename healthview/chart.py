"""Response-time trend chart.

``draw_chart`` is a pure function from its inputs (series, width, hover
index, color mode, duration) to a ``ChartFrame``: the computed geometry plus
an ordered list of draw commands. ``ResponseTimeChart`` is the stateful
component around it: it fetches its own series, tracks the hover index and
redraws synchronously whenever one of its inputs changes.

Samples are spaced evenly by index along the x axis, not by elapsed time,
so irregular sampling gaps are not reflected in the horizontal spacing.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import tzinfo

from ._svg import Area, Box, Circle, DrawCommand, Line, Polyline, Text, render_svg
from .client import DURATIONS, ClientError, StatusClient
from .models import Anchor, ResponseTimeHistory, SeriesPoint, TooltipAction
from .timefmt import format_axis_date, format_axis_time, format_timestamp, from_epoch_ms, round_half_up

logger = logging.getLogger(__name__)

CHART_HEIGHT = 300

MARGIN_LEFT = 60
MARGIN_RIGHT = 20
MARGIN_TOP = 20
MARGIN_BOTTOM = 40

GRID_DIVISIONS = 5
MAX_X_LABELS = 6

# Inline hover box metrics (11px monospace).
HOVER_CHAR_WIDTH = 6.6
HOVER_BOX_PADDING = 8
HOVER_BOX_HEIGHT = 36
HOVER_BOX_OFFSET = 10

EMPTY_MESSAGE = "No data available"
ERROR_MESSAGE = "Failed to load chart data"
LOADING_MESSAGE = "Loading..."

LIGHT_PALETTE = {
    "grid": "rgba(229, 231, 235, 0.8)",
    "label": "#6b7280",
    "line": "rgb(59, 130, 246)",
    "fill": "rgba(59, 130, 246, 0.1)",
    "guide": "rgba(0, 0, 0, 0.2)",
    "box_fill": "rgba(255, 255, 255, 0.95)",
    "box_stroke": "#e5e7eb",
    "text": "#111827",
}
DARK_PALETTE = {
    "grid": "rgba(75, 85, 99, 0.3)",
    "label": "#9ca3af",
    "line": "rgb(96, 165, 250)",
    "fill": "rgba(96, 165, 250, 0.1)",
    "guide": "rgba(255, 255, 255, 0.3)",
    "box_fill": "rgba(31, 41, 55, 0.95)",
    "box_stroke": "#4b5563",
    "text": "#f9fafb",
}

TooltipCallback = Callable[[SeriesPoint | None, Anchor | None, TooltipAction], None]


@dataclass(frozen=True)
class PlotRect:
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass(frozen=True)
class ChartLayout:
    """Surface size and the plotting rectangle inside the margins."""

    width: float
    height: float
    plot: PlotRect

    @classmethod
    def for_width(cls, width: float, height: float = CHART_HEIGHT) -> "ChartLayout":
        plot = PlotRect(
            left=MARGIN_LEFT,
            top=MARGIN_TOP,
            width=max(0.0, width - MARGIN_LEFT - MARGIN_RIGHT),
            height=max(0.0, height - MARGIN_TOP - MARGIN_BOTTOM),
        )
        return cls(width=width, height=height, plot=plot)


@dataclass(frozen=True)
class GridLine:
    y: float
    label: str


@dataclass(frozen=True)
class AxisLabel:
    x: float
    index: int
    text: str


@dataclass(frozen=True)
class HoverMarker:
    """Crosshair, dot and inline box drawn for the hovered sample."""

    index: int
    x: float
    y: float
    box: PlotRect
    value_label: str
    time_label: str


@dataclass(frozen=True)
class ChartFrame:
    """Everything one draw pass produced."""

    width: float
    height: float
    layout: ChartLayout | None = None
    message: str | None = None
    y_max: float | None = None
    gridlines: tuple[GridLine, ...] = ()
    x_labels: tuple[AxisLabel, ...] = ()
    points: tuple[tuple[float, float], ...] = ()
    hover: HoverMarker | None = None
    commands: list[DrawCommand] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return self.layout is None


def y_max_for(values: Sequence[float]) -> float:
    """Top of the y domain: the largest value, or 1 when all are zero."""
    return max(values) or 1


def x_position(index: int, count: int, plot: PlotRect) -> float:
    """X coordinate of a sample; a lone sample sits on the left edge."""
    if count <= 1:
        return plot.left
    return plot.left + (index / (count - 1)) * plot.width


def y_position(value: float, y_max: float, plot: PlotRect) -> float:
    return plot.top + plot.height - (value / y_max) * plot.height


def index_at(x: float, count: int, plot: PlotRect) -> int | None:
    """Nearest sample index for a pointer x coordinate, or None if out of range."""
    if count == 0 or plot.width <= 0:
        return None
    ratio = (x - plot.left) / plot.width
    index = round_half_up(ratio * (count - 1))
    if 0 <= index < count:
        return index
    return None


def placeholder_frame(width: float, message: str, dark: bool = False, height: float = CHART_HEIGHT) -> ChartFrame:
    """Frame showing only a centered message (empty, loading or error)."""
    palette = DARK_PALETTE if dark else LIGHT_PALETTE
    return ChartFrame(
        width=width,
        height=height,
        message=message,
        commands=[Text(width / 2, height / 2, message, palette["label"], anchor="middle", size=13)],
    )


def _x_labels(timestamps: Sequence[int], count: int, plot: PlotRect, duration: str, tz: tzinfo | None) -> list[AxisLabel]:
    label_count = min(MAX_X_LABELS, count)
    formatter = format_axis_time if duration == DURATIONS[0] else format_axis_date
    labels = []
    for i in range(label_count):
        if label_count == 1:
            idx = 0
        else:
            idx = round_half_up((i / (label_count - 1)) * (count - 1))
        labels.append(AxisLabel(x_position(idx, count, plot), idx, formatter(timestamps[idx], tz)))
    return labels


def _hover_marker(
    index: int,
    timestamps: Sequence[int],
    values: Sequence[float],
    y_max: float,
    layout: ChartLayout,
    tz: tzinfo | None,
) -> HoverMarker:
    plot = layout.plot
    count = len(values)
    hx = x_position(index, count, plot)
    hy = y_position(values[index], y_max, plot)

    value_label = f"{round_half_up(values[index])}ms"
    time_label = format_timestamp(from_epoch_ms(timestamps[index]), tz)
    box_w = max(len(value_label), len(time_label)) * HOVER_CHAR_WIDTH + 2 * HOVER_BOX_PADDING
    box_h = HOVER_BOX_HEIGHT

    box_x = hx + HOVER_BOX_OFFSET
    if box_x + box_w > layout.width - MARGIN_RIGHT:
        box_x = hx - box_w - HOVER_BOX_OFFSET
    box_y = hy - box_h - HOVER_BOX_OFFSET
    if box_y < plot.top:
        box_y = hy + HOVER_BOX_OFFSET

    return HoverMarker(index, hx, hy, PlotRect(box_x, box_y, box_w, box_h), value_label, time_label)


def draw_chart(
    timestamps: Sequence[int],
    values: Sequence[float],
    width: float,
    hover_index: int | None = None,
    dark: bool = False,
    duration: str = "24h",
    tz: tzinfo | None = None,
    height: float = CHART_HEIGHT,
) -> ChartFrame:
    """Compute the geometry and draw commands for one chart pass.

    Args:
        timestamps: Epoch milliseconds, index-aligned with ``values``.
        values: Response times in milliseconds (non-negative).
        width: Surface width in pixels.
        hover_index: Sample under the pointer, if any.
        dark: Use the dark palette.
        duration: ``24h`` labels ticks with times of day, others with dates.
        tz: Time zone for labels (local time by default).
        height: Surface height in pixels.

    Returns:
        The computed frame. An empty series yields the empty-state frame.
    """
    count = min(len(timestamps), len(values))
    if count == 0:
        return placeholder_frame(width, EMPTY_MESSAGE, dark, height)
    if len(timestamps) != len(values):
        logger.debug("Series length mismatch (%d timestamps, %d values), truncating", len(timestamps), len(values))
        timestamps, values = timestamps[:count], values[:count]

    palette = DARK_PALETTE if dark else LIGHT_PALETTE
    layout = ChartLayout.for_width(width, height)
    plot = layout.plot
    y_max = y_max_for(values)
    commands: list[DrawCommand] = []

    gridlines = []
    for i in range(GRID_DIVISIONS + 1):
        y = plot.top + (plot.height / GRID_DIVISIONS) * i
        label = f"{round_half_up(y_max * (1 - i / GRID_DIVISIONS))}ms"
        gridlines.append(GridLine(y, label))
        commands.append(Line(plot.left, y, plot.right, y, palette["grid"]))
        commands.append(Text(plot.left - 8, y + 4, label, palette["label"], anchor="end"))

    x_labels = _x_labels(timestamps, count, plot, duration, tz)
    for label in x_labels:
        commands.append(Text(label.x, height - MARGIN_BOTTOM + 20, label.text, palette["label"], anchor="middle"))

    points = tuple((x_position(i, count, plot), y_position(v, y_max, plot)) for i, v in enumerate(values))
    baseline = plot.bottom
    commands.append(Area(points + ((points[-1][0], baseline), (points[0][0], baseline)), palette["fill"]))
    if count == 1:
        commands.append(Circle(points[0][0], points[0][1], 2, palette["line"]))
    else:
        commands.append(Polyline(points, palette["line"]))

    hover = None
    if hover_index is not None and 0 <= hover_index < count:
        hover = _hover_marker(hover_index, timestamps, values, y_max, layout, tz)
        box = hover.box
        commands.extend(
            [
                Line(hover.x, plot.top, hover.x, plot.bottom, palette["guide"], dash=(4, 4)),
                Circle(hover.x, hover.y, 4, palette["line"]),
                Box(box.left, box.top, box.width, box.height, palette["box_fill"], palette["box_stroke"], radius=4),
                Text(box.left + HOVER_BOX_PADDING, box.top + 14, hover.value_label, palette["text"]),
                Text(box.left + HOVER_BOX_PADDING, box.top + 28, hover.time_label, palette["label"]),
            ]
        )

    return ChartFrame(
        width=width,
        height=height,
        layout=layout,
        y_max=y_max,
        gridlines=tuple(gridlines),
        x_labels=tuple(x_labels),
        points=points,
        hover=hover,
        commands=commands,
    )


class ResponseTimeChart:
    """Chart component for one entity and duration bucket.

    Owns its own fetch of the series. Fetch failures show an error
    placeholder; the next explicit ``load()`` (usually driven by the
    periodic refresh) tries again.
    """

    def __init__(
        self,
        client: StatusClient,
        key: str,
        duration: str = "24h",
        width: float = 800,
        dark: bool = False,
        tz: tzinfo | None = None,
        origin: Anchor | None = None,
        on_tooltip: TooltipCallback | None = None,
    ) -> None:
        """Initialize the chart.

        Args:
            client: REST client used to fetch the series.
            key: Entity key.
            duration: One of ``24h``, ``7d`` or ``30d``.
            width: Surface width in pixels.
            dark: Use the dark palette.
            tz: Time zone for labels.
            origin: Screen rectangle of the surface, for tooltip anchors.
            on_tooltip: Receives the hovered point for a page-level tooltip.
        """
        if duration not in DURATIONS:
            raise ValueError(f"Invalid duration '{duration}'. Must be one of: {DURATIONS}")
        self._client = client
        self.key = key
        self.duration = duration
        self.dark = dark
        self.tz = tz
        self.origin = origin or Anchor(0, 0, width, CHART_HEIGHT)
        self._on_tooltip = on_tooltip
        self._layout = ChartLayout.for_width(width)
        self._history = ResponseTimeHistory()
        self.hover_index: int | None = None
        self.loading = False
        self.error: str | None = None
        self.frame: ChartFrame = placeholder_frame(width, LOADING_MESSAGE, dark)

    @property
    def width(self) -> float:
        return self._layout.width

    @property
    def timestamps(self) -> tuple[int, ...]:
        return self._history.timestamps

    @property
    def values(self) -> tuple[float, ...]:
        return self._history.values

    def load(self) -> None:
        """Fetch the series and redraw. Never raises on fetch failure.

        The previous series stays on screen until the new one has arrived.
        """
        self.loading = True
        self.error = None
        self._redraw()
        try:
            history = self._client.fetch_response_time_history(self.key, self.duration)
        except ClientError as e:
            logger.warning("Failed to load response times for %s (%s): %s", self.key, self.duration, e)
            self.error = ERROR_MESSAGE
        else:
            self._history = history
        finally:
            self.loading = False
        self._redraw()

    def set_series(self, timestamps: Sequence[int], values: Sequence[float]) -> None:
        self._history = ResponseTimeHistory(tuple(timestamps), tuple(values))
        self.error = None
        self._redraw()

    def resize(self, width: float) -> None:
        self._layout = ChartLayout.for_width(width)
        self.origin = Anchor(self.origin.top, self.origin.left, width, CHART_HEIGHT)
        self._redraw()

    def set_dark(self, dark: bool) -> None:
        self.dark = dark
        self._redraw()

    def set_duration(self, duration: str) -> None:
        """Switch duration bucket and fetch the matching series."""
        if duration not in DURATIONS:
            raise ValueError(f"Invalid duration '{duration}'. Must be one of: {DURATIONS}")
        self.duration = duration
        self.load()

    def pointer_move(self, x: float) -> None:
        """Pointer moved over the surface (x relative to its left edge)."""
        if not self._history.values:
            return
        self._set_hover(index_at(x, len(self._history), self._layout.plot))

    def pointer_leave(self) -> None:
        self._set_hover(None)

    def _set_hover(self, index: int | None) -> None:
        if index == self.hover_index:
            return
        self.hover_index = index
        self._redraw()
        self._emit_hover()

    def _emit_hover(self) -> None:
        if self._on_tooltip is None:
            return
        hover = self.frame.hover
        if hover is None:
            self._on_tooltip(None, None, TooltipAction.HOVER)
            return
        point = SeriesPoint(self.timestamps[hover.index], self.values[hover.index])
        anchor = Anchor(self.origin.top + hover.y - 4, self.origin.left + hover.x - 4, 8, 8)
        self._on_tooltip(point, anchor, TooltipAction.HOVER)

    def _redraw(self) -> None:
        if self.loading and not self._history.values:
            self.frame = placeholder_frame(self.width, LOADING_MESSAGE, self.dark)
        elif self.error:
            self.frame = placeholder_frame(self.width, self.error, self.dark)
        else:
            self.frame = draw_chart(
                self.timestamps,
                self.values,
                self.width,
                hover_index=self.hover_index,
                dark=self.dark,
                duration=self.duration,
                tz=self.tz,
            )

    def to_svg(self) -> str:
        return render_svg(self.frame.width, self.frame.height, self.frame.commands, css_class="response-time-chart")
