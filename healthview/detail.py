"""Detail view for a single endpoint or suite.

One page of results drawn as a full-width health bar, summary cards
(current status, response times, last check), the response-time trend for
endpoints that report durations, and the endpoint's event timeline.
"""

import html
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, tzinfo

from ._page import build_page
from .chart import CHART_HEIGHT, ResponseTimeChart
from .client import DEFAULT_PAGE_SIZE, ClientError, StatusClient
from .dashboard import health_of, response_time_text
from .health_bar import DEFAULT_SEGMENT_WIDTH, SEGMENT_GAP, SEGMENT_HEIGHT, HealthBar
from .models import Anchor, EndpointEvent, EndpointStatus, EventType, Sample, SuiteStatus, Viewport
from .selection import SelectionBus
from .timefmt import duration_ms, format_timestamp, time_ago, time_difference
from .tooltip import Tooltip

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load results"

# Page layout, in pixels from the top of the document.
PAGE_MARGIN = 16
STRIP_TOP = 360
STRIP_LEFT = 2 * PAGE_MARGIN + 24
CHART_TOP = STRIP_TOP + SEGMENT_HEIGHT + 120

_LATEST_EVENT_TEXT = {
    EventType.HEALTHY: "Endpoint is healthy",
    EventType.UNHEALTHY: "Endpoint is unhealthy",
    EventType.START: "Monitoring started",
}


@dataclass(frozen=True)
class EventEntry:
    """One line of the event timeline."""

    type: EventType
    text: str
    timestamp: str
    ago: str


def describe_events(
    events: Sequence[EndpointEvent],
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[EventEntry]:
    """Turn health transitions (oldest first) into a newest-first timeline.

    The newest event describes the current state. An older unhealthy event
    reports how long the outage lasted, up to the event that followed it.
    """
    entries = []
    last = len(events) - 1
    for i in range(last, -1, -1):
        event = events[i]
        if i == last:
            text = _LATEST_EVENT_TEXT[event.type]
        elif event.type == EventType.HEALTHY:
            text = "Endpoint became healthy"
        elif event.type == EventType.UNHEALTHY:
            text = f"Endpoint was unhealthy for {time_difference(events[i + 1].timestamp, event.timestamp)}"
        else:
            text = "Monitoring started"
        entries.append(
            EventEntry(event.type, text, format_timestamp(event.timestamp, tz), time_ago(event.timestamp, now))
        )
    return entries


def average_response_time(results: Sequence[Sample]) -> str:
    """Mean of the measured durations, e.g. ``"123ms"``."""
    durations = [r.duration_nanos for r in results if r.duration_nanos]
    if not durations:
        return "N/A"
    return duration_ms(sum(durations) / len(durations))


class DetailView:
    """Interactive state of an endpoint or suite detail page.

    Example:
        view = DetailView(client, "core_frontend")
        view.load()
        view.next_page()
        html_page = view.render_html()
    """

    def __init__(
        self,
        client: StatusClient,
        key: str,
        kind: str = "endpoint",
        page_size: int = DEFAULT_PAGE_SIZE,
        duration: str = "24h",
        chart_width: float = 800,
        viewport: Viewport | None = None,
        dark: bool = False,
        tz: tzinfo | None = None,
    ) -> None:
        """Initialize the view.

        Args:
            client: REST client for statuses and response-time history.
            key: Entity key.
            kind: ``endpoint`` or ``suite``.
            page_size: Results per page; also the strip's slot count.
            duration: Initial chart duration bucket.
            chart_width: Chart surface width in pixels.
            viewport: Initial viewport, for tooltip placement.
            dark: Render with the dark palette.
            tz: Time zone for absolute timestamps.
        """
        if kind not in ("endpoint", "suite"):
            raise ValueError(f"Invalid kind '{kind}'. Must be 'endpoint' or 'suite'")
        self._client = client
        self.key = key
        self.kind = kind
        self.page_size = page_size
        self.dark = dark
        self.tz = tz
        self.page = 1
        self.status: EndpointStatus | SuiteStatus | None = None
        self.current: EndpointStatus | SuiteStatus | None = None
        self.error: str | None = None
        self.bus = SelectionBus()
        self.tooltip = Tooltip(self.bus, viewport or Viewport(1280, 800))
        self.bar = HealthBar(
            self.bus,
            max_results=page_size,
            on_tooltip=self.tooltip.request,
            key=f"{kind}:{key}",
        )
        self.chart: ResponseTimeChart | None = None
        self._chart_width = chart_width
        self._duration = duration
        self._hover_index: int | None = None
        self._layout()

    # -- data ------------------------------------------------------------

    def load(self) -> None:
        """Fetch the current page. Never raises on fetch failure.

        Page 1 is the entity's current state; other pages only change the
        results shown.
        """
        try:
            if self.kind == "suite":
                status = self._client.fetch_suite_status(self.key, self.page, self.page_size)
            else:
                status = self._client.fetch_endpoint_status(self.key, self.page, self.page_size)
        except ClientError as e:
            logger.warning("Failed to load %s %s (page %d): %s", self.kind, self.key, self.page, e)
            self.error = LOAD_ERROR
            return

        self.error = None
        self.status = status
        if self.page == 1:
            self.current = status
        self.bar.set_samples(status.results)
        self.bar.mount()
        logger.debug("Loaded %s %s page %d: %d results", self.kind, self.key, self.page, len(status.results))

        if self.chart is None and self.kind == "endpoint" and any(r.duration_nanos for r in status.results):
            self.chart = ResponseTimeChart(
                self._client,
                self.key,
                duration=self._duration,
                width=self._chart_width,
                dark=self.dark,
                tz=self.tz,
                on_tooltip=self.tooltip.request,
            )
            self._layout()
            self.chart.load()

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1

    @property
    def has_next_page(self) -> bool:
        """A full page suggests older results exist."""
        return self.status is not None and len(self.status.results) >= self.page_size

    def next_page(self) -> bool:
        if not self.has_next_page:
            return False
        self.page += 1
        self.load()
        return True

    def previous_page(self) -> bool:
        if not self.has_previous_page:
            return False
        self.page -= 1
        self.load()
        return True

    def set_duration(self, duration: str) -> None:
        """Switch the chart's duration bucket."""
        self._duration = duration
        if self.chart is not None:
            self.chart.set_duration(duration)

    # -- summary ---------------------------------------------------------

    @property
    def health(self) -> str:
        return health_of(self.current) if self.current is not None else "unknown"

    def summary(self, now: datetime | None = None) -> list[tuple[str, str]]:
        """Labelled summary cards in page order."""
        healthy = self.health == "healthy"
        latest = self.current.latest if self.current is not None else None
        last_check = time_ago(latest.timestamp, now) if latest is not None else "Never"

        if self.kind == "suite":
            return [
                ("Current Status", "All Passing" if healthy else "Failures Detected"),
                ("Last Check", last_check),
            ]

        results = self.status.results if self.status is not None else ()
        return [
            ("Current Status", "Operational" if healthy else "Issues Detected"),
            ("Avg Response Time", average_response_time(results)),
            ("Response Time Range", response_time_text(results, average=False)),
            ("Last Check", last_check),
        ]

    def events(self, now: datetime | None = None) -> list[EventEntry]:
        if self.kind == "suite" or self.status is None:
            return []
        return describe_events(self.status.events, now, self.tz)

    # -- layout and pointer routing --------------------------------------

    def _layout(self) -> None:
        """Place the strip and chart in viewport coordinates."""
        viewport = self.tooltip.viewport
        width = self.page_size * (DEFAULT_SEGMENT_WIDTH + SEGMENT_GAP) - SEGMENT_GAP
        self.bar.set_bounds(
            Anchor(STRIP_TOP - viewport.scroll_y, STRIP_LEFT - viewport.scroll_x, width, SEGMENT_HEIGHT)
        )
        if self.chart is not None:
            self.chart.origin = Anchor(
                CHART_TOP - viewport.scroll_y,
                STRIP_LEFT - viewport.scroll_x,
                self.chart.width,
                CHART_HEIGHT,
            )

    def set_viewport(self, viewport: Viewport) -> None:
        self.tooltip.set_viewport(viewport)
        self._layout()

    def click(self, x: float, y: float) -> bool:
        """Route a click given in viewport coordinates."""
        if self.bar.mounted and self.bar.contains(x, y):
            index = self.bar.segment_at(x, y)
            if index is not None:
                self.bar.click(index)
            return True
        self.tooltip.handle_document_click(x, y)
        return False

    def pointer_move(self, x: float, y: float) -> None:
        """Route pointer movement over the strip and the chart."""
        index = self.bar.segment_at(x, y) if self.bar.mounted else None
        if index != self._hover_index:
            if self._hover_index is not None:
                self.bar.pointer_leave()
            self._hover_index = index
            if index is not None:
                self.bar.pointer_enter(index)

        if self.chart is not None:
            origin = self.chart.origin
            if origin.contains(x, y):
                self.chart.pointer_move(x - origin.left)
            elif self.chart.hover_index is not None:
                self.chart.pointer_leave()

    def unmount(self) -> None:
        self.bar.unmount()
        self._hover_index = None

    # -- rendering -------------------------------------------------------

    def render_html(self, now: datetime | None = None) -> str:
        """Render the current state as a standalone HTML page."""
        if self.status is None:
            title = self.key
            message = self.error or "Loading..."
            css = "error" if self.error else "empty"
            return build_page(html.escape(title), f'<div class="{css}">{html.escape(message)}</div>', self.dark)

        status = self.current or self.status
        body: list[str] = []
        if self.error:
            body.append(f'<div class="error">{html.escape(self.error)}</div>')

        meta = [f"Group: {status.group}"] if status.group else []
        latest = status.latest
        if latest is not None and latest.hostname:
            meta.append(latest.hostname)
        body.append(
            f'<div class="detail-header"><span class="badge {self.health}">{self.health}</span>'
            f"<h1>{html.escape(status.name)}</h1>"
            f'<div class="meta">{" &bull; ".join(html.escape(m) for m in meta)}</div></div>'
        )

        cards = "".join(
            f'<div class="summary"><p>{html.escape(label)}</p><strong>{html.escape(value)}</strong></div>'
            for label, value in self.summary(now)
        )
        body.append(f'<div class="summaries">{cards}</div>')

        oldest, newest = self.bar.labels(now)
        previous = "" if self.has_previous_page else " disabled"
        following = "" if self.has_next_page else " disabled"
        body.append(
            '<div class="section"><h2><span>Recent Checks</span></h2>'
            f'<div class="card">{self.bar.to_svg(self.dark)}'
            f'<div class="labels"><span>{html.escape(oldest)}</span><span>{html.escape(newest)}</span></div>'
            f'<div class="pager"><button{previous}>&lsaquo;</button>'
            f"<span>Page {self.page}</span><button{following}>&rsaquo;</button></div></div></div>"
        )

        if self.chart is not None:
            body.append(
                '<div class="section"><h2><span>Response Time Trend</span>'
                f'<span class="duration">{html.escape(self.chart.duration)}</span></h2>'
                f'<div class="card">{self.chart.to_svg()}</div></div>'
            )

        events = self.events(now)
        if events:
            items = "".join(
                f'<li class="event {event.type.lower()}"><strong>{html.escape(event.text)}</strong>'
                f"<span>{html.escape(event.timestamp)} &bull; {html.escape(event.ago)}</span></li>"
                for event in events
            )
            body.append(f'<div class="section"><h2><span>Events</span></h2><ul class="events">{items}</ul></div>')

        if self.tooltip.visible and self.tooltip.position is not None:
            pos = self.tooltip.position
            body.append(
                f'<div class="tooltip-layer" style="top: {pos.top:g}px; left: {pos.left:g}px">'
                f"{self.tooltip.to_svg(self.dark)}</div>"
            )

        return build_page(html.escape(status.name), "\n".join(body), self.dark)
