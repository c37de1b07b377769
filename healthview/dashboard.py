"""Dashboard view: endpoint and suite cards with filtering, grouping and pointer routing.

The ``Dashboard`` is the nearest common ancestor of every health bar on the
page. It owns the ``SelectionBus`` and the single ``Tooltip``, lays the cards
out top to bottom, and routes pointer events to whichever strip is under the
pointer. Everything else on the page treats a click as an outside click.
"""

import html
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from ._page import build_page
from .client import DEFAULT_PAGE_SIZE, ClientError, StatusClient
from .health_bar import DEFAULT_SEGMENT_WIDTH, SEGMENT_GAP, SEGMENT_HEIGHT, HealthBar
from .models import Anchor, Announcement, EndpointStatus, Sample, SuiteStatus, Viewport
from .preferences import Preferences
from .selection import SelectionBus
from .timefmt import format_refresh_interval, round_half_up
from .tooltip import Tooltip
from .window import DEFAULT_WINDOW_WIDTH

logger = logging.getLogger(__name__)

NO_GROUP = "No Group"

ENDPOINTS_ERROR = "Failed to load endpoints"
SUITES_ERROR = "Failed to load suites"

# Vertical layout, in pixels from the top of the page.
PAGE_MARGIN = 16
TOOLBAR_HEIGHT = 120
SECTION_HEADER_HEIGHT = 56
SECTION_GAP = 24
CARD_PADDING_X = 24
CARD_HEIGHT = 104
CARD_STRIP_OFFSET = 56
CARD_GAP = 12

Status = EndpointStatus | SuiteStatus


def response_time_text(results: Sequence[Sample], average: bool = True) -> str:
    """Summarize measured response times as ``~Nms`` or ``min-maxms``.

    Results without a measured duration are ignored.
    """
    durations = [r.duration_ms for r in results if r.duration_nanos]
    if not durations:
        return "N/A"
    if average:
        return f"~{round_half_up(sum(durations) / len(durations))}ms"
    low, high = int(min(durations)), int(max(durations))
    return f"{low}ms" if low == high else f"{low}-{high}ms"


def is_failing(status: Status) -> bool:
    """Latest result failed."""
    latest = status.latest
    return latest is not None and not latest.success


def is_unstable(status: Status) -> bool:
    """Any shown result failed."""
    return any(not r.success for r in status.results)


def health_of(status: Status) -> str:
    latest = status.latest
    if latest is None:
        return "unknown"
    return "healthy" if latest.success else "unhealthy"


class Card:
    """One entity card: header text plus its health bar."""

    kind = "card"

    def __init__(self, status: Status, bar: HealthBar) -> None:
        self.status = status
        self.bar = bar

    @property
    def key(self) -> str:
        return self.status.key

    @property
    def name(self) -> str:
        return self.status.name

    @property
    def group(self) -> str:
        return self.status.group

    @property
    def health(self) -> str:
        return health_of(self.status)

    @property
    def failing(self) -> bool:
        return is_failing(self.status)

    def meta(self) -> list[str]:
        return [self.group] if self.group else []

    def response_time(self, average: bool) -> str:
        return ""

    def update(self, status: Status) -> None:
        self.status = status
        self.bar.set_samples(status.results)


class EndpointCard(Card):
    kind = "endpoint"

    def meta(self) -> list[str]:
        parts = super().meta()
        latest = self.status.latest
        if latest is not None and latest.hostname:
            parts.append(latest.hostname)
        return parts

    def response_time(self, average: bool) -> str:
        return response_time_text(self.status.results, average)


class SuiteCard(Card):
    kind = "suite"


@dataclass
class Section:
    """A titled run of cards; a collapsible group when sorting by group."""

    title: str
    cards: list[Card]
    collapsible: bool = False
    collapsed: bool = False
    header: Anchor | None = None

    @property
    def failing_count(self) -> int:
        return sum(1 for card in self.cards if card.failing)


class Dashboard:
    """Interactive dashboard state.

    Example:
        dashboard = Dashboard(client, preferences)
        dashboard.refresh()
        dashboard.click(120, 300)
        html_page = dashboard.render_html()
    """

    def __init__(
        self,
        client: StatusClient,
        preferences: Preferences,
        max_results: int = DEFAULT_WINDOW_WIDTH,
        page_size: int = DEFAULT_PAGE_SIZE,
        viewport: Viewport | None = None,
        dark: bool = False,
    ) -> None:
        """Initialize the dashboard.

        Args:
            client: REST client for statuses and server config.
            preferences: Persisted display preferences.
            max_results: Segments per health bar.
            page_size: Results requested per entity.
            viewport: Initial viewport, for tooltip placement.
            dark: Render with the dark palette.
        """
        self._client = client
        self.preferences = preferences
        self.max_results = max_results
        self.page_size = page_size
        self.dark = dark
        self.bus = SelectionBus()
        self.tooltip = Tooltip(self.bus, viewport or Viewport(1280, 800))
        self.endpoints: list[EndpointStatus] = []
        self.suites: list[SuiteStatus] = []
        self.announcements: list[Announcement] = []
        self.errors: dict[str, str] = {}
        self.loading = False
        self.search_query = ""
        self._cards: dict[tuple[str, str], Card] = {}
        self._sections: list[Section] = []
        self._hover: tuple[Card, int] | None = None

    # -- data ------------------------------------------------------------

    def refresh(self) -> None:
        """Fetch endpoints and suites independently.

        A failed half keeps showing its previous data and reports an error
        message; the other half is still applied. Both halves are applied
        together once both fetches have finished.
        """
        endpoints, suites = self.endpoints, self.suites
        errors = dict(self.errors)
        self.loading = not endpoints and not suites
        try:
            try:
                endpoints = self._client.fetch_endpoint_statuses(1, self.page_size)
                errors.pop("endpoints", None)
            except ClientError as e:
                logger.warning("Failed to refresh endpoints: %s", e)
                errors["endpoints"] = ENDPOINTS_ERROR

            try:
                suites = self._client.fetch_suite_statuses(1, self.page_size)
                errors.pop("suites", None)
            except ClientError as e:
                logger.warning("Failed to refresh suites: %s", e)
                errors["suites"] = SUITES_ERROR
        finally:
            self.loading = False

        self.endpoints, self.suites, self.errors = endpoints, suites, errors
        logger.debug("Dashboard refreshed: %d endpoints, %d suites", len(self.endpoints), len(self.suites))
        self._sync_cards()

    def reload(self) -> None:
        """Discard shown data and fetch from scratch (the refresh button)."""
        self.endpoints = []
        self.suites = []
        self.refresh()

    def refresh_config(self) -> None:
        """Re-check server config; keeps previous announcements on failure."""
        try:
            config = self._client.fetch_config()
        except ClientError as e:
            logger.warning("Failed to refresh server config: %s", e)
            return
        self.announcements = list(config.announcements)

    @property
    def active_announcements(self) -> list[Announcement]:
        return [a for a in self.announcements if not a.archived]

    @property
    def archived_announcements(self) -> list[Announcement]:
        return [a for a in self.announcements if a.archived]

    def _sync_cards(self) -> None:
        seen: set[tuple[str, str]] = set()
        for kind, statuses in (("suite", self.suites), ("endpoint", self.endpoints)):
            for status in statuses:
                card_id = (kind, status.key)
                seen.add(card_id)
                card = self._cards.get(card_id)
                if card is None:
                    card_cls = SuiteCard if kind == "suite" else EndpointCard
                    bar = HealthBar(
                        self.bus,
                        status.results,
                        max_results=self.max_results,
                        on_tooltip=self.tooltip.request,
                        key=f"{kind}:{status.key}",
                    )
                    self._cards[card_id] = card_cls(status, bar)
                else:
                    card.update(status)

        for card_id in list(self._cards):
            if card_id not in seen:
                self._cards.pop(card_id).bar.unmount()

        self._layout()

    # -- filtering, sorting and grouping ---------------------------------

    def _matches(self, card: Card) -> bool:
        if self.search_query:
            query = self.search_query.lower()
            if query not in card.name.lower() and query not in card.group.lower():
                return False

        choice = self.preferences.filter_by
        if choice == "failing":
            return card.failing
        if choice == "unstable":
            return is_unstable(card.status)
        return True

    def _sorted(self, cards: list[Card]) -> list[Card]:
        if self.preferences.sort_by == "health":
            return sorted(cards, key=lambda c: (not c.failing, c.name.lower()))
        return sorted(cards, key=lambda c: c.name.lower())

    def filtered_cards(self, kind: str) -> list[Card]:
        """Cards of one kind (``endpoint`` or ``suite``) after search, filter and sort."""
        cards = [c for (k, _), c in self._cards.items() if k == kind and self._matches(c)]
        return self._sorted(cards)

    def sections(self) -> list[Section]:
        """Visible sections in page order."""
        return self._sections

    def _build_sections(self) -> list[Section]:
        suites = self.filtered_cards("suite")
        endpoints = self.filtered_cards("endpoint")

        if self.preferences.sort_by != "group":
            sections = []
            if suites:
                sections.append(Section("Suites", suites))
            if endpoints:
                sections.append(Section("Endpoints", endpoints))
            return sections

        groups: dict[str, list[Card]] = {}
        for card in suites + endpoints:
            groups.setdefault(card.group or NO_GROUP, []).append(card)

        expanded = self.preferences.uncollapsed_groups
        names = sorted(groups, key=lambda g: (g == NO_GROUP, g.lower()))
        return [
            Section(name, groups[name], collapsible=True, collapsed=name not in expanded)
            for name in names
        ]

    def _layout(self) -> None:
        """Recompute sections and screen rectangles; mount visible strips only.

        Rectangles are viewport-relative: the page offsets minus the current
        scroll, the same space as pointer coordinates.
        """
        self._sections = self._build_sections()
        strip_width = self.max_results * (DEFAULT_SEGMENT_WIDTH + SEGMENT_GAP) - SEGMENT_GAP
        section_width = strip_width + 2 * (CARD_PADDING_X + PAGE_MARGIN)
        visible: set[int] = set()
        viewport = self.tooltip.viewport
        left = -viewport.scroll_x

        y = TOOLBAR_HEIGHT - viewport.scroll_y
        for section in self._sections:
            section.header = Anchor(y, left + PAGE_MARGIN, section_width, SECTION_HEADER_HEIGHT)
            y += SECTION_HEADER_HEIGHT
            if not section.collapsed:
                for card in section.cards:
                    card.bar.set_bounds(
                        Anchor(
                            y + CARD_STRIP_OFFSET,
                            left + 2 * PAGE_MARGIN + CARD_PADDING_X,
                            strip_width,
                            SEGMENT_HEIGHT,
                        )
                    )
                    visible.add(id(card))
                    y += CARD_HEIGHT + CARD_GAP
            y += SECTION_GAP

        for card in self._cards.values():
            if id(card) in visible:
                card.bar.mount()
            else:
                card.bar.unmount()

        if self._hover is not None and id(self._hover[0]) not in visible:
            self._hover = None

    def visible_cards(self) -> list[Card]:
        return [card for section in self._sections if not section.collapsed for card in section.cards]

    def set_search(self, query: str) -> None:
        self.search_query = query.strip()
        self._layout()

    def set_filter(self, choice: str) -> None:
        self.preferences.filter_by = choice
        self._layout()

    def set_sort(self, choice: str) -> None:
        self.preferences.sort_by = choice
        self._layout()

    def toggle_group(self, group: str) -> None:
        self.preferences.toggle_group(group)
        self._layout()

    def set_viewport(self, viewport: Viewport) -> None:
        """Window resized or scrolled: strips move and a pinned tooltip follows."""
        self.tooltip.set_viewport(viewport)
        self._layout()
        if self._hover is not None:
            self._hover[0].bar.pointer_leave()
            self._hover = None

    # -- pointer routing -------------------------------------------------

    def _strip_at(self, x: float, y: float) -> Card | None:
        for card in self.visible_cards():
            if card.bar.contains(x, y):
                return card
        return None

    def click(self, x: float, y: float) -> bool:
        """Route a click.

        Returns:
            True if a strip handled the click. Otherwise the click is an
            outside click: it may dismiss a pinned tooltip and may toggle a
            group header.
        """
        card = self._strip_at(x, y)
        if card is not None:
            index = card.bar.segment_at(x, y)
            if index is not None:
                card.bar.click(index)
            return True

        self.tooltip.handle_document_click(x, y)
        for section in self._sections:
            if section.collapsible and section.header is not None and section.header.contains(x, y):
                self.toggle_group(section.title)
                break
        return False

    def pointer_move(self, x: float, y: float) -> None:
        """Route pointer movement as segment enter/leave events."""
        target: tuple[Card, int] | None = None
        card = self._strip_at(x, y)
        if card is not None:
            index = card.bar.segment_at(x, y)
            if index is not None:
                target = (card, index)

        if target == self._hover:
            return
        if self._hover is not None:
            self._hover[0].bar.pointer_leave()
        self._hover = target
        if target is not None:
            target[0].bar.pointer_enter(target[1])

    def unmount(self) -> None:
        """Release every strip's selection subscription."""
        for card in self._cards.values():
            card.bar.unmount()
        self._hover = None

    # -- rendering -------------------------------------------------------

    def _render_card(self, card: Card, now: datetime | None) -> str:
        average = self.preferences.show_average_response_time
        oldest, newest = card.bar.labels(now)
        meta = " &bull; ".join(html.escape(part) for part in card.meta())
        title = "Average response time" if average else "Min-max response time"
        return (
            f'<div class="card {card.kind}" data-key="{html.escape(card.key)}">'
            f'<span class="badge {card.health}">{card.health}</span>'
            f'<div class="name">{html.escape(card.name)}</div>'
            f'<div class="meta">{meta}</div>'
            f'<p class="response-time" title="{title}">{html.escape(card.response_time(average))}</p>'
            f"{card.bar.to_svg(self.dark)}"
            f'<div class="labels"><span>{html.escape(oldest)}</span><span>{html.escape(newest)}</span></div>'
            "</div>"
        )

    def _render_section(self, section: Section, now: datetime | None) -> str:
        badge = ""
        if section.collapsible:
            count = section.failing_count
            badge = f'<span class="count">{count}</span>' if count else '<span class="ok">&#10003;</span>'
        parts = [f'<div class="section"><h2><span>{html.escape(section.title)}</span>{badge}</h2>']
        if not section.collapsed:
            parts.extend(self._render_card(card, now) for card in section.cards)
        parts.append("</div>")
        return "".join(parts)

    def render_html(self, now: datetime | None = None, title: str = "Health Dashboard") -> str:
        """Render the current state as a standalone HTML page."""
        body: list[str] = [
            f'<div class="toolbar">Auto-refresh every '
            f"{format_refresh_interval(self.preferences.refresh_interval)}</div>"
        ]
        for message in self.errors.values():
            body.append(f'<div class="error">{html.escape(message)}</div>')
        for announcement in self.active_announcements:
            body.append(
                f'<div class="announcement {html.escape(announcement.severity)}">'
                f"<strong>{html.escape(announcement.title)}</strong> {html.escape(announcement.description)}</div>"
            )

        if self.loading:
            body.append('<div class="empty">Loading...</div>')
        elif not self._sections:
            hint = (
                "Try adjusting your filters"
                if self.search_query or self.preferences.filter_by != "none"
                else "No endpoints or suites are configured"
            )
            body.append(f'<div class="empty"><h3>No endpoints or suites found</h3><p>{hint}</p></div>')
        else:
            body.extend(self._render_section(section, now) for section in self._sections)

        archived = self.archived_announcements
        if archived:
            body.append('<div class="section"><h2><span>Past Announcements</span></h2>')
            for announcement in archived:
                description = f"<p>{html.escape(announcement.description)}</p>" if announcement.description else ""
                body.append(
                    f'<div class="announcement archived"><strong>{html.escape(announcement.title)}</strong>'
                    f"{description}</div>"
                )
            body.append("</div>")

        if self.tooltip.visible and self.tooltip.position is not None:
            pos = self.tooltip.position
            body.append(
                f'<div class="tooltip-layer" style="top: {pos.top:g}px; left: {pos.left:g}px">'
                f"{self.tooltip.to_svg(self.dark)}</div>"
            )

        return build_page(html.escape(title), "\n".join(body), self.dark)
