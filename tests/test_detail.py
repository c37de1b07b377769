"""Tests for the endpoint and suite detail view."""

from datetime import UTC, datetime, timedelta
from unittest.mock import Mock

import pytest

from healthview.client import ClientError, StatusClient
from healthview.detail import (
    LOAD_ERROR,
    STRIP_LEFT,
    STRIP_TOP,
    DetailView,
    average_response_time,
    describe_events,
)
from healthview.models import (
    EndpointEvent,
    EndpointStatus,
    EventType,
    ResponseTimeHistory,
    Sample,
    SelectionToken,
    SuiteStatus,
    Viewport,
)

NOW = datetime(2026, 1, 28, 12, 0, 0, tzinfo=UTC)
PAGE_SIZE = 5


def make_results(pattern: str, duration_ms: int = 100, offset: int = 0) -> tuple[Sample, ...]:
    """One result per character, one minute apart, newest ``offset`` minutes ago."""
    n = len(pattern)
    return tuple(
        Sample(
            timestamp=NOW - timedelta(minutes=offset + n - 1 - i),
            success=c == "+",
            duration_nanos=duration_ms * 1_000_000,
        )
        for i, c in enumerate(pattern)
    )


def slot_x(index: int) -> float:
    return STRIP_LEFT + 5 + 12 * index


@pytest.fixture
def client() -> Mock:
    mock = Mock(spec=StatusClient)
    mock.fetch_endpoint_status.side_effect = lambda key, page, size: EndpointStatus(
        name="Frontend",
        key=key,
        group="core",
        results=make_results("++-++" if page == 1 else "-----", offset=(page - 1) * PAGE_SIZE),
        events=(
            EndpointEvent(EventType.START, NOW - timedelta(hours=3)),
            EndpointEvent(EventType.UNHEALTHY, NOW - timedelta(hours=2)),
            EndpointEvent(EventType.HEALTHY, NOW - timedelta(minutes=55)),
        ),
    )
    mock.fetch_suite_status.return_value = SuiteStatus(name="Checkout", key="shop_checkout", results=make_results("+-"))
    mock.fetch_response_time_history.return_value = ResponseTimeHistory((1000, 2000), (90.0, 110.0))
    return mock


@pytest.fixture
def view(client: Mock) -> DetailView:
    detail = DetailView(client, "core_frontend", page_size=PAGE_SIZE, tz=UTC)
    detail.load()
    yield detail
    detail.unmount()


class TestEvents:
    """Tests for the event timeline."""

    def test_newest_first_with_outage_length(self) -> None:
        """The newest event states the current health; outages report their length."""
        events = [
            EndpointEvent(EventType.START, NOW - timedelta(hours=3)),
            EndpointEvent(EventType.UNHEALTHY, NOW - timedelta(hours=2)),
            EndpointEvent(EventType.HEALTHY, NOW - timedelta(minutes=55)),
        ]
        entries = describe_events(events, now=NOW, tz=UTC)
        assert [e.text for e in entries] == [
            "Endpoint is healthy",
            "Endpoint was unhealthy for 1 hour 5 minutes",
            "Monitoring started",
        ]
        assert entries[0].timestamp == "2026-01-28 11:05:00"
        assert entries[0].ago == "55 minutes ago"

    def test_latest_unhealthy(self) -> None:
        """An open outage reads as the current state."""
        events = [
            EndpointEvent(EventType.HEALTHY, NOW - timedelta(hours=1)),
            EndpointEvent(EventType.UNHEALTHY, NOW - timedelta(minutes=5)),
        ]
        assert [e.text for e in describe_events(events, now=NOW)] == [
            "Endpoint is unhealthy",
            "Endpoint became healthy",
        ]

    def test_no_events(self) -> None:
        assert describe_events([], now=NOW) == []


class TestSummary:
    """Tests for the summary cards."""

    def test_average_rounds_half_up(self) -> None:
        """The mean of measured durations rounds half up."""
        results = make_results("+", 2) + make_results("+", 3)
        assert average_response_time(results) == "3ms"
        assert average_response_time(make_results("++", 0)) == "N/A"

    def test_endpoint_cards(self, view: DetailView) -> None:
        """Endpoints show status, average, range and last check."""
        assert view.summary(NOW) == [
            ("Current Status", "Operational"),
            ("Avg Response Time", "100ms"),
            ("Response Time Range", "100ms"),
            ("Last Check", "now"),
        ]

    def test_suite_cards(self, client: Mock) -> None:
        """Suites show pass/fail status and last check only."""
        detail = DetailView(client, "shop_checkout", kind="suite", page_size=PAGE_SIZE)
        detail.load()
        assert detail.summary(NOW) == [("Current Status", "Failures Detected"), ("Last Check", "now")]
        client.fetch_suite_status.assert_called_once_with("shop_checkout", 1, PAGE_SIZE)
        assert detail.chart is None
        assert detail.events(NOW) == []
        detail.unmount()

    def test_never_checked(self, client: Mock) -> None:
        """No results means the entity was never checked."""
        client.fetch_endpoint_status.side_effect = None
        client.fetch_endpoint_status.return_value = EndpointStatus(name="New", key="new")
        detail = DetailView(client, "new", page_size=PAGE_SIZE)
        detail.load()
        assert ("Last Check", "Never") in detail.summary(NOW)
        assert ("Avg Response Time", "N/A") in detail.summary(NOW)
        assert detail.chart is None

    def test_rejects_unknown_kind(self, client: Mock) -> None:
        with pytest.raises(ValueError):
            DetailView(client, "x", kind="badge")


class TestPaging:
    """Tests for result paging."""

    def test_first_page(self, view: DetailView, client: Mock) -> None:
        """The first page is the current state and fills the strip."""
        client.fetch_endpoint_status.assert_called_once_with("core_frontend", 1, PAGE_SIZE)
        assert view.has_next_page
        assert not view.has_previous_page
        assert view.bar.mounted
        assert len(view.bar.samples) == PAGE_SIZE

    def test_next_page_keeps_current_status(self, view: DetailView) -> None:
        """Older pages change the results shown but not the current status."""
        assert view.next_page() is True
        assert view.page == 2
        assert all(not r.success for r in view.status.results)
        assert view.health == "healthy"
        assert view.summary(NOW)[0] == ("Current Status", "Operational")

        assert view.previous_page() is True
        assert view.page == 1
        assert view.previous_page() is False

    def test_short_page_is_last(self, client: Mock) -> None:
        """A page with fewer results than the page size has no successor."""
        detail = DetailView(client, "core_frontend", page_size=PAGE_SIZE + 1)
        detail.load()
        assert not detail.has_next_page
        assert detail.next_page() is False
        assert detail.page == 1

    def test_paging_releases_selection(self, view: DetailView) -> None:
        """A pinned result that is not on the new page is released."""
        view.click(slot_x(4), STRIP_TOP + 10)
        assert view.tooltip.persistent
        view.next_page()
        assert view.bar.selected_index is None
        assert view.bus.active is None
        assert not view.tooltip.visible

    def test_load_failure(self, view: DetailView, client: Mock) -> None:
        """A failed fetch keeps the shown page and reports an error."""
        client.fetch_endpoint_status.side_effect = ClientError("down")
        view.next_page()
        assert view.error == LOAD_ERROR
        assert len(view.status.results) == PAGE_SIZE
        assert LOAD_ERROR in view.render_html(now=NOW)


class TestChart:
    """Tests for the response-time trend."""

    def test_chart_when_durations_reported(self, view: DetailView, client: Mock) -> None:
        """Measured durations bring in the chart for the configured bucket."""
        assert view.chart is not None
        client.fetch_response_time_history.assert_called_once_with("core_frontend", "24h")

    def test_duration_switch(self, view: DetailView, client: Mock) -> None:
        """Switching the bucket refetches the trend."""
        view.set_duration("7d")
        assert view.chart.duration == "7d"
        client.fetch_response_time_history.assert_called_with("core_frontend", "7d")

    def test_chart_hover_shows_point(self, view: DetailView) -> None:
        """Moving over the chart shows the nearest point in the tooltip."""
        origin = view.chart.origin
        view.pointer_move(origin.left + origin.width - 50, origin.top + 100)
        assert view.chart.hover_index == 1
        assert view.tooltip.visible
        assert view.tooltip.state.content.value_ms == 110.0


class TestPointer:
    """Tests for strip interaction on the detail page."""

    def test_click_selects(self, view: DetailView) -> None:
        """Clicking a segment pins its tooltip."""
        assert view.click(slot_x(2), STRIP_TOP + 10) is True
        assert view.bus.active == SelectionToken("endpoint:core_frontend", 2)
        assert view.tooltip.state.content is view.bar.window[2]

    def test_outside_click_dismisses(self, view: DetailView) -> None:
        view.click(slot_x(2), STRIP_TOP + 10)
        assert view.click(1000, 20) is False
        assert view.bus.active is None
        assert not view.tooltip.visible

    def test_scroll_moves_strip(self, view: DetailView) -> None:
        """Strip rectangles are viewport-relative; the pinned tooltip stays on the page."""
        view.click(slot_x(2), STRIP_TOP + 10)
        top = view.tooltip.position.top
        view.set_viewport(Viewport(1280, 800, scroll_y=200))
        assert view.bar.bounds.top == STRIP_TOP - 200
        assert view.tooltip.position.top == top
        assert view.click(slot_x(3), STRIP_TOP - 190) is True
        assert view.bar.selected_index == 3


class TestRender:
    """Tests for HTML rendering."""

    def test_detail_page(self, view: DetailView) -> None:
        """The page carries header, summaries, strip, pager, chart and events."""
        page = view.render_html(now=NOW)
        assert "<h1>Frontend</h1>" in page
        assert "Group: core" in page
        assert "Avg Response Time" in page
        assert 'class="health-bar"' in page
        assert "Page 1" in page
        assert "<button disabled>" in page
        assert "response-time-chart" in page
        assert "Endpoint was unhealthy for 1 hour 5 minutes" in page

    def test_before_first_load(self, client: Mock) -> None:
        """Nothing loaded yet shows a loading placeholder."""
        detail = DetailView(client, "core_frontend")
        assert "Loading..." in detail.render_html()

    def test_failed_first_load(self, client: Mock) -> None:
        client.fetch_endpoint_status.side_effect = ClientError("down")
        detail = DetailView(client, "core_frontend")
        detail.load()
        assert LOAD_ERROR in detail.render_html()
        assert detail.chart is None
