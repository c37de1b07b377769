"""Tests for the tooltip module."""

import xml.etree.ElementTree as ET
from datetime import UTC, datetime

import pytest

from healthview.health_bar import HealthBar
from healthview.models import (
    Anchor,
    ConditionResult,
    Position,
    Sample,
    SeriesPoint,
    Size,
    TooltipAction,
    Viewport,
)
from healthview.placement import place_in_viewport
from healthview.selection import SelectionBus
from healthview.tooltip import Tooltip, tooltip_lines, tooltip_sections

TS = datetime(2026, 1, 28, 10, 30, 0, tzinfo=UTC)
ANCHOR = Anchor(top=100, left=100, width=10, height=24)


def fixed_size(lines) -> Size:
    return Size(200, 80)


@pytest.fixture
def bus() -> SelectionBus:
    return SelectionBus()


@pytest.fixture
def tooltip(bus: SelectionBus) -> Tooltip:
    return Tooltip(bus, Viewport(1280, 800), measure=fixed_size)


@pytest.fixture
def sample() -> Sample:
    return Sample(
        timestamp=TS,
        success=False,
        duration_nanos=123_900_000,
        condition_results=(
            ConditionResult("[STATUS] == 200", False),
            ConditionResult("[RESPONSE_TIME] < 500", True),
        ),
        errors=("connection reset",),
    )


class TestContent:
    """Tests for tooltip text."""

    def test_sample_sections(self, sample: Sample) -> None:
        """Samples show timestamp, response time, conditions and errors."""
        sections = dict(tooltip_sections(sample))
        assert list(sections) == ["Timestamp", "Response Time", "Conditions", "Errors"]
        assert sections["Response Time"] == ["123ms"]
        assert sections["Conditions"] == ["✗ [STATUS] == 200", "✓ [RESPONSE_TIME] < 500"]
        assert sections["Errors"] == ["• connection reset"]

    def test_sample_without_diagnostics(self) -> None:
        """Conditions and errors are omitted when absent."""
        sections = dict(tooltip_sections(Sample(timestamp=TS, success=True)))
        assert list(sections) == ["Timestamp", "Response Time"]
        assert sections["Response Time"] == ["0ms"]

    def test_series_point_sections(self) -> None:
        """Chart points show timestamp and rounded response time."""
        ms = int(TS.timestamp() * 1000)
        sections = dict(tooltip_sections(SeriesPoint(ms, 41.6)))
        assert sections["Response Time"] == ["42ms"]

    def test_series_point_half_rounds_up(self) -> None:
        """42.5ms is shown as 43ms."""
        sections = dict(tooltip_sections(SeriesPoint(0, 42.5)))
        assert sections["Response Time"] == ["43ms"]

    def test_lines_include_headings(self, sample: Sample) -> None:
        """Flattened lines start each section with its heading."""
        lines = tooltip_lines(sample)
        assert lines[0] == "TIMESTAMP"
        assert "ERRORS" in lines


class TestRequests:
    """Tests for hover and click requests."""

    def test_hover_shows_transient(self, tooltip: Tooltip, sample: Sample) -> None:
        """Hover requests show a non-persistent tooltip."""
        tooltip.request(sample, ANCHOR, TooltipAction.HOVER)
        assert tooltip.visible
        assert not tooltip.persistent
        assert tooltip.position == place_in_viewport(ANCHOR, Size(200, 80), tooltip.viewport)

    def test_hover_clear_hides(self, tooltip: Tooltip, sample: Sample) -> None:
        """Hover with no content hides a transient tooltip."""
        tooltip.request(sample, ANCHOR, TooltipAction.HOVER)
        tooltip.request(None, None, TooltipAction.HOVER)
        assert not tooltip.visible
        assert tooltip.position is None

    def test_click_pins(self, tooltip: Tooltip, sample: Sample) -> None:
        """Click requests pin the tooltip."""
        tooltip.request(sample, ANCHOR, "click")
        assert tooltip.visible
        assert tooltip.persistent

    def test_hover_ignored_while_pinned(self, tooltip: Tooltip, sample: Sample) -> None:
        """Pinned tooltips survive hover and pointer-leave."""
        tooltip.request(sample, ANCHOR, TooltipAction.CLICK)
        other = Sample(timestamp=TS, success=True)
        tooltip.request(other, Anchor(0, 0, 5, 5), TooltipAction.HOVER)
        tooltip.request(None, None, TooltipAction.HOVER)
        assert tooltip.state.content is sample
        assert tooltip.persistent

    def test_click_clear_unpins(self, tooltip: Tooltip, sample: Sample) -> None:
        """Click with no content hides and unpins."""
        tooltip.request(sample, ANCHOR, TooltipAction.CLICK)
        tooltip.request(None, None, TooltipAction.CLICK)
        assert not tooltip.visible
        assert not tooltip.persistent

    def test_rejects_unknown_action(self, tooltip: Tooltip, sample: Sample) -> None:
        """Only hover and click are actions."""
        with pytest.raises(ValueError):
            tooltip.request(sample, ANCHOR, "drag")


class TestDismiss:
    """Tests for outside-click dismissal."""

    def test_outside_click_dismisses_and_clears_selection(self, bus: SelectionBus, tooltip: Tooltip) -> None:
        """Clicking elsewhere hides the tooltip and deselects the strip."""
        bar = HealthBar(bus, [Sample(timestamp=TS, success=True)], max_results=1, on_tooltip=tooltip.request)
        with bar:
            bar.click(0)
            assert tooltip.persistent
            assert tooltip.handle_document_click(1000, 700) is True
            assert not tooltip.visible
            assert bar.selected_index is None
            assert bus.active is None

    def test_click_inside_strip_does_not_dismiss(self, bus: SelectionBus, tooltip: Tooltip) -> None:
        """Strip areas are exempt from outside-click dismissal."""
        bar = HealthBar(
            bus,
            [Sample(timestamp=TS, success=True)],
            max_results=1,
            on_tooltip=tooltip.request,
            bounds=Anchor(500, 500, 10, 24),
        )
        with bar:
            bar.click(0)
            assert tooltip.handle_document_click(505, 510) is False
            assert tooltip.persistent

    def test_click_inside_tooltip_does_not_dismiss(self, tooltip: Tooltip, sample: Sample) -> None:
        """Clicks on the tooltip itself keep it open."""
        tooltip.request(sample, ANCHOR, TooltipAction.CLICK)
        box = tooltip.box
        assert tooltip.handle_document_click(box.left + 5, box.top + 5) is False
        assert tooltip.visible

    def test_transient_tooltip_ignores_document_clicks(self, tooltip: Tooltip, sample: Sample) -> None:
        """Only pinned tooltips are dismissed by outside clicks."""
        tooltip.request(sample, ANCHOR, TooltipAction.HOVER)
        assert tooltip.handle_document_click(1000, 700) is False
        assert tooltip.visible


class TestViewport:
    """Tests for viewport changes and rendering."""

    def test_set_viewport_replaces_visible_tooltip(self, tooltip: Tooltip, sample: Sample) -> None:
        """Scrolling moves the document position of a visible tooltip."""
        tooltip.request(sample, ANCHOR, TooltipAction.CLICK)
        tooltip.set_viewport(Viewport(1280, 800, scroll_y=300))
        assert tooltip.position == Position(top=ANCHOR.bottom + 300 + 8, left=ANCHOR.left)

    def test_box_in_viewport_coordinates(self, tooltip: Tooltip, sample: Sample) -> None:
        """box undoes the scroll offset."""
        tooltip.set_viewport(Viewport(1280, 800, scroll_y=300))
        tooltip.request(sample, ANCHOR, TooltipAction.CLICK)
        assert tooltip.box == Anchor(top=ANCHOR.bottom + 8, left=ANCHOR.left, width=200, height=80)

    def test_svg_hidden_is_empty(self, tooltip: Tooltip) -> None:
        """Nothing is rendered while hidden."""
        assert tooltip.to_svg() == ""

    def test_svg_lists_lines(self, tooltip: Tooltip, sample: Sample) -> None:
        """Rendered tooltip has one text element per line."""
        tooltip.request(sample, ANCHOR, TooltipAction.CLICK)
        root = ET.fromstring(tooltip.to_svg())
        texts = root.findall("{http://www.w3.org/2000/svg}text")
        assert [t.text for t in texts] == tooltip.lines()
