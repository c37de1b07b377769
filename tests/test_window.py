"""Tests for the display window module."""

from datetime import UTC, datetime, timedelta

import pytest

from healthview.models import Sample
from healthview.window import DEFAULT_WINDOW_WIDTH, build_display_window, window_labels

NOW = datetime(2026, 1, 28, 12, 0, 0, tzinfo=UTC)


def make_samples(count: int) -> list[Sample]:
    """Samples one minute apart, the newest at NOW."""
    return [Sample(timestamp=NOW - timedelta(minutes=count - 1 - i), success=i % 3 != 0) for i in range(count)]


class TestBuildDisplayWindow:
    """Tests for build_display_window."""

    @pytest.mark.parametrize("count,width", [(0, 5), (3, 5), (5, 5), (8, 5), (120, 50), (1, 1)])
    def test_length_always_equals_width(self, count: int, width: int) -> None:
        """Output length is exactly the requested width."""
        assert len(build_display_window(make_samples(count), width)) == width

    def test_pads_front_when_short(self) -> None:
        """Fewer samples than slots: leading None, then samples in order."""
        samples = make_samples(3)
        window = build_display_window(samples, 5)
        assert window[:2] == [None, None]
        assert window[2:] == samples

    def test_takes_tail_when_long(self) -> None:
        """More samples than slots: the last W samples in original order."""
        samples = make_samples(8)
        window = build_display_window(samples, 5)
        assert window == samples[-5:]

    def test_exact_fit_is_unchanged(self) -> None:
        """As many samples as slots: a copy of the input."""
        samples = make_samples(4)
        window = build_display_window(samples, 4)
        assert window == samples
        assert window is not samples

    def test_zero_width(self) -> None:
        """W = 0 yields an empty window."""
        assert build_display_window(make_samples(3), 0) == []

    def test_empty_input(self) -> None:
        """No samples: an all-empty window."""
        assert build_display_window([], 3) == [None, None, None]

    def test_rejects_negative_width(self) -> None:
        """Negative widths are a caller error."""
        with pytest.raises(ValueError, match="non-negative"):
            build_display_window([], -1)

    def test_default_width(self) -> None:
        """Default width is 50 slots."""
        assert DEFAULT_WINDOW_WIDTH == 50
        assert len(build_display_window(make_samples(10))) == 50

    def test_does_not_mutate_input(self) -> None:
        """Input sequence is left untouched."""
        samples = make_samples(3)
        before = list(samples)
        build_display_window(samples, 10)
        assert samples == before


class TestWindowLabels:
    """Tests for window_labels."""

    def test_labels_oldest_and_newest_shown(self) -> None:
        """Labels describe the first and last sample actually shown."""
        samples = make_samples(10)
        oldest, newest = window_labels(samples, 5, now=NOW)
        assert oldest == "4 minutes ago"
        assert newest == "now"

    def test_labels_use_all_samples_when_short(self) -> None:
        """When padded, the oldest label is the first sample."""
        oldest, _ = window_labels(make_samples(3), 50, now=NOW)
        assert oldest == "2 minutes ago"

    def test_no_samples(self) -> None:
        """Nothing shown: empty labels."""
        assert window_labels([], 50, now=NOW) == ("", "")
