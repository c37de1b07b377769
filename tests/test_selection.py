"""Tests for the selection bus module."""

from unittest.mock import Mock

from healthview.models import SelectionToken
from healthview.selection import SelectionBus


class TestSubscriptions:
    """Tests for subscribe/unsubscribe lifecycle."""

    def test_subscribe_returns_distinct_handles(self) -> None:
        """Each subscription gets its own handle."""
        bus = SelectionBus()
        a = bus.subscribe(Mock())
        b = bus.subscribe(Mock())
        assert a != b
        assert len(bus) == 2

    def test_unsubscribed_listener_not_called(self) -> None:
        """Released subscribers stop receiving clears."""
        bus = SelectionBus()
        listener = Mock()
        handle = bus.subscribe(listener)
        bus.unsubscribe(handle)
        bus.clear_all()
        listener.assert_not_called()
        assert len(bus) == 0

    def test_unsubscribe_unknown_handle_ignored(self) -> None:
        """Unknown handles are a no-op."""
        bus = SelectionBus()
        bus.unsubscribe(42)
        assert len(bus) == 0

    def test_subscription_context_manager(self) -> None:
        """The context manager releases on exit."""
        bus = SelectionBus()
        with bus.subscription(Mock()):
            assert len(bus) == 1
        assert len(bus) == 0


class TestBroadcast:
    """Tests for clear_all and notify_selected."""

    def test_clear_all_notifies_every_subscriber(self) -> None:
        """Every subscriber hears a clear."""
        bus = SelectionBus()
        listeners = [Mock(), Mock(), Mock()]
        for listener in listeners:
            bus.subscribe(listener)
        bus.clear_all()
        for listener in listeners:
            listener.assert_called_once_with()

    def test_notify_selected_clears_then_records(self) -> None:
        """Subscribers see no active selection while being cleared."""
        bus = SelectionBus()
        seen = []
        bus.subscribe(lambda: seen.append(bus.active))
        bus.notify_selected(SelectionToken("a", 1))
        assert seen == [None]
        assert bus.active == SelectionToken("a", 1)

    def test_new_selection_replaces_old(self) -> None:
        """Only the latest token is active."""
        bus = SelectionBus()
        bus.notify_selected(SelectionToken("a", 1))
        bus.notify_selected(SelectionToken("b", 2))
        assert bus.is_selected(SelectionToken("b", 2))
        assert not bus.is_selected(SelectionToken("a", 1))

    def test_clear_all_drops_active(self) -> None:
        """clear_all leaves nothing selected."""
        bus = SelectionBus()
        bus.notify_selected(SelectionToken("a", 1))
        bus.clear_all()
        assert bus.active is None

    def test_listener_may_unsubscribe_during_clear(self) -> None:
        """Unsubscribing from inside a clear callback is safe."""
        bus = SelectionBus()
        other = Mock()
        handles = {}
        handles["self"] = bus.subscribe(lambda: bus.unsubscribe(handles["self"]))
        bus.subscribe(other)
        bus.clear_all()
        other.assert_called_once_with()
        assert len(bus) == 1


class TestHitTest:
    """Tests for hit_test."""

    def test_hit_test_uses_registered_areas(self) -> None:
        """Points inside any subscriber area hit."""
        bus = SelectionBus()
        bus.subscribe(Mock(), lambda x, y: 0 <= x <= 10 and 0 <= y <= 10)
        bus.subscribe(Mock())
        assert bus.hit_test(5, 5)
        assert not bus.hit_test(50, 5)

    def test_no_areas_never_hit(self) -> None:
        """Subscribers without hit tests never claim points."""
        bus = SelectionBus()
        bus.subscribe(Mock())
        assert not bus.hit_test(0, 0)
