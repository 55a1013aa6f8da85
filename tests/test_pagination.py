"""Tests for imagetrace.pagination: incremental reveal windows."""

import pytest

from imagetrace.pagination import ProximityLoader, RevealWindow


class TestRevealWindow:
    def test_first_page(self):
        window = RevealWindow(page_size=10)
        visible = window.reset(list(range(25)))
        assert visible == list(range(10))
        assert window.has_more is True
        assert window.total == 25

    def test_load_more_until_exhausted(self):
        window = RevealWindow(page_size=10)
        window.reset(list(range(25)))
        assert window.load_more() == list(range(10, 20))
        assert window.has_more is True
        assert window.load_more() == list(range(20, 25))
        assert window.visible == list(range(25))
        assert window.has_more is False

    def test_load_more_when_exhausted_is_noop(self):
        window = RevealWindow(page_size=10)
        window.reset([1, 2, 3])
        assert window.has_more is False
        assert window.load_more() == []
        assert window.visible == [1, 2, 3]

    def test_exact_multiple(self):
        window = RevealWindow(page_size=5)
        window.reset(list(range(10)))
        window.load_more()
        assert len(window.visible) == 10
        assert window.has_more is False

    def test_empty(self):
        window = RevealWindow()
        assert window.reset([]) == []
        assert window.has_more is False
        assert window.total == 0

    def test_reset_starts_over(self):
        window = RevealWindow(page_size=2)
        window.reset(["a", "b", "c", "d", "e"])
        window.load_more()
        window.reset(["x", "y", "z"])
        assert window.visible == ["x", "y"]
        assert window.has_more is True

    def test_reset_copies_source(self):
        items = [1, 2, 3]
        window = RevealWindow(page_size=2)
        window.reset(items)
        items.append(4)
        assert window.total == 3

    def test_load_more_before_reset(self):
        with pytest.raises(RuntimeError):
            RevealWindow().load_more()

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            RevealWindow(page_size=0)

    def test_total_before_reset(self):
        assert RevealWindow().total == 0


class TestProximityLoader:
    def test_signal_loads_next_page(self):
        window = RevealWindow(page_size=3)
        window.reset(list(range(7)))
        loader = ProximityLoader(window)
        assert loader.signal() == [3, 4, 5]
        assert loader.signal() == [6]
        assert loader.signal() == []

    def test_not_near_does_nothing(self):
        window = RevealWindow(page_size=3)
        window.reset(list(range(7)))
        assert ProximityLoader(window).signal(near=False) == []
        assert len(window.visible) == 3
