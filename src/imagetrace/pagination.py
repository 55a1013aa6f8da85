"""Incremental reveal of a sorted sequence, one page at a time."""

from __future__ import annotations

from typing import Generic, Optional, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10


class RevealWindow(Generic[T]):
    """A growing window over a sorted sequence.

    Call ``reset()`` whenever the underlying sequence changes (a re-sort or a
    new filter); the window does not try to diff the old and new sequences.
    """

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE):
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.page_size = page_size
        self._source: Optional[Sequence[T]] = None
        self.visible: list[T] = []
        self.has_more = False

    def reset(self, items: Sequence[T]) -> list[T]:
        self._source = list(items)
        self.visible = self._source[: self.page_size]
        self.has_more = len(self._source) > self.page_size
        return self.visible

    def load_more(self) -> list[T]:
        """Reveal the next page and return the newly visible items.

        Calling this before ``reset()`` is a programming error.
        """
        if self._source is None:
            raise RuntimeError("RevealWindow.load_more() called before reset()")
        if not self.has_more:
            return []
        start = len(self.visible)
        batch = self._source[start : start + self.page_size]
        self.visible = self.visible + batch
        self.has_more = len(self.visible) < len(self._source)
        return batch

    @property
    def total(self) -> int:
        return len(self._source) if self._source is not None else 0


class ProximityLoader(Generic[T]):
    """Reveals more of a window when an external "near the end" signal fires."""

    def __init__(self, window: RevealWindow[T]):
        self.window = window

    def signal(self, near: bool = True) -> list[T]:
        if near and self.window.has_more:
            return self.window.load_more()
        return []
