"""Item sources over in-memory lists and arbitrary iterables."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator
from typing import Any

from batch_engine.items.base import EXHAUSTED


class ListItemSource:
    """Reads records from a list in order.

    The list is copied on construction; later changes to the caller's list
    are not seen by the source.
    """

    def __init__(self, items: Iterable[Any]) -> None:
        self._items: deque[Any] = deque(items)

    def read(self) -> tuple[Any, bool]:
        if not self._items:
            return EXHAUSTED, False
        record = self._items.popleft()
        return record, bool(self._items)

    @property
    def remaining(self) -> int:
        return len(self._items)


class IterableItemSource:
    """Reads records from any iterable, one record ahead.

    The lookahead makes ``has_more`` exact, so a chunk that ends on the last
    record reports exhaustion without an extra empty read.  Exceptions raised
    by the underlying iterator propagate from ``read()``.
    """

    def __init__(self, iterable: Iterable[Any]) -> None:
        self._iterator: Iterator[Any] = iter(iterable)
        self._next: Any = EXHAUSTED
        self._primed = False

    def _advance(self) -> Any:
        try:
            return next(self._iterator)
        except StopIteration:
            return EXHAUSTED

    def read(self) -> tuple[Any, bool]:
        if not self._primed:
            self._next = self._advance()
            self._primed = True
        record = self._next
        if record is EXHAUSTED:
            return EXHAUSTED, False
        self._next = self._advance()
        return record, self._next is not EXHAUSTED
