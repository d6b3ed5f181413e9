"""
ItemSource / ItemTransformer / ItemSink protocols.

Contract:
    ``ItemSource.read()`` returns ``(record, has_more)``.  Once nothing
    remains, ``record`` is the ``EXHAUSTED`` sentinel; calling ``read()``
    again keeps returning ``(EXHAUSTED, False)`` and never raises.

    ``ItemTransformer.transform(record)`` returns the output record, or
    ``None`` to drop the record from the chunk (not an error).

    ``ItemSink.write(items)`` accepts one ordered batch as a unit; it raises
    to reject the batch and must not keep any part of a rejected batch.

Architecture:
    batch_engine/items.  ZERO imports from services or steps.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable


class _Exhausted:
    """Sentinel type returned by a source that has nothing left."""

    _instance: _Exhausted | None = None

    def __new__(cls) -> _Exhausted:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "EXHAUSTED"

    def __bool__(self) -> bool:
        return False


EXHAUSTED = _Exhausted()


@runtime_checkable
class ItemSource(Protocol):
    """Produces a finite, ordered sequence of records on demand."""

    def read(self) -> tuple[Any, bool]:
        """Return the next record and whether more records follow it."""
        ...


@runtime_checkable
class ItemTransformer(Protocol):
    """Maps one record to zero-or-one output records."""

    def transform(self, record: Any) -> Any | None:
        """Return the transformed record, or None to drop it."""
        ...


@runtime_checkable
class ItemSink(Protocol):
    """Accepts a batch of transformed records atomically."""

    def write(self, items: Sequence[Any]) -> None:
        """Write the whole batch, or raise without keeping any of it."""
        ...
