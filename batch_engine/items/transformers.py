"""Transformer adapters: plain functions and chains."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from batch_engine.items.base import ItemTransformer


class FunctionTransformer:
    """Adapts a one-argument callable to the ItemTransformer protocol."""

    def __init__(self, fn: Callable[[Any], Any | None]) -> None:
        self._fn = fn

    def transform(self, record: Any) -> Any | None:
        return self._fn(record)

    def __repr__(self) -> str:
        return f"FunctionTransformer({getattr(self._fn, '__name__', self._fn)!r})"


class CompositeTransformer:
    """Applies transformers in order; the first drop ends the chain."""

    def __init__(self, *transformers: ItemTransformer) -> None:
        if not transformers:
            raise ValueError("CompositeTransformer needs at least one transformer")
        self._transformers = transformers

    def transform(self, record: Any) -> Any | None:
        current = record
        for transformer in self._transformers:
            current = transformer.transform(current)
            if current is None:
                return None
        return current
