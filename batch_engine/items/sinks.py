"""Item sinks: an in-memory collector and a logging sink."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from batch_kernel.logging_config import get_logger

logger = get_logger("batch.sink")


class ListItemSink:
    """Collects every committed batch in order."""

    def __init__(self) -> None:
        self.batches: list[list[Any]] = []

    def write(self, items: Sequence[Any]) -> None:
        self.batches.append(list(items))

    @property
    def items(self) -> list[Any]:
        """All committed records, flattened in commit order."""
        return [item for batch in self.batches for item in batch]

    @property
    def batch_sizes(self) -> list[int]:
        return [len(batch) for batch in self.batches]


class LoggingItemSink:
    """Logs the size of every batch it receives; keeps nothing."""

    def __init__(self, log_items: bool = False) -> None:
        self._log_items = log_items

    def write(self, items: Sequence[Any]) -> None:
        logger.info("chunk_item_size", extra={"item_count": len(items)})
        if self._log_items:
            for item in items:
                logger.info("chunk_item", extra={"item": item})
