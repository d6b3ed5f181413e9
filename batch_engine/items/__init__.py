"""
batch_engine.items -- Record source, transformer and sink contracts plus
ready-made implementations.
"""

from batch_engine.items.base import EXHAUSTED, ItemSink, ItemSource, ItemTransformer
from batch_engine.items.sinks import ListItemSink, LoggingItemSink
from batch_engine.items.sources import IterableItemSource, ListItemSource
from batch_engine.items.transformers import CompositeTransformer, FunctionTransformer

__all__ = [
    "EXHAUSTED",
    "CompositeTransformer",
    "FunctionTransformer",
    "ItemSink",
    "ItemSource",
    "ItemTransformer",
    "IterableItemSource",
    "ListItemSink",
    "ListItemSource",
    "LoggingItemSink",
]
