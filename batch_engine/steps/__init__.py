"""
batch_engine.steps -- Step executors (chunk and task).
"""

from batch_engine.steps.chunk import (
    CHUNK_SIZE_PARAMETER,
    ChunkStepExecutor,
    resolve_chunk_size,
)
from batch_engine.steps.task import ManualChunkTask, TaskStepExecutor

__all__ = [
    "CHUNK_SIZE_PARAMETER",
    "ChunkStepExecutor",
    "ManualChunkTask",
    "TaskStepExecutor",
    "resolve_chunk_size",
]
