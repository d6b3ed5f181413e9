"""
Sample jobs.

``hello_job``
    One task step that logs a greeting and finishes.

``chunk_processing_job``
    Two steps over the same 100 generated records:

    1. ``task_base_step`` -- a task body chunking the list by hand
       (ManualChunkTask).
    2. ``chunk_base_step`` -- the same work as a chunk step: list source,
       suffixing transformer, logging sink.

    Both honour the ``chunkSize`` job parameter; without it they use the
    configured default chunk size.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from batch_kernel.logging_config import get_logger

from batch_engine.domain.job import DEFAULT_CHUNK_SIZE, Job, chunk_step, task_step
from batch_engine.domain.types import StepExecution, StepStatus
from batch_engine.items.sinks import LoggingItemSink
from batch_engine.items.sources import ListItemSource
from batch_engine.items.transformers import FunctionTransformer
from batch_engine.steps.task import ManualChunkTask

if TYPE_CHECKING:
    from batch_config.schema import EngineSettings

logger = get_logger("batch.samples")

HELLO_JOB = "hello_job"
CHUNK_PROCESSING_JOB = "chunk_processing_job"

SAMPLE_ITEM_COUNT = 100


def sample_items(count: int = SAMPLE_ITEM_COUNT) -> list[str]:
    return [f"{i} Hello" for i in range(count)]


def _say_hello(step_execution: StepExecution) -> StepStatus:
    logger.info("hello batch")
    return StepStatus.FINISHED


def _append_suffix(record: str) -> str:
    return f"{record}, String Batch"


def hello_job(settings: EngineSettings | None = None) -> Job:
    return Job(name=HELLO_JOB, steps=(task_step("hello_step", _say_hello),))


def chunk_processing_job(settings: EngineSettings | None = None) -> Job:
    chunk_size = settings.default_chunk_size if settings is not None else DEFAULT_CHUNK_SIZE
    return Job(
        name=CHUNK_PROCESSING_JOB,
        steps=(
            task_step(
                "task_base_step",
                ManualChunkTask(sample_items(), chunk_size=chunk_size),
            ),
            chunk_step(
                "chunk_base_step",
                source=ListItemSource(sample_items()),
                transformer=FunctionTransformer(_append_suffix),
                sink=LoggingItemSink(),
                chunk_size=chunk_size,
            ),
        ),
    )
