"""
batch_engine.domain -- Job/step definitions, statuses and execution DTOs.

ZERO I/O.
"""

from batch_engine.domain.incrementer import RUN_ID_PARAMETER, RunIdIncrementer
from batch_engine.domain.job import (
    DEFAULT_CHUNK_SIZE,
    ChunkSpec,
    Job,
    Step,
    TaskBody,
    chunk_step,
    task_step,
)
from batch_engine.domain.types import (
    JobExecutionRecord,
    JobParameters,
    JobRunResult,
    JobStatus,
    StepExecution,
    StepExecutionRecord,
    StepStatus,
)

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "RUN_ID_PARAMETER",
    "ChunkSpec",
    "Job",
    "JobExecutionRecord",
    "JobParameters",
    "JobRunResult",
    "JobStatus",
    "RunIdIncrementer",
    "Step",
    "StepExecution",
    "StepExecutionRecord",
    "StepStatus",
    "TaskBody",
    "chunk_step",
    "task_step",
]
