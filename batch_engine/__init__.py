"""
batch_engine -- Sequential batch job execution.

A job is an ordered tuple of steps.  A task step calls one body per
invocation; a chunk step reads, transforms and writes records in
fixed-size batches until its source is exhausted.  JobRunner drives both,
stopping the run at the first failed step.
"""

from batch_engine.domain import (
    ChunkSpec,
    Job,
    JobParameters,
    JobRunResult,
    JobStatus,
    RunIdIncrementer,
    Step,
    StepExecution,
    StepStatus,
    chunk_step,
    task_step,
)
from batch_engine.services.runner import JobRunner
from batch_engine.steps.chunk import ChunkStepExecutor
from batch_engine.steps.task import TaskStepExecutor

__all__ = [
    "ChunkSpec",
    "ChunkStepExecutor",
    "Job",
    "JobParameters",
    "JobRunResult",
    "JobRunner",
    "JobStatus",
    "RunIdIncrementer",
    "Step",
    "StepExecution",
    "StepStatus",
    "TaskStepExecutor",
    "chunk_step",
    "task_step",
]
