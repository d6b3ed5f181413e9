"""
TaskStepExecutor -- one task-body call per invocation.

Contract:
    ``run_step(step_execution, task_body)`` calls the body once and forwards
    the StepStatus it returns.  A body returning ``None`` has finished.  Any
    exception, or a result that is not a StepStatus, fails the step; the
    wrapped error is stored on ``step_execution.failure``.

    The executor imposes no chunking.  A body that wants to iterate returns
    CONTINUABLE and keeps its own position (see ``ManualChunkTask``).
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from batch_kernel.exceptions import InvalidTaskResultError, TaskError
from batch_kernel.logging_config import get_logger

from batch_engine.domain.job import DEFAULT_CHUNK_SIZE, TaskBody
from batch_engine.domain.types import StepExecution, StepStatus
from batch_engine.steps.chunk import resolve_chunk_size

logger = get_logger("batch.task")


class TaskStepExecutor:
    """Executes a task step's body once per call."""

    def run_step(
        self,
        step_execution: StepExecution,
        task_body: TaskBody,
    ) -> StepStatus:
        step_execution.iterations += 1
        step_name = step_execution.step_name

        try:
            result = task_body(step_execution)
        except Exception as exc:
            return self._fail(step_execution, TaskError(step_name, str(exc)), exc)

        if result is None:
            result = StepStatus.FINISHED
        elif not isinstance(result, StepStatus):
            return self._fail(
                step_execution, InvalidTaskResultError(step_name, result), None,
            )

        step_execution.status = result
        return result

    def _fail(
        self,
        step_execution: StepExecution,
        error: TaskError | InvalidTaskResultError,
        cause: Exception | None,
    ) -> StepStatus:
        if cause is not None:
            error.__cause__ = cause
        step_execution.failure = error
        step_execution.status = StepStatus.FAILED
        logger.error(
            "task_failed",
            extra={
                "step_name": step_execution.step_name,
                "iteration": step_execution.iterations,
                "error_code": error.code,
            },
            exc_info=(type(error), error, error.__traceback__),
        )
        return StepStatus.FAILED


class ManualChunkTask:
    """Task body that chunks a list by hand using ``read_count`` as cursor.

    Each call logs and consumes the next ``chunkSize`` records (parameter
    override, else ``chunk_size``) and returns CONTINUABLE; the call that
    finds the cursor at the end returns FINISHED.  Prefer a chunk step with
    a source and sink; this body exists for work that cannot be expressed
    that way.
    """

    def __init__(
        self,
        items: Iterable[Any],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._items = list(items)
        self._chunk_size = chunk_size
        self.processed: list[list[Any]] = []

    def __call__(self, step_execution: StepExecution) -> StepStatus:
        chunk_size = resolve_chunk_size(
            step_execution.job_parameters, self._chunk_size,
        )
        from_index = step_execution.read_count
        if from_index >= len(self._items):
            return StepStatus.FINISHED

        to_index = min(from_index + chunk_size, len(self._items))
        batch = self._items[from_index:to_index]
        logger.info("task_item_size", extra={"item_count": len(batch)})
        self.processed.append(batch)

        step_execution.advance_read_count(len(batch))
        return StepStatus.CONTINUABLE
