"""
ChunkStepExecutor -- one read/transform/write chunk per invocation.

Contract:
    ``run_step(step_execution, chunk_spec, chunk_size=None)`` pulls up to
    ``chunk_size`` records, transforms them, hands the non-dropped output to
    the sink as one batch, and returns:

    - FINISHED when the source was exhausted during this call (including a
      call that pulled nothing);
    - CONTINUABLE when a full chunk was pulled and more records follow;
    - FAILED when the source, transformer or sink raised.  The wrapped error
      is stored on ``step_execution.failure``.

    The caller invokes ``run_step`` again while it returns CONTINUABLE.

Invariants enforced:
    - read_count advances by exactly the number of records pulled in the
      call, dropped records included.
    - The sink sees each batch in pull order, minus drops, in one call.
    - No retry: a failure ends the step.

Non-goals:
    - Does NOT persist progress -- the runner snapshots after each commit.
    - Does NOT roll back read_count when the sink rejects a batch.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from batch_kernel.exceptions import SinkError, SourceError, TransformError
from batch_kernel.logging_config import get_logger

from batch_engine.domain.job import ChunkSpec
from batch_engine.domain.types import StepExecution, StepStatus
from batch_engine.items.base import EXHAUSTED

logger = get_logger("batch.chunk")

CHUNK_SIZE_PARAMETER = "chunkSize"


def resolve_chunk_size(parameters: Mapping[str, Any], default: int) -> int:
    """Return the run-time ``chunkSize`` override, or ``default``.

    An override counts only when it is a positive int or a string holding a
    positive integer.  Empty, non-numeric, zero or negative overrides fall
    back to ``default`` without raising.
    """
    value = parameters.get(CHUNK_SIZE_PARAMETER)
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value > 0 else default
    if isinstance(value, str):
        text = value.strip()
        if text.isdecimal() and int(text) > 0:
            return int(text)
    return default


class ChunkStepExecutor:
    """Executes one chunk of a chunk step per call."""

    def run_step(
        self,
        step_execution: StepExecution,
        chunk_spec: ChunkSpec,
        chunk_size: int | None = None,
    ) -> StepStatus:
        if chunk_size is None:
            chunk_size = resolve_chunk_size(
                step_execution.job_parameters, chunk_spec.chunk_size,
            )
        step_execution.iterations += 1

        try:
            status = self._run_chunk(step_execution, chunk_spec, chunk_size)
        except (SourceError, TransformError, SinkError) as exc:
            step_execution.failure = exc
            step_execution.status = StepStatus.FAILED
            logger.error(
                "chunk_failed",
                extra={
                    "step_name": step_execution.step_name,
                    "iteration": step_execution.iterations,
                    "read_count": step_execution.read_count,
                    "error_code": exc.code,
                },
                exc_info=True,
            )
            return StepStatus.FAILED

        step_execution.status = status
        return status

    def _run_chunk(
        self,
        step_execution: StepExecution,
        chunk_spec: ChunkSpec,
        chunk_size: int,
    ) -> StepStatus:
        step_name = step_execution.step_name
        pulled: list[Any] = []
        exhausted = False

        while len(pulled) < chunk_size:
            try:
                record, has_more = chunk_spec.source.read()
            except Exception as exc:
                # Records already pulled in this chunk still count as read
                step_execution.advance_read_count(len(pulled))
                raise SourceError(
                    step_name, step_execution.read_count, str(exc),
                ) from exc
            if record is EXHAUSTED:
                exhausted = True
                break
            pulled.append(record)
            if not has_more:
                exhausted = True
                break

        output: list[Any] = []
        for record in pulled:
            if chunk_spec.transformer is None:
                output.append(record)
                continue
            try:
                result = chunk_spec.transformer.transform(record)
            except Exception as exc:
                step_execution.advance_read_count(len(pulled))
                raise TransformError(step_name, record, str(exc)) from exc
            if result is None:
                step_execution.filter_count += 1
            else:
                output.append(result)

        step_execution.advance_read_count(len(pulled))

        if output:
            try:
                chunk_spec.sink.write(output)
            except Exception as exc:
                raise SinkError(step_name, len(output), str(exc)) from exc
            step_execution.write_count += len(output)
            step_execution.commit_count += 1

        logger.debug(
            "chunk_committed",
            extra={
                "step_name": step_name,
                "iteration": step_execution.iterations,
                "pulled": len(pulled),
                "written": len(output),
                "read_count": step_execution.read_count,
                "exhausted": exhausted,
            },
        )

        return StepStatus.FINISHED if exhausted else StepStatus.CONTINUABLE
