"""
JobRunner -- sequential step execution for one job run.

Contract:
    ``run(job, parameters)`` returns a JobRunResult whose status is
    COMPLETED when every step FINISHED, or FAILED with ``failed_step`` naming
    the first step that FAILED.  Steps after a failed step are never invoked.

Lifecycle (per run):
    NOT_STARTED -> RUNNING -> {COMPLETED, FAILED}

Invariants enforced:
    - Run ids: a job with an incrementer gets ``run.id`` one past its last
      run, layered over the caller's parameters.
    - Parameters are frozen (JobParameters) for the whole run.
    - Effective chunk size is resolved once per step from the parameters and
      passed to the chunk executor.
    - Progress is written to the repository only after a successful
      iteration; a failed iteration never updates stored counters.

Non-goals:
    - No retries or skips: a FAILED step is fatal to the run.  Retry means a
      fresh ``run()`` call.
    - Does NOT catch ``JobInstanceAlreadyCompleteError`` -- it is raised
      before the run starts.
    - Repository errors during a step are re-raised, after the job
      execution is marked FAILED.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from batch_kernel.domain.clock import Clock, SystemClock
from batch_kernel.exceptions import StepIterationLimitError
from batch_kernel.logging_config import LogContext, get_logger

from batch_engine.domain.job import Job, Step
from batch_engine.domain.types import (
    JobParameters,
    JobRunResult,
    JobStatus,
    StepExecution,
    StepExecutionRecord,
    StepStatus,
)
from batch_engine.services.repository import InMemoryJobRepository, JobRepository
from batch_engine.steps.chunk import ChunkStepExecutor, resolve_chunk_size
from batch_engine.steps.task import TaskStepExecutor

logger = get_logger("batch.runner")


class JobRunner:
    """Runs a job's steps in declared order, stopping at the first failure.

    Contract:
        - ``run()`` executes one job run and returns its JobRunResult.
        - ``repository`` exposes the execution metadata store.

    Non-goals:
        - Does NOT run steps concurrently.
    """

    def __init__(
        self,
        repository: JobRepository | None = None,
        clock: Clock | None = None,
        chunk_executor: ChunkStepExecutor | None = None,
        task_executor: TaskStepExecutor | None = None,
        max_iterations: int | None = None,
    ) -> None:
        if max_iterations is not None and max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
        self._repository = repository if repository is not None else InMemoryJobRepository()
        self._clock = clock or SystemClock()
        self._chunk_executor = chunk_executor or ChunkStepExecutor()
        self._task_executor = task_executor or TaskStepExecutor()
        self._max_iterations = max_iterations

    @property
    def repository(self) -> JobRepository:
        return self._repository

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(
        self,
        job: Job,
        parameters: Mapping[str, Any] | None = None,
    ) -> JobRunResult:
        """Execute ``job`` once.

        Raises:
            InvalidJobParameterError: If a parameter has an unsupported type.
            JobInstanceAlreadyCompleteError: If the same job instance already
                completed (only possible without an incrementer).
        """
        run_parameters = self._resolve_parameters(job, parameters)

        execution = self._repository.create_job_execution(
            job.name, run_parameters, self._clock.now(),
        )
        status = JobStatus.RUNNING
        run_id = (
            run_parameters.get_string(job.incrementer.key)
            if job.incrementer is not None else None
        )

        with LogContext.bind(
            job_name=job.name,
            job_execution_id=str(execution.job_execution_id),
            run_id=run_id,
        ):
            logger.info(
                "job_started",
                extra={
                    "status": status.value,
                    "parameters": run_parameters.to_dict(),
                    "steps": list(job.step_names),
                },
            )

            step_results: list[StepExecutionRecord] = []
            failed_step: str | None = None
            error: Exception | None = None

            for step in job.steps:
                step_execution = StepExecution(
                    step_name=step.name,
                    job_parameters=run_parameters,
                    job_execution_id=execution.job_execution_id,
                    started_at=self._clock.now(),
                )
                try:
                    with LogContext.bind(step_name=step.name):
                        step_status = self._run_step(step, step_execution)
                except Exception as exc:
                    self._abort_job(execution.job_execution_id, step.name, exc)
                    raise
                step_results.append(step_execution.snapshot())

                if step_status is StepStatus.FAILED:
                    failed_step = step.name
                    error = step_execution.failure
                    break

            status = JobStatus.FAILED if failed_step is not None else JobStatus.COMPLETED
            ended_at = self._clock.now()
            self._repository.complete_job(
                execution.job_execution_id,
                status,
                ended_at,
                failed_step=failed_step,
                exit_message=str(error) if error is not None else None,
            )

            if status is JobStatus.FAILED:
                logger.error(
                    "job_failed",
                    extra={
                        "status": status.value,
                        "failed_step": failed_step,
                        "error_code": getattr(error, "code", None),
                    },
                )
            else:
                logger.info(
                    "job_completed",
                    extra={"status": status.value, "step_count": len(step_results)},
                )

        return JobRunResult(
            job_name=job.name,
            job_execution_id=execution.job_execution_id,
            status=status,
            parameters=run_parameters,
            failed_step=failed_step,
            error=error,
            step_results=tuple(step_results),
            started_at=execution.started_at,
            ended_at=ended_at,
        )

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _resolve_parameters(
        self,
        job: Job,
        parameters: Mapping[str, Any] | None,
    ) -> JobParameters:
        supplied = (
            parameters if isinstance(parameters, JobParameters)
            else JobParameters(parameters or {})
        )
        if job.incrementer is None:
            return supplied
        previous = self._repository.last_parameters(job.name)
        return supplied.merged(job.incrementer.next_parameters(previous))

    def _abort_job(self, job_execution_id: UUID, step_name: str, exc: Exception) -> None:
        """Record FAILED for a run interrupted by an engine or repository error."""
        logger.error(
            "job_aborted",
            exc_info=True,
            extra={"status": JobStatus.FAILED.value, "failed_step": step_name},
        )
        self._repository.complete_job(
            job_execution_id,
            JobStatus.FAILED,
            self._clock.now(),
            failed_step=step_name,
            exit_message=str(exc),
        )

    def _run_step(self, step: Step, step_execution: StepExecution) -> StepStatus:
        self._repository.create_step_execution(step_execution)

        chunk_size: int | None = None
        if step.chunk is not None:
            chunk_size = resolve_chunk_size(
                step_execution.job_parameters, step.chunk.chunk_size,
            )

        logger.info(
            "step_started",
            extra={"chunk_size": chunk_size, "kind": "chunk" if step.chunk else "task"},
        )

        while True:
            if (
                self._max_iterations is not None
                and step_execution.iterations >= self._max_iterations
            ):
                step_execution.failure = StepIterationLimitError(
                    step.name, self._max_iterations,
                )
                step_execution.status = StepStatus.FAILED
                step_status = StepStatus.FAILED
            elif step.chunk is not None:
                step_status = self._chunk_executor.run_step(
                    step_execution, step.chunk, chunk_size,
                )
            else:
                step_status = self._task_executor.run_step(step_execution, step.task)

            if step_status is StepStatus.FAILED:
                step_execution.ended_at = self._clock.now()
                self._repository.fail_step(
                    step_execution.id,
                    step_execution.ended_at,
                    str(step_execution.failure),
                )
                logger.error(
                    "step_failed",
                    extra={
                        "iterations": step_execution.iterations,
                        "read_count": step_execution.read_count,
                        "write_count": step_execution.write_count,
                        "error_code": getattr(step_execution.failure, "code", None),
                    },
                )
                return step_status

            if step_status is StepStatus.FINISHED:
                step_execution.ended_at = self._clock.now()
            self._repository.save_step_progress(step_execution.snapshot())

            if step_status is StepStatus.FINISHED:
                logger.info(
                    "step_finished",
                    extra={
                        "iterations": step_execution.iterations,
                        "read_count": step_execution.read_count,
                        "write_count": step_execution.write_count,
                        "filter_count": step_execution.filter_count,
                        "commit_count": step_execution.commit_count,
                    },
                )
                return step_status
