"""
JobRepository -- contract for execution metadata, plus the in-memory store.

Contract:
    - ``last_parameters()`` returns the parameters of the job's latest run
      (the run-id incrementer reads it).
    - ``create_job_execution()`` opens a RUNNING execution.  A job instance
      (name + identical parameters) that already COMPLETED is refused with
      ``JobInstanceAlreadyCompleteError``.
    - ``create_step_execution()`` registers a step run before its first
      chunk.
    - ``save_step_progress()`` stores a snapshot taken after a successful
      iteration.  Stored counters therefore reflect committed chunks only.
    - ``fail_step()`` marks a step FAILED and keeps the counters of its last
      committed snapshot; a resuming run would re-pull from there.
    - ``complete_job()`` closes the execution as COMPLETED or FAILED.

Non-goals:
    - Does NOT restart failed executions -- resume is left to callers that
      read ``get_step_executions()``.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID, uuid4

from batch_kernel.exceptions import (
    JobExecutionNotFoundError,
    JobInstanceAlreadyCompleteError,
    StepExecutionNotFoundError,
)

from batch_engine.domain.types import (
    JobExecutionRecord,
    JobParameters,
    JobStatus,
    StepExecution,
    StepExecutionRecord,
    StepStatus,
)


@runtime_checkable
class JobRepository(Protocol):
    """Store for job and step execution metadata."""

    def last_parameters(self, job_name: str) -> JobParameters | None: ...

    def create_job_execution(
        self,
        job_name: str,
        parameters: JobParameters,
        started_at: datetime,
    ) -> JobExecutionRecord: ...

    def complete_job(
        self,
        job_execution_id: UUID,
        status: JobStatus,
        ended_at: datetime,
        failed_step: str | None = None,
        exit_message: str | None = None,
    ) -> JobExecutionRecord: ...

    def create_step_execution(
        self, step_execution: StepExecution,
    ) -> StepExecutionRecord: ...

    def save_step_progress(self, record: StepExecutionRecord) -> None: ...

    def fail_step(
        self,
        step_execution_id: UUID,
        ended_at: datetime,
        exit_message: str | None,
    ) -> StepExecutionRecord: ...

    def get_job_execution(self, job_execution_id: UUID) -> JobExecutionRecord: ...

    def get_step_executions(
        self, job_execution_id: UUID,
    ) -> tuple[StepExecutionRecord, ...]: ...

    def list_job_executions(self, job_name: str) -> tuple[JobExecutionRecord, ...]: ...


class InMemoryJobRepository:
    """Dict-backed JobRepository; state lives as long as the instance."""

    def __init__(self) -> None:
        self._jobs: dict[UUID, JobExecutionRecord] = {}
        self._steps: dict[UUID, StepExecutionRecord] = {}

    # -------------------------------------------------------------------------
    # Job executions
    # -------------------------------------------------------------------------

    def last_parameters(self, job_name: str) -> JobParameters | None:
        executions = self.list_job_executions(job_name)
        if not executions:
            return None
        return executions[-1].parameters

    def create_job_execution(
        self,
        job_name: str,
        parameters: JobParameters,
        started_at: datetime,
    ) -> JobExecutionRecord:
        identity = parameters.identity_key()
        for existing in self.list_job_executions(job_name):
            if (
                existing.status is JobStatus.COMPLETED
                and existing.parameters.identity_key() == identity
            ):
                raise JobInstanceAlreadyCompleteError(job_name, identity)

        record = JobExecutionRecord(
            job_execution_id=uuid4(),
            job_name=job_name,
            parameters=parameters,
            status=JobStatus.RUNNING,
            started_at=started_at,
        )
        self._jobs[record.job_execution_id] = record
        return record

    def complete_job(
        self,
        job_execution_id: UUID,
        status: JobStatus,
        ended_at: datetime,
        failed_step: str | None = None,
        exit_message: str | None = None,
    ) -> JobExecutionRecord:
        record = replace(
            self.get_job_execution(job_execution_id),
            status=status,
            ended_at=ended_at,
            failed_step=failed_step,
            exit_message=exit_message,
        )
        self._jobs[job_execution_id] = record
        return record

    def get_job_execution(self, job_execution_id: UUID) -> JobExecutionRecord:
        try:
            return self._jobs[job_execution_id]
        except KeyError:
            raise JobExecutionNotFoundError(str(job_execution_id)) from None

    def list_job_executions(self, job_name: str) -> tuple[JobExecutionRecord, ...]:
        """Executions of ``job_name`` in creation order."""
        return tuple(r for r in self._jobs.values() if r.job_name == job_name)

    # -------------------------------------------------------------------------
    # Step executions
    # -------------------------------------------------------------------------

    def create_step_execution(
        self, step_execution: StepExecution,
    ) -> StepExecutionRecord:
        if step_execution.job_execution_id is not None:
            self.get_job_execution(step_execution.job_execution_id)
        record = step_execution.snapshot()
        self._steps[record.step_execution_id] = record
        return record

    def save_step_progress(self, record: StepExecutionRecord) -> None:
        if record.step_execution_id not in self._steps:
            raise StepExecutionNotFoundError(str(record.step_execution_id))
        self._steps[record.step_execution_id] = record

    def fail_step(
        self,
        step_execution_id: UUID,
        ended_at: datetime,
        exit_message: str | None,
    ) -> StepExecutionRecord:
        try:
            committed = self._steps[step_execution_id]
        except KeyError:
            raise StepExecutionNotFoundError(str(step_execution_id)) from None
        record = replace(
            committed,
            status=StepStatus.FAILED,
            ended_at=ended_at,
            exit_message=exit_message,
        )
        self._steps[step_execution_id] = record
        return record

    def get_step_executions(
        self, job_execution_id: UUID,
    ) -> tuple[StepExecutionRecord, ...]:
        return tuple(
            r for r in self._steps.values() if r.job_execution_id == job_execution_id
        )
