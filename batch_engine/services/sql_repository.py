"""
SqlJobRepository -- durable JobRepository backed by SQLAlchemy.

Contract:
    Same semantics as InMemoryJobRepository.  Every operation runs in its own
    transaction (``session_scope``), so a snapshot saved after a chunk commit
    survives a crash of the process that wrote it.

Architecture: batch_engine/services.  Imports from batch_engine.models and
    batch_kernel.db.

Invariants enforced:
    - A COMPLETED job instance (name + identity key) is never run twice.
    - ``fail_step`` keeps the counters of the last saved snapshot.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from batch_kernel.db.engine import session_scope
from batch_kernel.exceptions import (
    JobExecutionNotFoundError,
    JobInstanceAlreadyCompleteError,
    StepExecutionNotFoundError,
)
from batch_kernel.logging_config import get_logger

from batch_engine.domain.types import (
    JobExecutionRecord,
    JobParameters,
    JobStatus,
    StepExecution,
    StepExecutionRecord,
    StepStatus,
)
from batch_engine.models.execution import JobExecutionModel, StepExecutionModel

logger = get_logger("batch.sql_repository")


class SqlJobRepository:
    """JobRepository persisting executions through a session factory."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    # -------------------------------------------------------------------------
    # Job executions
    # -------------------------------------------------------------------------

    def last_parameters(self, job_name: str) -> JobParameters | None:
        with session_scope(self._session_factory) as session:
            model = session.execute(
                select(JobExecutionModel)
                .where(JobExecutionModel.job_name == job_name)
                .order_by(JobExecutionModel.seq.desc())
                .limit(1)
            ).scalar_one_or_none()
            if model is None:
                return None
            return JobParameters(model.parameters or {})

    def create_job_execution(
        self,
        job_name: str,
        parameters: JobParameters,
        started_at: datetime,
    ) -> JobExecutionRecord:
        identity = parameters.identity_key()
        with session_scope(self._session_factory) as session:
            completed = session.execute(
                select(JobExecutionModel.id).where(
                    JobExecutionModel.job_name == job_name,
                    JobExecutionModel.identity_key == identity,
                    JobExecutionModel.status == JobStatus.COMPLETED.value,
                )
            ).first()
            if completed is not None:
                raise JobInstanceAlreadyCompleteError(job_name, identity)

            seq = self._next_seq(session, JobExecutionModel)
            dto = JobExecutionRecord(
                job_execution_id=uuid4(),
                job_name=job_name,
                parameters=parameters,
                status=JobStatus.RUNNING,
                started_at=started_at,
            )
            session.add(JobExecutionModel.from_dto(dto, seq=seq))

        logger.debug(
            "job_execution_created",
            extra={"job_execution_id": str(dto.job_execution_id), "seq": seq},
        )
        return dto

    def complete_job(
        self,
        job_execution_id: UUID,
        status: JobStatus,
        ended_at: datetime,
        failed_step: str | None = None,
        exit_message: str | None = None,
    ) -> JobExecutionRecord:
        with session_scope(self._session_factory) as session:
            model = self._get_job_model(session, job_execution_id)
            model.status = status.value
            model.ended_at = ended_at
            model.failed_step = failed_step
            model.exit_message = exit_message
            session.flush()
            return model.to_dto()

    def get_job_execution(self, job_execution_id: UUID) -> JobExecutionRecord:
        with session_scope(self._session_factory) as session:
            return self._get_job_model(session, job_execution_id).to_dto()

    def list_job_executions(self, job_name: str) -> tuple[JobExecutionRecord, ...]:
        with session_scope(self._session_factory) as session:
            models = session.execute(
                select(JobExecutionModel)
                .where(JobExecutionModel.job_name == job_name)
                .order_by(JobExecutionModel.seq)
            ).scalars().all()
            return tuple(m.to_dto() for m in models)

    # -------------------------------------------------------------------------
    # Step executions
    # -------------------------------------------------------------------------

    def create_step_execution(
        self, step_execution: StepExecution,
    ) -> StepExecutionRecord:
        record = step_execution.snapshot()
        with session_scope(self._session_factory) as session:
            if record.job_execution_id is not None:
                self._get_job_model(session, record.job_execution_id)
            seq = self._next_seq(session, StepExecutionModel)
            session.add(StepExecutionModel.from_dto(record, seq=seq))
        return record

    def save_step_progress(self, record: StepExecutionRecord) -> None:
        with session_scope(self._session_factory) as session:
            model = self._get_step_model(session, record.step_execution_id)
            model.apply(record)

    def fail_step(
        self,
        step_execution_id: UUID,
        ended_at: datetime,
        exit_message: str | None,
    ) -> StepExecutionRecord:
        with session_scope(self._session_factory) as session:
            model = self._get_step_model(session, step_execution_id)
            model.status = StepStatus.FAILED.value
            model.ended_at = ended_at
            model.exit_message = exit_message
            session.flush()
            return model.to_dto()

    def get_step_executions(
        self, job_execution_id: UUID,
    ) -> tuple[StepExecutionRecord, ...]:
        with session_scope(self._session_factory) as session:
            models = session.execute(
                select(StepExecutionModel)
                .where(StepExecutionModel.job_execution_id == job_execution_id)
                .order_by(StepExecutionModel.seq)
            ).scalars().all()
            return tuple(m.to_dto() for m in models)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _next_seq(session: Session, model_cls: type) -> int:
        current = session.execute(select(func.max(model_cls.seq))).scalar()
        return (current or 0) + 1

    @staticmethod
    def _get_job_model(session: Session, job_execution_id: UUID) -> JobExecutionModel:
        model = session.get(JobExecutionModel, job_execution_id)
        if model is None:
            raise JobExecutionNotFoundError(str(job_execution_id))
        return model

    @staticmethod
    def _get_step_model(session: Session, step_execution_id: UUID) -> StepExecutionModel:
        model = session.get(StepExecutionModel, step_execution_id)
        if model is None:
            raise StepExecutionNotFoundError(str(step_execution_id))
        return model
