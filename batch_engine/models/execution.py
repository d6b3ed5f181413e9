"""
ORM models for job and step execution metadata.

Contract:
    JobExecutionModel and StepExecutionModel persist what a JobRepository
    stores.  Each has ``to_dto()`` / ``from_dto()`` round-trip methods to
    the frozen records in batch_engine.domain.types.

Architecture: batch_engine/models.  Imports from batch_kernel.db.base only
    (plus the domain DTOs it converts to).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from batch_kernel.db.base import TimestampedBase, UUIDString

if TYPE_CHECKING:
    from batch_engine.domain.types import JobExecutionRecord, StepExecutionRecord


class JobExecutionModel(TimestampedBase):
    """Persistent job execution (one row per JobRunner.run())."""

    __tablename__ = "batch_job_executions"

    __table_args__ = (
        Index("ix_batch_job_executions_job_name", "job_name"),
        Index("ix_batch_job_executions_identity", "job_name", "identity_key"),
    )

    job_name: Mapped[str] = mapped_column(String(200), nullable=False)
    identity_key: Mapped[str] = mapped_column(Text, nullable=False)
    parameters: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    ended_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    failed_step: Mapped[str | None] = mapped_column(String(200), nullable=True)
    exit_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    steps: Mapped[list["StepExecutionModel"]] = relationship(
        "StepExecutionModel",
        back_populates="job_execution",
        order_by="StepExecutionModel.seq",
    )

    def to_dto(self) -> JobExecutionRecord:
        from batch_engine.domain.types import JobExecutionRecord, JobParameters, JobStatus

        return JobExecutionRecord(
            job_execution_id=self.id,
            job_name=self.job_name,
            parameters=JobParameters(self.parameters or {}),
            status=JobStatus(self.status),
            started_at=self.started_at,
            ended_at=self.ended_at,
            failed_step=self.failed_step,
            exit_message=self.exit_message,
        )

    @classmethod
    def from_dto(cls, dto: JobExecutionRecord, seq: int) -> JobExecutionModel:
        return cls(
            id=dto.job_execution_id,
            job_name=dto.job_name,
            identity_key=dto.parameters.identity_key(),
            parameters=dto.parameters.to_dict(),
            status=dto.status.value,
            seq=seq,
            started_at=dto.started_at,
            ended_at=dto.ended_at,
            failed_step=dto.failed_step,
            exit_message=dto.exit_message,
        )


class StepExecutionModel(TimestampedBase):
    """Persistent step execution; counters reflect the last committed chunk."""

    __tablename__ = "batch_step_executions"

    __table_args__ = (
        Index("ix_batch_step_executions_job", "job_execution_id"),
    )

    job_execution_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("batch_job_executions.id"),
        nullable=True,
    )
    step_name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    read_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    write_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    filter_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    commit_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    iterations: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    ended_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    exit_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    job_execution: Mapped[JobExecutionModel | None] = relationship(
        "JobExecutionModel",
        back_populates="steps",
    )

    def to_dto(self) -> StepExecutionRecord:
        from batch_engine.domain.types import StepExecutionRecord, StepStatus

        return StepExecutionRecord(
            step_execution_id=self.id,
            job_execution_id=self.job_execution_id,
            step_name=self.step_name,
            status=StepStatus(self.status) if self.status else None,
            read_count=self.read_count,
            write_count=self.write_count,
            filter_count=self.filter_count,
            commit_count=self.commit_count,
            iterations=self.iterations,
            started_at=self.started_at,
            ended_at=self.ended_at,
            exit_message=self.exit_message,
        )

    @classmethod
    def from_dto(cls, dto: StepExecutionRecord, seq: int) -> StepExecutionModel:
        model = cls(id=dto.step_execution_id, seq=seq)
        model.apply(dto)
        return model

    def apply(self, dto: StepExecutionRecord) -> None:
        """Copy a snapshot's state onto this row."""
        self.job_execution_id = dto.job_execution_id
        self.step_name = dto.step_name
        self.status = dto.status.value if dto.status is not None else None
        self.read_count = dto.read_count
        self.write_count = dto.write_count
        self.filter_count = dto.filter_count
        self.commit_count = dto.commit_count
        self.iterations = dto.iterations
        self.started_at = dto.started_at
        self.ended_at = dto.ended_at
        self.exit_message = dto.exit_message
