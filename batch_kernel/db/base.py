"""
Module: batch_kernel.db.base
Responsibility: Declarative base for the job and step execution tables
    written by SqlJobRepository.
Architecture position: Kernel > DB.  Lowest-level import target for every
    model file.  MUST NOT import from batch_engine.

Invariants enforced:
    - Execution ids are the UUIDs the repository hands to JobRunner, stored
      as String(36) so the same schema runs on SQLite and PostgreSQL.
    - Execution timestamps keep their timezone (DateTime(timezone=True)).
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """Job/step execution id column: ``UUID`` in Python, ``VARCHAR(36)`` in SQL."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class Base(DeclarativeBase):
    """
    Declarative base for execution-metadata models.

    ``id`` is the job or step execution id.  JobRunner receives it from the
    repository and logs it as ``job_execution_id``; rows created without one
    get a fresh uuid4.  Plain ``int`` annotations map to BigInteger so read,
    write and commit counters of long-running steps fit.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TimestampedBase(Base):
    """
    Abstract execution table with row bookkeeping columns.

    ``created_at`` / ``updated_at`` are set by the database and say when a
    row was inserted or last saved (for step rows, the last committed chunk).
    They are not the run's ``started_at`` / ``ended_at``, which come from the
    runner's Clock.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
