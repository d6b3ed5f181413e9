"""
batch_engine.domain.types -- Status enums, job parameters and execution DTOs.

ZERO I/O.  Execution records are frozen dataclasses with enum status
fields and tuples for immutable collections.  ``StepExecution`` is the one
mutable object: it is owned and mutated by the executor running that step.

Invariants enforced:
    - JobParameters are immutable once constructed.
    - StepExecution.read_count never decreases.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Union
from uuid import UUID, uuid4

from batch_kernel.exceptions import InvalidJobParameterError

ParameterValue = Union[str, int, float]

RUN_ID_PARAMETER = "run.id"


# =============================================================================
# Status enums
# =============================================================================


class StepStatus(str, Enum):
    """Result of one executor invocation."""

    CONTINUABLE = "continuable"  # Invoke again, more work remains
    FINISHED = "finished"  # Terminal: step done
    FAILED = "failed"  # Terminal: step aborted

    @property
    def is_terminal(self) -> bool:
        return self is not StepStatus.CONTINUABLE


class JobStatus(str, Enum):
    """Job-run lifecycle status."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# Job parameters
# =============================================================================


def _checked_parameters(
    values: dict[str, ParameterValue],
) -> dict[str, ParameterValue]:
    for name, value in values.items():
        if not isinstance(name, str):
            raise InvalidJobParameterError(name, value)
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise InvalidJobParameterError(name, value)
    return values


class JobParameters(Mapping[str, ParameterValue]):
    """Immutable mapping of parameter name to a string or number.

    Two runs are the same job instance only when their parameters are equal;
    ``identity_key()`` is the canonical form repositories compare.
    """

    __slots__ = ("_values",)

    def __init__(
        self,
        values: Mapping[str, ParameterValue] | None = None,
        **kwargs: ParameterValue,
    ) -> None:
        merged: dict[str, ParameterValue] = dict(values or {})
        merged.update(kwargs)
        self._values = MappingProxyType(_checked_parameters(merged))

    def __getitem__(self, name: str) -> ParameterValue:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __hash__(self) -> int:
        return hash(frozenset(self._values.items()))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mapping):
            return NotImplemented
        return dict(self._values) == dict(other)

    def __repr__(self) -> str:
        # Unset when __init__ rejected the values.
        values = getattr(self, "_values", None)
        return f"JobParameters({dict(values or {})!r})"

    def get_string(self, name: str, default: str | None = None) -> str | None:
        """Return the parameter rendered as a string, or ``default``."""
        if name not in self._values:
            return default
        return str(self._values[name])

    def get_int(self, name: str, default: int | None = None) -> int | None:
        """Return the parameter as an int, or ``default`` when absent.

        Raises:
            ValueError: If the value cannot be read as an integer.
        """
        if name not in self._values:
            return default
        value = self._values[name]
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"Job parameter {name!r} is not an integer: {value!r}")
        return int(value)

    def merged(self, other: Mapping[str, ParameterValue]) -> JobParameters:
        """Return new parameters with ``other`` layered over these."""
        combined = dict(self._values)
        combined.update(other)
        return JobParameters(combined)

    def to_dict(self) -> dict[str, ParameterValue]:
        return dict(self._values)

    def identity_key(self) -> str:
        """Canonical JSON form used to recognise the same job instance."""
        return json.dumps(dict(self._values), sort_keys=True, separators=(",", ":"))


# =============================================================================
# Step execution (mutable, executor-owned)
# =============================================================================


@dataclass
class StepExecution:
    """Per-run mutable state of one step.

    Mutated only by the executor currently running the step.  Counters:

    - ``read_count``: records pulled from the source (drops included).
    - ``filter_count``: records the transformer dropped.
    - ``write_count``: records accepted by the sink.
    - ``commit_count``: batches accepted by the sink.
    - ``iterations``: executor invocations so far.
    """

    step_name: str
    job_parameters: JobParameters = field(default_factory=JobParameters)
    id: UUID = field(default_factory=uuid4)
    job_execution_id: UUID | None = None
    read_count: int = 0
    write_count: int = 0
    filter_count: int = 0
    commit_count: int = 0
    iterations: int = 0
    status: StepStatus | None = None
    failure: Exception | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None

    def advance_read_count(self, count: int) -> None:
        """Move the read position forward by ``count`` records.

        Raises:
            ValueError: If ``count`` is negative.
        """
        if count < 0:
            raise ValueError(f"read_count cannot move backwards (got {count})")
        self.read_count += count

    def snapshot(self) -> StepExecutionRecord:
        """Freeze the current state into a StepExecutionRecord."""
        return StepExecutionRecord(
            step_execution_id=self.id,
            job_execution_id=self.job_execution_id,
            step_name=self.step_name,
            status=self.status,
            read_count=self.read_count,
            write_count=self.write_count,
            filter_count=self.filter_count,
            commit_count=self.commit_count,
            iterations=self.iterations,
            started_at=self.started_at,
            ended_at=self.ended_at,
            exit_message=str(self.failure) if self.failure is not None else None,
        )


# =============================================================================
# Execution records (frozen)
# =============================================================================


@dataclass(frozen=True)
class StepExecutionRecord:
    """Immutable snapshot of a step execution as stored by a repository."""

    step_execution_id: UUID
    job_execution_id: UUID | None
    step_name: str
    status: StepStatus | None
    read_count: int = 0
    write_count: int = 0
    filter_count: int = 0
    commit_count: int = 0
    iterations: int = 0
    started_at: datetime | None = None
    ended_at: datetime | None = None
    exit_message: str | None = None


@dataclass(frozen=True)
class JobExecutionRecord:
    """Immutable snapshot of a job execution as stored by a repository."""

    job_execution_id: UUID
    job_name: str
    parameters: JobParameters
    status: JobStatus
    started_at: datetime | None = None
    ended_at: datetime | None = None
    failed_step: str | None = None
    exit_message: str | None = None


@dataclass(frozen=True)
class JobRunResult:
    """Immutable result of one ``JobRunner.run()`` call.

    ``failed_step`` and ``error`` are set only when ``status`` is FAILED.
    """

    job_name: str
    job_execution_id: UUID
    status: JobStatus
    parameters: JobParameters
    failed_step: str | None = None
    error: Exception | None = None
    step_results: tuple[StepExecutionRecord, ...] = ()
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @property
    def run_id(self) -> int | None:
        return self.parameters.get_int(RUN_ID_PARAMETER)

    @property
    def completed(self) -> bool:
        return self.status is JobStatus.COMPLETED
