"""
Job and step definitions.

Contract:
    A ``Job`` is a named, ordered, immutable tuple of ``Step`` objects.  Each
    step holds exactly one of a task body or a ``ChunkSpec`` with its fully
    resolved collaborators.  All wiring errors raise ``ConfigurationError``
    subclasses at construction time, before any step runs.

    Sources and sinks are stateful: build a fresh Job (for example from a
    factory registered in ``JobRegistry``) for every run that must start
    from the first record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from batch_kernel.exceptions import (
    DuplicateStepError,
    EmptyJobError,
    InvalidChunkSizeError,
    StepWiringError,
)

from batch_engine.domain.incrementer import RunIdIncrementer
from batch_engine.domain.types import StepExecution, StepStatus
from batch_engine.items.base import ItemSink, ItemSource, ItemTransformer

DEFAULT_CHUNK_SIZE = 10


@runtime_checkable
class TaskBody(Protocol):
    """A unit of work invoked once per executor call."""

    def __call__(self, step_execution: StepExecution) -> StepStatus | None: ...


@dataclass(frozen=True)
class ChunkSpec:
    """Chunk size plus the source, optional transformer and sink of a step."""

    source: ItemSource
    sink: ItemSink
    transformer: ItemTransformer | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        if (
            isinstance(self.chunk_size, bool)
            or not isinstance(self.chunk_size, int)
            or self.chunk_size < 1
        ):
            raise InvalidChunkSizeError(self.chunk_size)


@dataclass(frozen=True)
class Step:
    """One stage of a job: a task step or a chunk step, never both."""

    name: str
    task: TaskBody | None = None
    chunk: ChunkSpec | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise StepWiringError(repr(self.name), "step name must be non-empty")
        if (self.task is None) == (self.chunk is None):
            raise StepWiringError(
                self.name, "exactly one of a task body or a chunk spec is required",
            )
        if self.task is not None and not callable(self.task):
            raise StepWiringError(self.name, "task body is not callable")
        if self.chunk is not None:
            self._check_chunk(self.chunk)

    def _check_chunk(self, chunk: ChunkSpec) -> None:
        if not isinstance(chunk.source, ItemSource):
            raise StepWiringError(self.name, "source has no read() method")
        if not isinstance(chunk.sink, ItemSink):
            raise StepWiringError(self.name, "sink has no write() method")
        if chunk.transformer is not None and not isinstance(
            chunk.transformer, ItemTransformer,
        ):
            raise StepWiringError(self.name, "transformer has no transform() method")

    @property
    def is_chunk_step(self) -> bool:
        return self.chunk is not None


@dataclass(frozen=True)
class Job:
    """A named, ordered collection of steps executed as one unit per run."""

    name: str
    steps: tuple[Step, ...]
    incrementer: RunIdIncrementer | None = field(default_factory=RunIdIncrementer)

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))
        if not self.steps:
            raise EmptyJobError(self.name)
        seen: set[str] = set()
        for step in self.steps:
            if step.name in seen:
                raise DuplicateStepError(self.name, step.name)
            seen.add(step.name)

    @property
    def step_names(self) -> tuple[str, ...]:
        return tuple(step.name for step in self.steps)


def task_step(name: str, body: TaskBody) -> Step:
    """Build a task step."""
    return Step(name=name, task=body)


def chunk_step(
    name: str,
    source: ItemSource,
    sink: ItemSink,
    transformer: ItemTransformer | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Step:
    """Build a chunk step from its collaborators."""
    return Step(
        name=name,
        chunk=ChunkSpec(
            source=source,
            sink=sink,
            transformer=transformer,
            chunk_size=chunk_size,
        ),
    )
