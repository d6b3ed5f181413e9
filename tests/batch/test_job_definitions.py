"""
Tests for batch_engine.domain.job -- Job, Step and ChunkSpec wiring.

All wiring errors must surface at construction time as
ConfigurationError subclasses, before any step runs.
"""

from dataclasses import FrozenInstanceError

import pytest

from batch_kernel.exceptions import (
    ConfigurationError,
    DuplicateStepError,
    EmptyJobError,
    InvalidChunkSizeError,
    StepWiringError,
)

from batch_engine.domain.incrementer import RunIdIncrementer
from batch_engine.domain.job import (
    DEFAULT_CHUNK_SIZE,
    ChunkSpec,
    Job,
    Step,
    chunk_step,
    task_step,
)
from batch_engine.domain.types import StepStatus
from batch_engine.items.sinks import ListItemSink
from batch_engine.items.sources import ListItemSource
from batch_engine.items.transformers import FunctionTransformer


def _finish(step_execution):
    return StepStatus.FINISHED


# =============================================================================
# ChunkSpec
# =============================================================================


class TestChunkSpec:
    def test_default_chunk_size(self):
        spec = ChunkSpec(source=ListItemSource([]), sink=ListItemSink())
        assert spec.chunk_size == DEFAULT_CHUNK_SIZE == 10
        assert spec.transformer is None

    @pytest.mark.parametrize("size", [0, -1, True, "10", 2.5, None])
    def test_rejects_invalid_chunk_size(self, size):
        with pytest.raises(InvalidChunkSizeError) as exc_info:
            ChunkSpec(source=ListItemSource([]), sink=ListItemSink(), chunk_size=size)
        assert exc_info.value.chunk_size == size

    def test_chunk_size_one_allowed(self):
        spec = ChunkSpec(source=ListItemSource([]), sink=ListItemSink(), chunk_size=1)
        assert spec.chunk_size == 1

    def test_frozen(self):
        spec = ChunkSpec(source=ListItemSource([]), sink=ListItemSink())
        with pytest.raises(FrozenInstanceError):
            spec.chunk_size = 5  # type: ignore[misc]


# =============================================================================
# Step
# =============================================================================


class TestStep:
    def test_task_step(self):
        step = task_step("hello", _finish)
        assert step.name == "hello"
        assert step.task is _finish
        assert step.chunk is None
        assert not step.is_chunk_step

    def test_chunk_step_builder(self):
        source = ListItemSource([1])
        sink = ListItemSink()
        transformer = FunctionTransformer(str)
        step = chunk_step("load", source, sink, transformer=transformer, chunk_size=3)
        assert step.is_chunk_step
        assert step.chunk.source is source
        assert step.chunk.sink is sink
        assert step.chunk.transformer is transformer
        assert step.chunk.chunk_size == 3

    def test_requires_one_of_task_or_chunk(self):
        with pytest.raises(StepWiringError) as exc_info:
            Step(name="empty")
        assert exc_info.value.step_name == "empty"

    def test_rejects_both_task_and_chunk(self):
        spec = ChunkSpec(source=ListItemSource([]), sink=ListItemSink())
        with pytest.raises(StepWiringError):
            Step(name="both", task=_finish, chunk=spec)

    def test_rejects_empty_name(self):
        with pytest.raises(StepWiringError):
            task_step("", _finish)

    def test_rejects_non_callable_task(self):
        with pytest.raises(StepWiringError):
            Step(name="bad", task="not callable")  # type: ignore[arg-type]

    def test_rejects_source_without_read(self):
        with pytest.raises(StepWiringError, match="source"):
            chunk_step("bad", source=[1, 2, 3], sink=ListItemSink())  # type: ignore[arg-type]

    def test_rejects_sink_without_write(self):
        with pytest.raises(StepWiringError, match="sink"):
            chunk_step("bad", source=ListItemSource([]), sink=object())  # type: ignore[arg-type]

    def test_rejects_transformer_without_transform(self):
        with pytest.raises(StepWiringError, match="transformer"):
            chunk_step(
                "bad",
                source=ListItemSource([]),
                sink=ListItemSink(),
                transformer=str.upper,  # type: ignore[arg-type]
            )

    def test_wiring_errors_are_configuration_errors(self):
        with pytest.raises(ConfigurationError):
            Step(name="empty")


# =============================================================================
# Job
# =============================================================================


class TestJob:
    def test_construction(self):
        job = Job(name="job", steps=[task_step("a", _finish), task_step("b", _finish)])
        assert job.steps[0].name == "a"
        assert isinstance(job.steps, tuple)
        assert job.step_names == ("a", "b")
        assert isinstance(job.incrementer, RunIdIncrementer)

    def test_incrementer_can_be_disabled(self):
        job = Job(name="job", steps=(task_step("a", _finish),), incrementer=None)
        assert job.incrementer is None

    def test_rejects_empty_job(self):
        with pytest.raises(EmptyJobError) as exc_info:
            Job(name="nothing", steps=())
        assert exc_info.value.job_name == "nothing"

    def test_rejects_duplicate_step_names(self):
        with pytest.raises(DuplicateStepError) as exc_info:
            Job(name="job", steps=(task_step("a", _finish), task_step("a", _finish)))
        assert exc_info.value.step_name == "a"
        assert exc_info.value.job_name == "job"

    def test_frozen(self):
        job = Job(name="job", steps=(task_step("a", _finish),))
        with pytest.raises(FrozenInstanceError):
            job.name = "other"  # type: ignore[misc]
