"""
Tests for ChunkStepExecutor.

Covers:
- Full, partial and empty sources (iteration counts and batch sizes)
- Records dropped by the transformer
- Chunk size resolution from the chunkSize parameter
- Source, transformer and sink failures
- Ordering and counter invariants across arbitrary sizes
"""

import math

import pytest

from batch_kernel.exceptions import SinkError, SourceError, TransformError

from batch_engine.domain.job import ChunkSpec
from batch_engine.domain.types import JobParameters, StepExecution, StepStatus
from batch_engine.items import FunctionTransformer, ListItemSink, ListItemSource
from batch_engine.steps.chunk import ChunkStepExecutor, resolve_chunk_size

from tests.batch.doubles import (
    FailingSink,
    FailingSource,
    FailingTransformer,
    RecordingSource,
)


def _drive(executor, step_execution, spec, limit=1000):
    """Invoke the executor until it returns a terminal status."""
    statuses = []
    for _ in range(limit):
        status = executor.run_step(step_execution, spec)
        statuses.append(status)
        if status.is_terminal:
            return statuses
    raise AssertionError(f"step still CONTINUABLE after {limit} calls")


@pytest.fixture
def executor():
    return ChunkStepExecutor()


# =============================================================================
# Basic chunking
# =============================================================================


class TestChunking:
    def test_hundred_records_in_chunks_of_ten(self, executor):
        sink = ListItemSink()
        spec = ChunkSpec(
            source=ListItemSource(f"{i} Hello" for i in range(100)),
            transformer=FunctionTransformer(lambda r: r + ", String Batch"),
            sink=sink,
            chunk_size=10,
        )
        execution = StepExecution(step_name="chunk_base_step")

        statuses = _drive(executor, execution, spec)

        assert statuses == [StepStatus.CONTINUABLE] * 9 + [StepStatus.FINISHED]
        assert sink.batch_sizes == [10] * 10
        assert sink.items[0] == "0 Hello, String Batch"
        assert sink.items[-1] == "99 Hello, String Batch"
        assert execution.read_count == 100
        assert execution.write_count == 100
        assert execution.commit_count == 10
        assert execution.iterations == 10
        assert execution.status is StepStatus.FINISHED

    def test_empty_source_finishes_without_writing(self, executor):
        sink = ListItemSink()
        spec = ChunkSpec(source=ListItemSource([]), sink=sink, chunk_size=10)
        execution = StepExecution(step_name="empty")

        assert executor.run_step(execution, spec) is StepStatus.FINISHED
        assert sink.batches == []
        assert execution.read_count == 0
        assert execution.commit_count == 0

    def test_partial_chunk_finishes_in_one_call(self, executor):
        sink = ListItemSink()
        spec = ChunkSpec(source=ListItemSource(range(5)), sink=sink, chunk_size=10)
        execution = StepExecution(step_name="partial")

        assert executor.run_step(execution, spec) is StepStatus.FINISHED
        assert sink.batches == [[0, 1, 2, 3, 4]]
        assert execution.read_count == 5

    def test_dropped_records_count_as_read(self, executor):
        sink = ListItemSink()
        spec = ChunkSpec(
            source=ListItemSource(range(1, 10)),
            transformer=FunctionTransformer(lambda r: None if r % 3 == 0 else r),
            sink=sink,
            chunk_size=3,
        )
        execution = StepExecution(step_name="drops")
        read_progress = []

        statuses = []
        while not statuses or not statuses[-1].is_terminal:
            statuses.append(executor.run_step(execution, spec))
            read_progress.append(execution.read_count)

        assert statuses == [
            StepStatus.CONTINUABLE,
            StepStatus.CONTINUABLE,
            StepStatus.FINISHED,
        ]
        assert sink.batches == [[1, 2], [4, 5], [7, 8]]
        assert read_progress == [3, 6, 9]
        assert execution.filter_count == 3
        assert execution.write_count == 6

    def test_chunk_of_only_drops_skips_sink(self, executor):
        sink = FailingSink(fail_on_write=1)
        spec = ChunkSpec(
            source=ListItemSource([1, 2]),
            transformer=FunctionTransformer(lambda r: None),
            sink=sink,
            chunk_size=5,
        )
        execution = StepExecution(step_name="all_dropped")

        assert executor.run_step(execution, spec) is StepStatus.FINISHED
        assert sink.write_calls == 0
        assert execution.read_count == 2
        assert execution.commit_count == 0

    def test_no_transformer_passes_records_through(self, executor):
        sink = ListItemSink()
        spec = ChunkSpec(source=ListItemSource("abcd"), sink=sink, chunk_size=2)
        _drive(executor, StepExecution(step_name="identity"), spec)
        assert sink.batches == [["a", "b"], ["c", "d"]]

    def test_finished_step_stays_finished(self, executor):
        source = RecordingSource([1, 2])
        sink = ListItemSink()
        spec = ChunkSpec(source=source, sink=sink, chunk_size=5)
        execution = StepExecution(step_name="again")

        assert executor.run_step(execution, spec) is StepStatus.FINISHED
        assert executor.run_step(execution, spec) is StepStatus.FINISHED
        assert sink.batches == [[1, 2]]
        assert execution.read_count == 2


# =============================================================================
# Invariants over sizes
# =============================================================================


class TestChunkInvariants:
    @pytest.mark.parametrize(
        ("record_count", "chunk_size"),
        [(0, 1), (1, 1), (7, 3), (9, 3), (10, 10), (11, 10), (25, 4), (3, 50)],
    )
    def test_invocations_and_batch_sizes(self, executor, record_count, chunk_size):
        sink = ListItemSink()
        spec = ChunkSpec(
            source=ListItemSource(range(record_count)),
            sink=sink,
            chunk_size=chunk_size,
        )
        execution = StepExecution(step_name="sizes")

        statuses = _drive(executor, execution, spec)

        assert len(statuses) == max(1, math.ceil(record_count / chunk_size))
        assert statuses[-1] is StepStatus.FINISHED
        assert all(size <= chunk_size for size in sink.batch_sizes)
        assert all(size == chunk_size for size in sink.batch_sizes[:-1])
        assert sink.items == list(range(record_count))
        assert execution.read_count == record_count

    def test_read_count_is_monotonic(self, executor):
        spec = ChunkSpec(
            source=ListItemSource(range(23)), sink=ListItemSink(), chunk_size=4,
        )
        execution = StepExecution(step_name="monotonic")
        seen = [execution.read_count]
        status = StepStatus.CONTINUABLE
        while status is StepStatus.CONTINUABLE:
            status = executor.run_step(execution, spec)
            seen.append(execution.read_count)

        assert seen == sorted(seen)
        assert seen[-1] == 23


# =============================================================================
# Chunk size resolution
# =============================================================================


class TestResolveChunkSize:
    @pytest.mark.parametrize(
        ("parameters", "expected"),
        [
            ({}, 10),
            ({"chunkSize": "20"}, 20),
            ({"chunkSize": " 7 "}, 7),
            ({"chunkSize": 5}, 5),
            ({"chunkSize": ""}, 10),
            ({"chunkSize": "abc"}, 10),
            ({"chunkSize": "0"}, 10),
            ({"chunkSize": "-3"}, 10),
            ({"chunkSize": "2.5"}, 10),
            ({"chunkSize": 0}, 10),
            ({"chunkSize": -4}, 10),
            ({"chunkSize": 2.0}, 10),
            ({"chunkSize": True}, 10),
        ],
    )
    def test_resolution(self, parameters, expected):
        assert resolve_chunk_size(parameters, 10) == expected

    def test_parameter_drives_executor(self, executor):
        sink = ListItemSink()
        spec = ChunkSpec(source=ListItemSource(range(12)), sink=sink, chunk_size=10)
        execution = StepExecution(
            step_name="override",
            job_parameters=JobParameters({"chunkSize": "4"}),
        )

        statuses = _drive(executor, execution, spec)

        assert len(statuses) == 3
        assert sink.batch_sizes == [4, 4, 4]

    def test_invalid_parameter_falls_back_to_static_size(self, executor):
        sink = ListItemSink()
        spec = ChunkSpec(source=ListItemSource(range(12)), sink=sink, chunk_size=6)
        execution = StepExecution(
            step_name="fallback",
            job_parameters=JobParameters({"chunkSize": "lots"}),
        )

        _drive(executor, execution, spec)

        assert sink.batch_sizes == [6, 6]

    def test_explicit_chunk_size_wins(self, executor):
        sink = ListItemSink()
        spec = ChunkSpec(source=ListItemSource(range(6)), sink=sink, chunk_size=10)
        execution = StepExecution(
            step_name="explicit",
            job_parameters=JobParameters({"chunkSize": "5"}),
        )

        status = executor.run_step(execution, spec, chunk_size=2)

        assert status is StepStatus.CONTINUABLE
        assert sink.batch_sizes == [2]


# =============================================================================
# Failures
# =============================================================================


class TestChunkFailures:
    def test_source_failure(self, executor):
        sink = ListItemSink()
        spec = ChunkSpec(
            source=FailingSource(range(10), fail_after=3), sink=sink, chunk_size=2,
        )
        execution = StepExecution(step_name="extract")

        assert executor.run_step(execution, spec) is StepStatus.CONTINUABLE
        assert executor.run_step(execution, spec) is StepStatus.FAILED

        error = execution.failure
        assert isinstance(error, SourceError)
        assert error.step_name == "extract"
        assert error.read_count == 3
        assert isinstance(error.__cause__, OSError)
        assert execution.read_count == 3
        assert execution.status is StepStatus.FAILED
        assert sink.batches == [[0, 1]]

    def test_transform_failure_writes_nothing_from_chunk(self, executor):
        sink = ListItemSink()
        spec = ChunkSpec(
            source=ListItemSource(range(6)),
            transformer=FailingTransformer(bad_record=4),
            sink=sink,
            chunk_size=3,
        )
        execution = StepExecution(step_name="transform")

        statuses = _drive(executor, execution, spec)

        assert statuses == [StepStatus.CONTINUABLE, StepStatus.FAILED]
        assert isinstance(execution.failure, TransformError)
        assert execution.failure.record == 4
        assert isinstance(execution.failure.__cause__, ValueError)
        assert sink.batches == [[0, 1, 2]]
        assert execution.write_count == 3

    def test_sink_failure(self, executor):
        sink = FailingSink(fail_on_write=2)
        spec = ChunkSpec(source=ListItemSource(range(30)), sink=sink, chunk_size=10)
        execution = StepExecution(step_name="load")

        statuses = _drive(executor, execution, spec)

        assert statuses == [StepStatus.CONTINUABLE, StepStatus.FAILED]
        error = execution.failure
        assert isinstance(error, SinkError)
        assert error.batch_size == 10
        assert error.code == "SINK_ERROR"
        assert isinstance(error.__cause__, RuntimeError)
        # Pulled records stay counted; the rejected batch is not committed
        assert execution.read_count == 20
        assert execution.write_count == 10
        assert execution.commit_count == 1
        assert sink.batches == [list(range(10))]
