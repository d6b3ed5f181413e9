"""
Tests for SqlJobRepository against in-memory SQLite.

The repository must honour the same contract as InMemoryJobRepository:
repeat-instance refusal, last-parameters lookup for run ids, and step
counters that only move on committed chunks.
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from batch_kernel.exceptions import (
    JobExecutionNotFoundError,
    JobInstanceAlreadyCompleteError,
    StepExecutionNotFoundError,
)

from batch_engine.domain.job import Job, chunk_step, task_step
from batch_engine.domain.types import (
    JobParameters,
    JobStatus,
    StepExecution,
    StepStatus,
)
from batch_engine.items import ListItemSink, ListItemSource
from batch_engine.models import JobExecutionModel, StepExecutionModel
from batch_engine.services.runner import JobRunner
from batch_engine.services.sql_repository import SqlJobRepository

from tests.batch.doubles import FailingSink

NOW = datetime(2026, 2, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sql_repository(session_factory):
    return SqlJobRepository(session_factory)


@pytest.fixture
def sql_runner(sql_repository, clock):
    return JobRunner(repository=sql_repository, clock=clock)


# =============================================================================
# Job executions
# =============================================================================


class TestSqlJobExecutions:
    def test_create_and_get(self, sql_repository):
        params = JobParameters({"run.id": 1, "chunkSize": "20"})

        created = sql_repository.create_job_execution("job", params, NOW)
        loaded = sql_repository.get_job_execution(created.job_execution_id)

        assert loaded.job_execution_id == created.job_execution_id
        assert loaded.job_name == "job"
        assert loaded.parameters == params
        assert loaded.status is JobStatus.RUNNING

    def test_complete_job(self, sql_repository):
        created = sql_repository.create_job_execution("job", JobParameters(), NOW)

        completed = sql_repository.complete_job(
            created.job_execution_id,
            JobStatus.FAILED,
            NOW,
            failed_step="load",
            exit_message="disk full",
        )

        assert completed.status is JobStatus.FAILED
        assert completed.failed_step == "load"
        assert completed.exit_message == "disk full"
        assert completed.ended_at is not None

    def test_last_parameters_is_latest_run(self, sql_repository):
        assert sql_repository.last_parameters("job") is None

        sql_repository.create_job_execution("job", JobParameters({"run.id": 1}), NOW)
        sql_repository.create_job_execution("job", JobParameters({"run.id": 2}), NOW)
        sql_repository.create_job_execution("other", JobParameters({"run.id": 9}), NOW)

        assert sql_repository.last_parameters("job") == {"run.id": 2}

    def test_list_in_creation_order(self, sql_repository):
        for run_id in (1, 2, 3):
            sql_repository.create_job_execution(
                "job", JobParameters({"run.id": run_id}), NOW,
            )

        runs = sql_repository.list_job_executions("job")

        assert [r.parameters["run.id"] for r in runs] == [1, 2, 3]

    def test_completed_instance_refused(self, sql_repository):
        params = JobParameters({"day": "2026-02-01"})
        created = sql_repository.create_job_execution("job", params, NOW)
        sql_repository.complete_job(created.job_execution_id, JobStatus.COMPLETED, NOW)

        with pytest.raises(JobInstanceAlreadyCompleteError):
            sql_repository.create_job_execution("job", params, NOW)

    def test_failed_instance_may_run_again(self, sql_repository):
        params = JobParameters({"day": "2026-02-01"})
        created = sql_repository.create_job_execution("job", params, NOW)
        sql_repository.complete_job(created.job_execution_id, JobStatus.FAILED, NOW)

        again = sql_repository.create_job_execution("job", params, NOW)

        assert again.job_execution_id != created.job_execution_id

    def test_unknown_job_execution(self, sql_repository):
        with pytest.raises(JobExecutionNotFoundError):
            sql_repository.get_job_execution(uuid4())


# =============================================================================
# Step executions
# =============================================================================


class TestSqlStepExecutions:
    def _job(self, sql_repository):
        return sql_repository.create_job_execution("job", JobParameters(), NOW)

    def test_progress_then_failure_keeps_committed_counters(self, sql_repository):
        job = self._job(sql_repository)
        step = StepExecution(step_name="load", job_execution_id=job.job_execution_id)
        sql_repository.create_step_execution(step)

        step.advance_read_count(10)
        step.write_count = 10
        step.commit_count = 1
        step.status = StepStatus.CONTINUABLE
        sql_repository.save_step_progress(step.snapshot())

        step.advance_read_count(10)
        failed = sql_repository.fail_step(step.id, NOW, "disk full")

        assert failed.status is StepStatus.FAILED
        assert failed.read_count == 10
        assert failed.commit_count == 1
        assert failed.exit_message == "disk full"

    def test_steps_listed_in_order(self, sql_repository):
        job = self._job(sql_repository)
        for name in ("a", "b", "c"):
            sql_repository.create_step_execution(
                StepExecution(step_name=name, job_execution_id=job.job_execution_id),
            )

        steps = sql_repository.get_step_executions(job.job_execution_id)

        assert [s.step_name for s in steps] == ["a", "b", "c"]

    def test_step_for_unknown_job(self, sql_repository):
        with pytest.raises(JobExecutionNotFoundError):
            sql_repository.create_step_execution(
                StepExecution(step_name="orphan", job_execution_id=uuid4()),
            )

    def test_unknown_step_execution(self, sql_repository):
        with pytest.raises(StepExecutionNotFoundError):
            sql_repository.fail_step(uuid4(), NOW, "boom")


# =============================================================================
# JobRunner with the SQL repository
# =============================================================================


class TestSqlRepositoryWithRunner:
    def test_run_ids_survive_runner_instances(self, sql_repository, clock):
        job = Job(name="hello", steps=(task_step("a", lambda se: None),))

        first = JobRunner(repository=sql_repository, clock=clock).run(job)
        second = JobRunner(repository=sql_repository, clock=clock).run(job)

        assert (first.run_id, second.run_id) == (1, 2)

    def test_completed_run_persisted(self, sql_runner, session_factory):
        job = Job(
            name="chunked",
            steps=(chunk_step("load", ListItemSource(range(25)), ListItemSink(), chunk_size=10),),
        )

        result = sql_runner.run(job)

        with session_factory() as session:
            job_row = session.get(JobExecutionModel, result.job_execution_id)
            assert job_row.status == "completed"
            assert job_row.parameters == {"run.id": 1}
            step_row = job_row.steps[0]
            assert isinstance(step_row, StepExecutionModel)
            assert step_row.step_name == "load"
            assert step_row.status == "finished"
            assert step_row.read_count == 25
            assert step_row.commit_count == 3
            assert step_row.iterations == 3

    def test_failed_run_persisted(self, sql_runner, sql_repository):
        job = Job(
            name="etl",
            steps=(
                chunk_step("load", ListItemSource(range(30)), FailingSink(2), chunk_size=10),
            ),
        )

        result = sql_runner.run(job)

        record = sql_repository.get_job_execution(result.job_execution_id)
        assert record.status is JobStatus.FAILED
        assert record.failed_step == "load"
        (step,) = sql_repository.get_step_executions(result.job_execution_id)
        assert step.status is StepStatus.FAILED
        assert step.read_count == 10
        assert result.step_results[0].read_count == 20
