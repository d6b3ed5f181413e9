"""
JobRegistry -- job name to job factory lookup.

Contract:
    - ``register()`` adds a factory; raises DuplicateJobError on a taken name.
    - ``create()`` builds a fresh Job from the factory; raises
      JobNotRegisteredError if missing.  Factories are called on every
      ``create()`` so each run gets new sources and sinks.
    - ``list_jobs()`` returns all registered names, sorted.
    - ``default_job_registry()`` returns a registry holding the sample jobs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from batch_kernel.exceptions import DuplicateJobError, JobNotRegisteredError

from batch_engine.domain.job import Job

if TYPE_CHECKING:
    from batch_config.schema import EngineSettings

JobFactory = Callable[["EngineSettings | None"], Job]


class JobRegistry:
    """Registry mapping job names to job factories."""

    def __init__(self) -> None:
        self._factories: dict[str, JobFactory] = {}

    def register(self, name: str, factory: JobFactory) -> None:
        """Register a job factory under ``name``.

        Raises:
            DuplicateJobError: If ``name`` is already registered.
        """
        if name in self._factories:
            raise DuplicateJobError(name)
        self._factories[name] = factory

    def create(self, name: str, settings: EngineSettings | None = None) -> Job:
        """Build a new Job instance for ``name``.

        Raises:
            JobNotRegisteredError: If no factory is registered for ``name``.
        """
        try:
            factory = self._factories[name]
        except KeyError:
            raise JobNotRegisteredError(name, self.list_jobs()) from None
        return factory(settings)

    def list_jobs(self) -> tuple[str, ...]:
        """Return all registered job names, sorted."""
        return tuple(sorted(self._factories))

    def __len__(self) -> int:
        return len(self._factories)

    def __contains__(self, name: str) -> bool:
        return name in self._factories


def default_job_registry() -> JobRegistry:
    """Create a JobRegistry pre-loaded with the sample jobs."""
    from batch_engine.jobs.samples import (
        CHUNK_PROCESSING_JOB,
        HELLO_JOB,
        chunk_processing_job,
        hello_job,
    )

    registry = JobRegistry()
    registry.register(HELLO_JOB, hello_job)
    registry.register(CHUNK_PROCESSING_JOB, chunk_processing_job)
    return registry
