"""
Engine configuration schema (``batch_config.schema``).

Frozen dataclasses parsed from YAML by ``batch_config.loader``.  No I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

VALID_LOG_LEVELS: frozenset[str] = frozenset(
    {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
)


@dataclass(frozen=True)
class JobLaunchDef:
    """Default parameters applied whenever the named job is launched."""

    name: str
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EngineSettings:
    """Engine-wide settings.

    ``database_url`` selects the durable SQL repository; ``None`` keeps
    execution metadata in memory.  ``max_iterations`` bounds how many times
    one step may be invoked in a run (``None`` is unbounded).
    """

    default_chunk_size: int = 10
    log_level: str = "INFO"
    database_url: str | None = None
    max_iterations: int | None = None
    jobs: tuple[JobLaunchDef, ...] = ()

    def job_defaults(self, job_name: str) -> dict[str, Any]:
        """Configured default parameters for ``job_name`` (empty if none)."""
        for job in self.jobs:
            if job.name == job_name:
                return dict(job.parameters)
        return {}
