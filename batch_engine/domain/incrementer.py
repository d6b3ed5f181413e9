"""
RunIdIncrementer -- run-identifier generation policy.

Each invocation of a job gets ``run.id`` one greater than the previous
run of the same job, so repeated invocations with otherwise identical
parameters are distinct job instances.
"""

from __future__ import annotations

from batch_engine.domain.types import RUN_ID_PARAMETER, JobParameters


class RunIdIncrementer:
    """Derives the next run's parameters from the previous run's."""

    def __init__(self, key: str = RUN_ID_PARAMETER) -> None:
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def next_parameters(self, previous: JobParameters | None) -> JobParameters:
        """Return parameters holding only the next run id.

        A missing or non-numeric previous run id restarts the sequence at 1.
        """
        last = 0
        if previous is not None:
            try:
                last = previous.get_int(self._key, 0) or 0
            except ValueError:
                last = 0
        return JobParameters({self._key: last + 1})
