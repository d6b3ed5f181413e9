"""
batch_engine.services -- Job runner and execution metadata repositories.
"""

from batch_engine.services.repository import InMemoryJobRepository, JobRepository
from batch_engine.services.runner import JobRunner
from batch_engine.services.sql_repository import SqlJobRepository

__all__ = [
    "InMemoryJobRepository",
    "JobRepository",
    "JobRunner",
    "SqlJobRepository",
]
