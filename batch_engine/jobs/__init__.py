"""
batch_engine.jobs -- Job registry and sample jobs.
"""

from batch_engine.jobs.registry import JobRegistry, default_job_registry

__all__ = ["JobRegistry", "default_job_registry"]
