"""
batch_engine.models -- ORM models for execution metadata persistence.

Architecture: batch_engine/models. Imports from batch_kernel.db.base only.
"""

from batch_engine.models.execution import JobExecutionModel, StepExecutionModel

__all__ = [
    "JobExecutionModel",
    "StepExecutionModel",
]
