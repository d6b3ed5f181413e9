"""
Typed Exception Hierarchy for the Batch Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A batch run has exactly one externally observable result: COMPLETED, or
FAILED plus the step that failed.  Callers that need to tell a rejected
sink write from a broken transformer must not parse messages:

Example - WRONG way to handle errors:
    if "sink" in str(result.error):   # FRAGILE - message might change
        alert_storage_team()

Example - RIGHT way (what this module enables):
    if isinstance(result.error, SinkError):
        alert_storage_team(step=result.error.step_name, size=result.error.batch_size)

Rules:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, log-safe)
  3. Exceptions carry structured DATA (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from BatchEngineError:

    BatchEngineError (base)
    |
    +-- ConfigurationError            (fatal at construction time)
    |   +-- InvalidChunkSizeError
    |   +-- StepWiringError
    |   +-- DuplicateStepError
    |   +-- EmptyJobError
    |   +-- InvalidJobParameterError
    |   +-- JobNotRegisteredError
    |   +-- DuplicateJobError
    |
    +-- StepExecutionError            (surfaces as step FAILED)
    |   +-- SourceError
    |   +-- TransformError
    |   +-- SinkError
    |   +-- TaskError
    |   +-- InvalidTaskResultError
    |   +-- StepIterationLimitError
    |
    +-- RepositoryError
        +-- JobInstanceAlreadyCompleteError
        +-- JobExecutionNotFoundError
        +-- StepExecutionNotFoundError
"""

from typing import Any


class BatchEngineError(Exception):
    """
    Base exception for all batch engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BATCH_ENGINE_ERROR"


# =============================================================================
# Configuration errors
# =============================================================================


class ConfigurationError(BatchEngineError):
    """Invalid job or step wiring, detected before any step runs."""

    code: str = "CONFIGURATION_ERROR"


class InvalidChunkSizeError(ConfigurationError):
    """Statically configured chunk size is not a positive integer."""

    code: str = "INVALID_CHUNK_SIZE"

    def __init__(self, chunk_size: Any):
        self.chunk_size = chunk_size
        super().__init__(
            f"Chunk size must be a positive integer, got {chunk_size!r}"
        )


class StepWiringError(ConfigurationError):
    """A step does not carry exactly one of a task body or a chunk spec."""

    code: str = "STEP_WIRING_ERROR"

    def __init__(self, step_name: str, reason: str):
        self.step_name = step_name
        self.reason = reason
        super().__init__(f"Step '{step_name}' is miswired: {reason}")


class DuplicateStepError(ConfigurationError):
    """Two steps in one job share a name."""

    code: str = "DUPLICATE_STEP"

    def __init__(self, job_name: str, step_name: str):
        self.job_name = job_name
        self.step_name = step_name
        super().__init__(
            f"Job '{job_name}' declares step '{step_name}' more than once"
        )


class EmptyJobError(ConfigurationError):
    """A job was constructed without any steps."""

    code: str = "EMPTY_JOB"

    def __init__(self, job_name: str):
        self.job_name = job_name
        super().__init__(f"Job '{job_name}' has no steps")


class InvalidJobParameterError(ConfigurationError):
    """A job parameter name or value has an unsupported type."""

    code: str = "INVALID_JOB_PARAMETER"

    def __init__(self, name: Any, value: Any):
        self.name = name
        self.value = value
        super().__init__(
            f"Job parameter {name!r} has unsupported value {value!r} "
            f"({type(value).__name__}); expected str, int or float"
        )


class JobNotRegisteredError(ConfigurationError):
    """No job factory is registered under the requested name."""

    code: str = "JOB_NOT_REGISTERED"

    def __init__(self, job_name: str, available: tuple[str, ...] = ()):
        self.job_name = job_name
        self.available = available
        super().__init__(
            f"No job registered as '{job_name}'. Available: {list(available)}"
        )


class DuplicateJobError(ConfigurationError):
    """A job name was registered twice."""

    code: str = "DUPLICATE_JOB"

    def __init__(self, job_name: str):
        self.job_name = job_name
        super().__init__(f"Job '{job_name}' is already registered")


# =============================================================================
# Step execution errors
# =============================================================================


class StepExecutionError(BatchEngineError):
    """Base exception for failures that terminate a step as FAILED."""

    code: str = "STEP_EXECUTION_ERROR"

    def __init__(self, step_name: str, message: str):
        self.step_name = step_name
        super().__init__(message)


class SourceError(StepExecutionError):
    """The item source failed to produce the next record."""

    code: str = "SOURCE_ERROR"

    def __init__(self, step_name: str, read_count: int, cause: str):
        self.read_count = read_count
        self.cause = cause
        super().__init__(
            step_name,
            f"Step '{step_name}' source failed after {read_count} record(s): {cause}",
        )


class TransformError(StepExecutionError):
    """
    The transformer raised on a record.

    Distinct from an intentional drop: a transformer returning None
    filters the record, raising fails the step.
    """

    code: str = "TRANSFORM_ERROR"

    def __init__(self, step_name: str, record: Any, cause: str):
        self.record = record
        self.cause = cause
        super().__init__(
            step_name,
            f"Step '{step_name}' transformer failed on {record!r}: {cause}",
        )


class SinkError(StepExecutionError):
    """The sink rejected a batch; nothing from that batch was committed."""

    code: str = "SINK_ERROR"

    def __init__(self, step_name: str, batch_size: int, cause: str):
        self.batch_size = batch_size
        self.cause = cause
        super().__init__(
            step_name,
            f"Step '{step_name}' sink rejected a batch of {batch_size}: {cause}",
        )


class TaskError(StepExecutionError):
    """A task body raised."""

    code: str = "TASK_ERROR"

    def __init__(self, step_name: str, cause: str):
        self.cause = cause
        super().__init__(step_name, f"Step '{step_name}' task failed: {cause}")


class InvalidTaskResultError(StepExecutionError):
    """A task body returned something other than a StepStatus."""

    code: str = "INVALID_TASK_RESULT"

    def __init__(self, step_name: str, result: Any):
        self.result = result
        super().__init__(
            step_name,
            f"Step '{step_name}' task returned {result!r}; expected a StepStatus",
        )


class StepIterationLimitError(StepExecutionError):
    """A step stayed CONTINUABLE beyond the configured iteration bound."""

    code: str = "STEP_ITERATION_LIMIT"

    def __init__(self, step_name: str, max_iterations: int):
        self.max_iterations = max_iterations
        super().__init__(
            step_name,
            f"Step '{step_name}' did not finish within {max_iterations} iteration(s)",
        )


# =============================================================================
# Repository errors
# =============================================================================


class RepositoryError(BatchEngineError):
    """Base exception for execution metadata store errors."""

    code: str = "REPOSITORY_ERROR"


class JobInstanceAlreadyCompleteError(RepositoryError):
    """
    A job with identical parameters already completed.

    A fresh run id (or different parameters) is required to run it again.
    """

    code: str = "JOB_INSTANCE_ALREADY_COMPLETE"

    def __init__(self, job_name: str, identity_key: str):
        self.job_name = job_name
        self.identity_key = identity_key
        super().__init__(
            f"Job '{job_name}' already completed with parameters {identity_key}"
        )


class JobExecutionNotFoundError(RepositoryError):
    """Job execution with given ID was not found."""

    code: str = "JOB_EXECUTION_NOT_FOUND"

    def __init__(self, job_execution_id: str):
        self.job_execution_id = job_execution_id
        super().__init__(f"Job execution not found: {job_execution_id}")


class StepExecutionNotFoundError(RepositoryError):
    """Step execution with given ID was not found."""

    code: str = "STEP_EXECUTION_NOT_FOUND"

    def __init__(self, step_execution_id: str):
        self.step_execution_id = step_execution_id
        super().__init__(f"Step execution not found: {step_execution_id}")
