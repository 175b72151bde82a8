"""
Domain-specific exception hierarchy for the validation pipeline.

Everything the pipeline raises derives from PipelineError.  The step name
and execution id are filled in by the engine, and `to_dict()` is what ends
up in a failed job's error_details and in the document's metadata.

`retryable` tells the queue worker whether another attempt can help:
configuration problems and missing documents are dead-lettered at once.
"""

from __future__ import annotations

from typing import Any


class PipelineError(Exception):
    """Root of the validation error hierarchy."""

    retryable: bool = True

    def __init__(
        self,
        message: str,
        *,
        execution_id: str | None = None,
        step_name: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.execution_id = execution_id
        self.step_name = step_name
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialise for error_details / metadata storage."""
        return {
            "type": type(self).__name__,
            "message": str(self),
            "execution_id": self.execution_id,
            "step_name": self.step_name,
            "retryable": self.retryable,
            "details": self.details,
        }


class StepExecutionError(PipelineError):
    """A step raised something that is not a PipelineError."""


class StepTimeoutError(StepExecutionError):
    """A step exceeded its deadline."""

    def __init__(self, message: str, *, timeout_seconds: float = 0.0, **kwargs) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(message, **kwargs)


class FetchError(PipelineError):
    """Storage download or credential handling failed."""

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs) -> None:
        self.status_code = status_code
        super().__init__(message, **kwargs)


class StorageUnauthorizedError(FetchError):
    """Storage rejected the stored credential (HTTP 401)."""
    pass


class ClassificationError(PipelineError):
    """The external classification model failed or returned garbage."""
    pass


class PersistenceError(PipelineError):
    """Writing to the validation store failed."""
    pass


class ConfigurationError(PipelineError):
    """Required configuration (API key, encryption key) is missing."""

    retryable = False


class DocumentNotFoundError(PipelineError):
    """The referenced document does not exist."""

    retryable = False


class WorkerLostError(PipelineError):
    """A claimed job outlived QUEUE_STALE_AFTER_SECONDS without finishing."""
    pass
