"""API schema package."""

from docguard.api.schemas.validation import (
    DeadLetterResponse,
    DocumentValidationResponse,
    EnqueueRequest,
    EnqueueResponse,
    QueueProcessResponse,
    RequeueRequest,
    ValidateDocumentResponse,
    ValidationExecutionResponse,
    ValidationJobResponse,
)

__all__ = [
    "DeadLetterResponse",
    "DocumentValidationResponse",
    "EnqueueRequest",
    "EnqueueResponse",
    "QueueProcessResponse",
    "RequeueRequest",
    "ValidateDocumentResponse",
    "ValidationExecutionResponse",
    "ValidationJobResponse",
]
