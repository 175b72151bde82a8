"""Validation, queue and dead-letter request/response schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DocumentValidationResponse(BaseModel):
    """Persisted validation result for one document."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    document_id: uuid.UUID

    document_type: str | None
    document_type_confidence: float | None
    issuing_country: str | None
    document_number: str | None

    matched_employee_id: uuid.UUID | None
    name_match_score: float | None
    dob_match: bool | None
    owner_match_confidence: float | None

    expiry_date: date | None
    issue_date: date | None
    expiry_status: str | None
    days_until_expiry: int | None

    authenticity_score: float | None
    image_quality_score: float | None
    is_duplicate: bool
    duplicate_of_document_id: uuid.UUID | None

    matches_request_type: bool | None
    request_compliance_score: float | None

    overall_status: str
    can_auto_approve: bool
    requires_admin_review: bool
    review_priority: str

    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="metadata_")
    validated_at: datetime


class ValidationExecutionResponse(BaseModel):
    """One pipeline run with its step log."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    document_id: uuid.UUID
    job_id: uuid.UUID | None
    validation_result_id: uuid.UUID | None
    status: str
    triggered_by: str
    model: str | None
    started_at: datetime | None
    completed_at: datetime | None
    duration_ms: int | None
    error_summary: str | None
    error_details: dict[str, Any] | None
    execution_log: list[dict[str, Any]] = Field(default_factory=list)


class ValidateDocumentResponse(BaseModel):
    success: bool
    message: str
    execution_id: uuid.UUID | None = None
    overall_status: str | None = None


class QueueProcessResponse(BaseModel):
    """Aggregate counts for one queue batch; keys match the worker summary."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    processed: int
    completed: int
    failed: int
    moved_to_dlq: int = Field(..., alias="movedToDLQ")
    errors: list[str] = Field(default_factory=list)
    timestamp: datetime


class EnqueueRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_id: uuid.UUID = Field(..., alias="documentId")


class ValidationJobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    document_id: uuid.UUID
    status: str
    attempt: int
    max_attempts: int
    next_run_at: datetime
    started_at: datetime | None
    completed_at: datetime | None
    error_message: str | None
    error_details: dict[str, Any] | None
    created_at: datetime


class EnqueueResponse(BaseModel):
    created: bool
    job: ValidationJobResponse


class DeadLetterResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    job_id: uuid.UUID
    document_id: uuid.UUID
    final_attempt: int
    final_error_message: str | None
    final_error_details: dict[str, Any] | None
    resolved_at: datetime | None
    resolved_by: str | None
    resolution_notes: str | None
    created_at: datetime


class RequeueRequest(BaseModel):
    resolved_by: str = Field("operator", min_length=1, max_length=255)
    notes: str | None = Field(None, max_length=2000)
