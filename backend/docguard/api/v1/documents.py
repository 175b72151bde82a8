"""Document validation endpoints — manual trigger and result lookup."""

from __future__ import annotations

from typing import Callable
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from docguard.api.deps import get_app_settings, get_db, get_pipeline_factory, require_service_token
from docguard.api.schemas import (
    DocumentValidationResponse,
    ValidateDocumentResponse,
    ValidationExecutionResponse,
)
from docguard.core.config import Settings
from docguard.core.constants import TriggerSource
from docguard.core.logging import get_logger
from docguard.pipeline.engine import ValidationPipeline
from docguard.pipeline.errors import DocumentNotFoundError, PipelineError
from docguard.repositories import executions as executions_repo
from docguard.repositories import validations as validations_repo

logger = get_logger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


@router.post(
    "/{document_id}/validate",
    response_model=ValidateDocumentResponse,
    dependencies=[Depends(require_service_token)],
)
async def validate_document(
    document_id: UUID,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    pipeline_factory: Callable[[Settings], ValidationPipeline] = Depends(get_pipeline_factory),
):
    """
    Run the validation pipeline for one document right now.

    The document is marked `needs_review` by the pipeline itself when a
    run fails; the caller only gets the error string.
    """
    try:
        pipeline = pipeline_factory(settings)
        result = await pipeline.run(db, document_id, triggered_by=TriggerSource.MANUAL.value)
    except DocumentNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found") from None
    except PipelineError as exc:
        logger.error("Manual validation failed", document_id=str(document_id), error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(exc)},
        )

    return ValidateDocumentResponse(
        success=True,
        message="Validation completed",
        execution_id=result.execution_id,
        overall_status=result.overall_status,
    )


@router.get("/{document_id}/validation", response_model=DocumentValidationResponse)
async def get_document_validation(document_id: UUID, db: AsyncSession = Depends(get_db)):
    """The persisted validation result for a document."""
    validation = await validations_repo.get_validation_by_document(db, document_id)
    if validation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Validation not found")
    return DocumentValidationResponse.model_validate(validation)


@router.get("/{document_id}/executions", response_model=list[ValidationExecutionResponse])
async def list_document_executions(
    document_id: UUID,
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    executions = await executions_repo.list_executions_for_document(db, document_id, limit=limit)
    return [ValidationExecutionResponse.model_validate(e) for e in executions]
