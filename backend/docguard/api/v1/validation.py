"""
Validation queue endpoints — batch processing, enqueue, dead-letter handling.

All routes here are service-to-service and sit behind the service token.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from docguard.api.deps import get_app_settings, get_db, get_worker, require_service_token
from docguard.api.schemas import (
    DeadLetterResponse,
    EnqueueRequest,
    EnqueueResponse,
    QueueProcessResponse,
    RequeueRequest,
    ValidationJobResponse,
)
from docguard.core.config import Settings
from docguard.core.constants import JobStatus
from docguard.core.logging import get_logger
from docguard.db.models.base import utcnow
from docguard.jobs.worker import ValidationWorker
from docguard.pipeline.errors import ConfigurationError
from docguard.repositories import documents as documents_repo
from docguard.repositories import jobs as jobs_repo

logger = get_logger(__name__)

router = APIRouter(
    prefix="/validation",
    tags=["Validation"],
    dependencies=[Depends(require_service_token)],
)


# ─── Queue ────────────────────────────────────────────────
@router.post("/queue/process", response_model=QueueProcessResponse, response_model_by_alias=True)
async def process_queue(
    batch_size: int | None = Query(None, alias="batchSize", ge=1, le=100),
    worker: ValidationWorker = Depends(get_worker),
):
    """Drain one batch of due validation jobs."""
    try:
        result = await worker.process_batch(batch_size)
    except ConfigurationError as exc:
        logger.error("Queue processing aborted", error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(exc)},
        )

    return QueueProcessResponse(
        processed=result.processed,
        completed=result.completed,
        failed=result.failed,
        moved_to_dlq=result.moved_to_dlq,
        errors=result.errors,
        timestamp=utcnow(),
    )


# ─── Jobs ─────────────────────────────────────────────────
@router.post("/jobs", response_model=EnqueueResponse, status_code=status.HTTP_202_ACCEPTED)
async def enqueue_validation(
    body: EnqueueRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Queue a document for validation unless it already has an active job."""
    document = await documents_repo.get_document(db, body.document_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    job, created = await jobs_repo.enqueue_job(
        db,
        body.document_id,
        max_attempts=settings.QUEUE_MAX_ATTEMPTS,
        now=utcnow(),
    )
    logger.info("Validation enqueued", document_id=str(body.document_id), job_id=str(job.id), created=created)
    return EnqueueResponse(created=created, job=ValidationJobResponse.model_validate(job))


@router.get("/jobs", response_model=list[ValidationJobResponse])
async def list_validation_jobs(
    status_filter: JobStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    jobs = await jobs_repo.list_jobs(
        db,
        status=status_filter.value if status_filter else None,
        limit=limit,
    )
    return [ValidationJobResponse.model_validate(j) for j in jobs]


# ─── Dead letters ─────────────────────────────────────────
@router.get("/dead-letters", response_model=list[DeadLetterResponse])
async def list_dead_letters(
    include_resolved: bool = Query(False, alias="includeResolved"),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Unresolved dead-letter entries, newest first."""
    entries = await jobs_repo.list_dead_letters(db, unresolved_only=not include_resolved, limit=limit)
    return [DeadLetterResponse.model_validate(e) for e in entries]


@router.post("/dead-letters/{dead_letter_id}/requeue", response_model=ValidationJobResponse)
async def requeue_dead_letter(
    dead_letter_id: UUID,
    body: RequeueRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Put a dead-lettered job back in the queue with a fresh attempt budget."""
    body = body or RequeueRequest()
    try:
        job = await jobs_repo.requeue_dead_letter(
            db,
            dead_letter_id,
            now=utcnow(),
            resolved_by=body.resolved_by,
            notes=body.notes,
        )
    except jobs_repo.ActiveJobExistsError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Document already has an active job ({exc.job.id})",
        ) from exc
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Dead-letter entry not found or already resolved",
        )
    logger.info("Dead letter requeued", dead_letter_id=str(dead_letter_id), job_id=str(job.id))
    return ValidationJobResponse.model_validate(job)
