"""
ValidationJob repository — queue state transitions and the dead-letter table.

Every transition out of `processing` is guarded by the current status in
the WHERE clause, so a job can only be finished by the worker that
claimed it.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from docguard.core.constants import JobStatus
from docguard.db.models.validation_dead_letter import ValidationDeadLetter
from docguard.db.models.validation_job import ValidationJob

_OWNED = (JobStatus.PENDING.value, JobStatus.PROCESSING.value)


class ActiveJobExistsError(Exception):
    """The document already has a pending or processing job."""

    def __init__(self, job: ValidationJob) -> None:
        self.job = job
        super().__init__(f"Document {job.document_id} already has active job {job.id}")


# ── Enqueue ───────────────────────────────────

async def get_active_job_for_document(db: AsyncSession, document_id: uuid.UUID) -> ValidationJob | None:
    """The pending/processing job for a document, if any."""
    stmt = (
        select(ValidationJob)
        .where(ValidationJob.document_id == document_id, ValidationJob.status.in_(_OWNED))
        .order_by(ValidationJob.created_at.asc())
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def enqueue_job(
    db: AsyncSession,
    document_id: uuid.UUID,
    *,
    max_attempts: int,
    now: datetime,
) -> tuple[ValidationJob, bool]:
    """
    Create a pending job for `document_id` unless one is already active.

    Returns (job, created).  Two concurrent callers can both miss the
    lookup; the loser hits uq_validation_jobs_active_document, which rolls
    back the session, and gets the winner's job back.
    """
    existing = await get_active_job_for_document(db, document_id)
    if existing is not None:
        return existing, False

    job = ValidationJob(
        document_id=document_id,
        status=JobStatus.PENDING.value,
        attempt=0,
        max_attempts=max_attempts,
        next_run_at=now,
        created_at=now,
        updated_at=now,
    )
    db.add(job)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        existing = await get_active_job_for_document(db, document_id)
        if existing is None:
            raise
        return existing, False
    return job, True


# ── Worker transitions ────────────────────────

async def get_job(db: AsyncSession, job_id: uuid.UUID) -> ValidationJob | None:
    return await db.get(ValidationJob, job_id)


async def get_due_job_ids(db: AsyncSession, *, now: datetime, limit: int) -> list[uuid.UUID]:
    """Pending jobs whose next_run_at has passed, oldest-due first."""
    stmt = (
        select(ValidationJob.id)
        .where(
            ValidationJob.status == JobStatus.PENDING.value,
            ValidationJob.next_run_at <= now,
        )
        .order_by(ValidationJob.next_run_at.asc(), ValidationJob.created_at.asc())
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def claim_job(db: AsyncSession, job_id: uuid.UUID, *, now: datetime) -> bool:
    """
    Atomically move a job from pending to processing.

    Returns False when another worker got there first (zero rows updated).
    """
    result = await db.execute(
        update(ValidationJob)
        .where(
            ValidationJob.id == job_id,
            ValidationJob.status == JobStatus.PENDING.value,
            ValidationJob.next_run_at <= now,
        )
        .values(status=JobStatus.PROCESSING.value, started_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    return result.rowcount == 1


async def complete_job(db: AsyncSession, job_id: uuid.UUID, *, now: datetime) -> bool:
    result = await db.execute(
        update(ValidationJob)
        .where(ValidationJob.id == job_id, ValidationJob.status == JobStatus.PROCESSING.value)
        .values(
            status=JobStatus.COMPLETED.value,
            completed_at=now,
            updated_at=now,
            error_message=None,
            error_details=None,
        )
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    return result.rowcount == 1


async def reschedule_job(
    db: AsyncSession,
    job_id: uuid.UUID,
    *,
    attempt: int,
    next_run_at: datetime,
    error_message: str,
    error_details: dict[str, Any],
    now: datetime,
) -> bool:
    """processing -> pending with a bumped attempt and a later next_run_at."""
    result = await db.execute(
        update(ValidationJob)
        .where(ValidationJob.id == job_id, ValidationJob.status == JobStatus.PROCESSING.value)
        .values(
            status=JobStatus.PENDING.value,
            attempt=attempt,
            next_run_at=next_run_at,
            error_message=error_message,
            error_details=error_details,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    return result.rowcount == 1


async def dead_letter_job(
    db: AsyncSession,
    job: ValidationJob,
    *,
    attempt: int,
    error_message: str,
    error_details: dict[str, Any],
    now: datetime,
) -> ValidationDeadLetter | None:
    """processing -> dead_letter, plus a dead-letter record for operators."""
    result = await db.execute(
        update(ValidationJob)
        .where(ValidationJob.id == job.id, ValidationJob.status == JobStatus.PROCESSING.value)
        .values(
            status=JobStatus.DEAD_LETTER.value,
            attempt=attempt,
            completed_at=now,
            error_message=error_message,
            error_details=error_details,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None

    entry = ValidationDeadLetter(
        job_id=job.id,
        document_id=job.document_id,
        final_attempt=attempt,
        final_error_message=error_message,
        final_error_details=error_details,
        created_at=now,
    )
    db.add(entry)
    await db.flush()
    return entry


async def get_stale_jobs(db: AsyncSession, *, started_before: datetime) -> list[ValidationJob]:
    """Processing jobs claimed before `started_before` (worker died mid-run)."""
    stmt = (
        select(ValidationJob)
        .where(
            ValidationJob.status == JobStatus.PROCESSING.value,
            ValidationJob.started_at < started_before,
        )
        .order_by(ValidationJob.started_at.asc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


# ── Listing / operator actions ────────────────

async def list_jobs(
    db: AsyncSession,
    *,
    status: str | None = None,
    limit: int = 50,
) -> list[ValidationJob]:
    stmt = select(ValidationJob)
    if status:
        stmt = stmt.where(ValidationJob.status == status)
    stmt = stmt.order_by(ValidationJob.created_at.desc()).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_dead_letters(
    db: AsyncSession,
    *,
    unresolved_only: bool = True,
    limit: int = 50,
) -> list[ValidationDeadLetter]:
    stmt = select(ValidationDeadLetter)
    if unresolved_only:
        stmt = stmt.where(ValidationDeadLetter.resolved_at.is_(None))
    stmt = stmt.order_by(ValidationDeadLetter.created_at.desc()).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def requeue_dead_letter(
    db: AsyncSession,
    dead_letter_id: uuid.UUID,
    *,
    now: datetime,
    resolved_by: str = "operator",
    notes: str | None = None,
) -> ValidationJob | None:
    """
    Put a dead-lettered job back in the queue with a fresh attempt budget
    and mark the dead-letter entry resolved.  Returns None if the entry
    does not exist or is already resolved.

    Raises ActiveJobExistsError when the document was queued again while
    this job sat in the dead-letter table.
    """
    entry = await db.get(ValidationDeadLetter, dead_letter_id)
    if entry is None or entry.resolved_at is not None:
        return None

    job = await db.get(ValidationJob, entry.job_id)
    if job is None:
        return None

    active = await get_active_job_for_document(db, entry.document_id)
    if active is not None and active.id != job.id:
        raise ActiveJobExistsError(active)

    job.status = JobStatus.PENDING.value
    job.attempt = 0
    job.next_run_at = now
    job.started_at = None
    job.completed_at = None
    job.updated_at = now

    entry.resolved_at = now
    entry.resolved_by = resolved_by
    entry.resolution_notes = notes or "requeued"

    await db.flush()
    return job
