"""
ValidationWorker — drains due ValidationJobs through the pipeline.

One invocation of `process_batch`:

    build pipeline  (ConfigurationError aborts the whole invocation)
        │
    stale `processing` jobs count as a failed attempt → `pending` or dead_letter
        │
    select due job ids (pending, next_run_at <= now, oldest-due first)
        │
    per job, at most QUEUE_CONCURRENCY at a time, each with its own session:
        claim (pending → processing, conditional UPDATE)
        run pipeline under JOB_TIMEOUT_SECONDS
        ├─ ok      → completed
        └─ failed  → pending (attempt+1, backoff) or dead_letter
        │
    QueueProcessingResult

A job that loses the claim race is skipped and not counted.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docguard.core.config import Settings
from docguard.core.constants import DocumentValidationStatus, TriggerSource
from docguard.core.logging import get_logger
from docguard.db.models.base import utcnow
from docguard.jobs.backoff import next_run_time, should_retry
from docguard.pipeline.engine import ValidationPipeline
from docguard.pipeline.errors import PipelineError, StepExecutionError, StepTimeoutError, WorkerLostError
from docguard.repositories import documents as documents_repo
from docguard.repositories import jobs as jobs_repo

logger = get_logger(__name__)

COMPLETED = "completed"
RETRIED = "retried"
DEAD_LETTERED = "dead_lettered"
UNRECORDED = "unrecorded"


@dataclass
class QueueProcessingResult:
    processed: int = 0
    completed: int = 0
    failed: int = 0
    moved_to_dlq: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "completed": self.completed,
            "failed": self.failed,
            "movedToDLQ": self.moved_to_dlq,
            "errors": list(self.errors),
        }


@dataclass
class JobOutcome:
    job_id: uuid.UUID
    outcome: str
    error: str | None = None


class ValidationWorker:
    """
    Bounded-batch queue processor.

    Usage::

        worker = ValidationWorker(settings, async_session)
        result = await worker.process_batch()
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        pipeline_factory: Callable[[Settings], ValidationPipeline] = ValidationPipeline.from_settings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.settings = settings
        self.session_factory = session_factory
        self.pipeline_factory = pipeline_factory
        self.clock = clock

    async def process_batch(self, batch_size: int | None = None) -> QueueProcessingResult:
        """Process up to `batch_size` due jobs.  Raises ConfigurationError before touching any job."""
        batch_size = batch_size or self.settings.QUEUE_BATCH_SIZE
        pipeline = self.pipeline_factory(self.settings)

        now = self.clock()
        async with self.session_factory() as db:
            await self._recover_stale(db, now)
            job_ids = await jobs_repo.get_due_job_ids(db, now=now, limit=batch_size)
            await db.commit()

        result = QueueProcessingResult()
        if not job_ids:
            logger.info("No due validation jobs")
            return result

        logger.info("Processing validation batch", batch_size=batch_size, due=len(job_ids))

        semaphore = asyncio.Semaphore(max(1, self.settings.QUEUE_CONCURRENCY))
        outcomes = await asyncio.gather(
            *(self._guarded(semaphore, pipeline, job_id) for job_id in job_ids)
        )

        for outcome in outcomes:
            if outcome is None:
                continue
            result.processed += 1
            if outcome.outcome == COMPLETED:
                result.completed += 1
                continue
            result.failed += 1
            if outcome.outcome == DEAD_LETTERED:
                result.moved_to_dlq += 1
            result.errors.append(f"Job {outcome.job_id}: {outcome.error}")

        logger.info("Validation batch finished", **result.to_dict())
        return result

    async def _guarded(
        self,
        semaphore: asyncio.Semaphore,
        pipeline: ValidationPipeline,
        job_id: uuid.UUID,
    ) -> JobOutcome | None:
        async with semaphore:
            return await self.process_job(pipeline, job_id)

    async def process_job(self, pipeline: ValidationPipeline, job_id: uuid.UUID) -> JobOutcome | None:
        """Claim and run one job.  Returns None if another worker owns it."""
        async with self.session_factory() as db:
            if not await jobs_repo.claim_job(db, job_id, now=self.clock()):
                await db.rollback()
                logger.info("Job already claimed, skipping", job_id=str(job_id))
                return None
            job = await jobs_repo.get_job(db, job_id)
            document_id, attempt, max_attempts = job.document_id, job.attempt, job.max_attempts
            await db.commit()

        log = logger.bind(job_id=str(job_id), document_id=str(document_id), attempt=attempt)
        log.info("Job claimed")

        try:
            await asyncio.wait_for(
                self._run_pipeline(pipeline, job_id, document_id),
                timeout=self.settings.JOB_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            error: PipelineError = StepTimeoutError(
                f"Job exceeded {self.settings.JOB_TIMEOUT_SECONDS}s",
                timeout_seconds=self.settings.JOB_TIMEOUT_SECONDS,
            )
            await self._flag_for_review(document_id, error, log)
        except PipelineError as exc:
            error = exc
        except Exception as exc:
            log.exception("Unexpected error while validating", error=str(exc))
            error = StepExecutionError(f"Unexpected error: {exc}")
        else:
            return await self._complete(job_id, log)

        return await self._record_failure(job_id, attempt, max_attempts, error, log)

    # ── Internals ──────────────────────────────

    async def _run_pipeline(
        self,
        pipeline: ValidationPipeline,
        job_id: uuid.UUID,
        document_id: uuid.UUID,
    ) -> None:
        async with self.session_factory() as db:
            await pipeline.run(
                db,
                document_id,
                triggered_by=TriggerSource.QUEUE.value,
                job_id=job_id,
            )

    async def _complete(self, job_id: uuid.UUID, log) -> JobOutcome:
        async with self.session_factory() as db:
            await jobs_repo.complete_job(db, job_id, now=self.clock())
            await db.commit()
        log.info("Job completed")
        return JobOutcome(job_id, COMPLETED)

    async def _record_failure(
        self,
        job_id: uuid.UUID,
        attempt: int,
        max_attempts: int,
        error: PipelineError,
        log,
    ) -> JobOutcome:
        """Reschedule with backoff, or dead-letter once attempts run out."""
        now = self.clock()
        new_attempt = attempt + 1

        try:
            async with self.session_factory() as db:
                outcome, next_run_at = await self._retry_or_dead_letter(
                    db, job_id, new_attempt, max_attempts, error, now,
                )
                await db.commit()
        except SQLAlchemyError as db_exc:
            # Job stays `processing`; stale recovery returns it to the queue.
            log.error("Could not record job failure", error=str(error), db_error=str(db_exc))
            return JobOutcome(job_id, UNRECORDED, str(error))

        if outcome == RETRIED:
            log.warning(
                "Job failed, retry scheduled",
                error=str(error),
                error_type=type(error).__name__,
                new_attempt=new_attempt,
                next_run_at=next_run_at.isoformat(),
            )
        else:
            log.error(
                "Job moved to dead letter",
                error=str(error),
                error_type=type(error).__name__,
                new_attempt=new_attempt,
                retryable=error.retryable,
            )
        return JobOutcome(job_id, outcome, str(error))

    async def _retry_or_dead_letter(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        new_attempt: int,
        max_attempts: int,
        error: PipelineError,
        now: datetime,
    ) -> tuple[str, datetime | None]:
        error_details = {
            **error.to_dict(),
            "attempt": new_attempt,
            "max_attempts": max_attempts,
            "failed_at": now.isoformat(),
        }

        if should_retry(new_attempt, max_attempts, error.retryable):
            next_run_at = next_run_time(new_attempt, now)
            await jobs_repo.reschedule_job(
                db,
                job_id,
                attempt=new_attempt,
                next_run_at=next_run_at,
                error_message=str(error),
                error_details=error_details,
                now=now,
            )
            return RETRIED, next_run_at

        job = await jobs_repo.get_job(db, job_id)
        await jobs_repo.dead_letter_job(
            db,
            job,
            attempt=new_attempt,
            error_message=str(error),
            error_details=error_details,
            now=now,
        )
        return DEAD_LETTERED, None

    async def _recover_stale(self, db: AsyncSession, now: datetime) -> None:
        """
        A job still `processing` after QUEUE_STALE_AFTER_SECONDS lost its
        worker.  That run counts as a failed attempt, so a document that
        keeps killing workers ends up in the dead-letter table.
        """
        stale_after = self.settings.QUEUE_STALE_AFTER_SECONDS
        stale = await jobs_repo.get_stale_jobs(db, started_before=now - timedelta(seconds=stale_after))
        if not stale:
            return

        outcomes = {RETRIED: 0, DEAD_LETTERED: 0}
        for job in stale:
            error = WorkerLostError(
                f"Worker lost: job still processing after {stale_after}s",
                details={"started_at": job.started_at.isoformat() if job.started_at else None},
            )
            outcome, _ = await self._retry_or_dead_letter(
                db, job.id, job.attempt + 1, job.max_attempts, error, now,
            )
            outcomes[outcome] += 1

        logger.warning(
            "Recovered stale jobs",
            count=len(stale),
            rescheduled=outcomes[RETRIED],
            dead_lettered=outcomes[DEAD_LETTERED],
        )

    async def _flag_for_review(self, document_id: uuid.UUID, error: PipelineError, log) -> None:
        """A job-level timeout cancels the pipeline before it can record anything itself."""
        try:
            async with self.session_factory() as db:
                await documents_repo.set_validation_status(
                    db,
                    document_id,
                    DocumentValidationStatus.NEEDS_REVIEW.value,
                    validation_metadata={"error": error.to_dict()},
                )
                await db.commit()
        except SQLAlchemyError as db_exc:
            log.error("Could not flag document for review", db_error=str(db_exc))
        log.error("Job timed out", timeout_seconds=self.settings.JOB_TIMEOUT_SECONDS)
