"""
Celery tasks — validation queue and single-document validation.

`process_validation_queue` is run by beat every minute and drains one
batch of due ValidationJobs.  `validate_document` runs the pipeline for
one document outside the queue (manual trigger).

Each task runs its coroutine with asyncio.run on a fresh engine, disposed
afterwards, so no connection outlives the event loop that opened it.
"""

import asyncio
import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docguard.core.config import get_settings
from docguard.core.constants import TriggerSource
from docguard.db.session import make_engine
from docguard.jobs.worker import ValidationWorker
from docguard.pipeline.engine import ValidationPipeline
from docguard.tasks import celery_app

logger = structlog.get_logger("tasks.validation")


async def _process_queue(batch_size: int | None) -> dict:
    settings = get_settings()
    engine = make_engine(settings.DATABASE_URL)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        worker = ValidationWorker(settings, factory)
        result = await worker.process_batch(batch_size)
        return result.to_dict()
    finally:
        await engine.dispose()


async def _validate_document(document_id: str) -> dict:
    settings = get_settings()
    engine = make_engine(settings.DATABASE_URL)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        pipeline = ValidationPipeline.from_settings(settings)
        async with factory() as db:
            result = await pipeline.run(
                db,
                uuid.UUID(document_id),
                triggered_by=TriggerSource.MANUAL.value,
            )
        return {
            "execution_id": str(result.execution_id),
            "document_id": document_id,
            "status": result.status,
            "overall_status": result.overall_status,
            "duration_ms": result.total_duration_ms,
        }
    finally:
        await engine.dispose()


@celery_app.task(bind=True, name="docguard.tasks.validation_tasks.process_validation_queue")
def process_validation_queue(self, batch_size: int | None = None):
    """Drain one batch of due validation jobs."""
    task_log = logger.bind(task_id=self.request.id, batch_size=batch_size)
    task_log.info("Queue processing task started")

    summary = asyncio.run(_process_queue(batch_size))

    task_log.info("Queue processing task finished", **summary)
    return summary


@celery_app.task(bind=True, name="docguard.tasks.validation_tasks.validate_document")
def validate_document(self, document_id: str):
    """
    Validate one document immediately.

    Pipeline failures are re-raised so the task is marked FAILURE; the
    document itself has already been flagged `needs_review` by then.
    """
    task_log = logger.bind(task_id=self.request.id, document_id=document_id)
    task_log.info("Validation task started")

    try:
        result = asyncio.run(_validate_document(document_id))
    except Exception as exc:
        task_log.error("Validation task failed", error=str(exc), error_type=type(exc).__name__)
        raise

    task_log.info("Validation task finished", overall_status=result["overall_status"])
    return result
