"""
ValidationPipeline — the orchestrator that validates one document.

Responsibilities:
    - Mark the document `validating` and open a ValidationExecution row
    - Build the step sequence and run each step under its deadline
    - Commit after steps whose writes must survive later failures
    - On success, close the execution row and commit the result
    - On failure, roll back, mark the document `needs_review` with the
      error in its metadata, close the execution row, and re-raise so the
      caller (queue worker or API) can account for the failure
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docguard.core.cipher import Cipher
from docguard.core.config import Settings
from docguard.core.constants import (
    DocumentValidationStatus,
    PipelineStatus,
    StepStatus,
    TriggerSource,
)
from docguard.db.models.base import utcnow
from docguard.ingestion.fetcher import DocumentFetcher
from docguard.ingestion.storage_client import HttpStorageClient, StorageClient
from docguard.pipeline.context import DocumentRef, StepResult, ValidationContext
from docguard.pipeline.errors import (
    DocumentNotFoundError,
    PersistenceError,
    PipelineError,
    StepExecutionError,
    StepTimeoutError,
)
from docguard.pipeline.flow import build_validation_flow
from docguard.pipeline.step import PipelineStep, elapsed_ms
from docguard.processing.classifier import Classifier
from docguard.repositories import documents as documents_repo
from docguard.repositories import executions as executions_repo
from docguard.repositories.directory import Directory, SqlDirectory
from docguard.validation.decision_engine import AutoApprovalThresholds
from docguard.validation.owner_matcher import OwnerMatcher


@dataclass
class PipelineResult:
    """Final outcome of a validation run."""

    execution_id: uuid.UUID
    document_id: uuid.UUID
    status: str                     # PipelineStatus value
    validation_id: uuid.UUID | None = None
    overall_status: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    total_duration_ms: int = 0
    step_results: list[dict[str, Any]] = field(default_factory=list)


class ValidationPipeline:
    """
    Runs the validation flow for one document inside a caller-owned session.

    Usage::

        pipeline = ValidationPipeline.from_settings(settings)
        async with async_session() as db:
            result = await pipeline.run(db, document_id)
    """

    def __init__(
        self,
        settings: Settings,
        *,
        storage: StorageClient,
        classifier: Classifier,
        cipher: Cipher,
        owner_matcher: OwnerMatcher | None = None,
        directory_factory: Callable[[AsyncSession], Directory] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.settings = settings
        self.fetcher = DocumentFetcher(storage, cipher)
        self.classifier = classifier
        self.owner_matcher = owner_matcher or OwnerMatcher.from_settings(settings)
        defaults = AutoApprovalThresholds.from_settings(settings)
        self.directory_factory = directory_factory or (lambda db: SqlDirectory(db, defaults))
        self.clock = clock
        self.logger = structlog.get_logger("pipeline.engine")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ValidationPipeline":
        """Production wiring.  Raises ConfigurationError on missing keys."""
        return cls(
            settings,
            storage=HttpStorageClient(settings),
            classifier=Classifier(settings),
            cipher=Cipher.from_settings(settings),
        )

    async def run(
        self,
        db: AsyncSession,
        document_id: uuid.UUID,
        *,
        triggered_by: str = TriggerSource.MANUAL.value,
        job_id: uuid.UUID | None = None,
    ) -> PipelineResult:
        """Validate one document.  Raises PipelineError on failure."""
        started_at = self.clock()

        document = await documents_repo.get_document(db, document_id)
        if document is None:
            raise DocumentNotFoundError(
                f"Document {document_id} not found",
                details={"document_id": str(document_id)},
            )

        ctx = ValidationContext(
            document=DocumentRef.from_row(document),
            triggered_by=triggered_by,
            job_id=job_id,
        )
        log = self.logger.bind(
            execution_id=str(ctx.execution_id),
            document_id=str(document_id),
            triggered_by=triggered_by,
        )

        # ── Mark running ──────────────────────────────
        await documents_repo.set_validation_status(
            db, document_id, DocumentValidationStatus.VALIDATING.value,
        )
        await executions_repo.start_execution(
            db,
            execution_id=ctx.execution_id,
            document_id=document_id,
            triggered_by=triggered_by,
            started_at=started_at,
            job_id=job_id,
        )
        await db.commit()

        log.info("Validation started", filename=ctx.document.original_filename)

        steps = build_validation_flow(
            db=db,
            settings=self.settings,
            fetcher=self.fetcher,
            classifier=self.classifier,
            directory=self.directory_factory(db),
            owner_matcher=self.owner_matcher,
            today=lambda: self.clock().date(),
        )

        # ── Run steps, then finalise ──────────────────
        try:
            await self.run_steps(db, ctx, steps, log)
            completed_at = self.clock()
            duration_ms = elapsed_ms(started_at, completed_at)
            step_log = [sr.to_dict() for sr in ctx.step_results]
            await self._finalise(db, ctx, completed_at, duration_ms, step_log)
        except PipelineError as exc:
            await self._record_failure(db, ctx, exc, started_at, log)
            raise

        overall = ctx.decision.overall_status.value if ctx.decision else None
        log.info(
            "Validation finished",
            overall_status=overall,
            review_priority=ctx.decision.review_priority.value if ctx.decision else None,
            duration_ms=duration_ms,
        )

        return PipelineResult(
            execution_id=ctx.execution_id,
            document_id=document_id,
            status=PipelineStatus.COMPLETED.value,
            validation_id=ctx.validation_id,
            overall_status=overall,
            started_at=started_at,
            completed_at=completed_at,
            total_duration_ms=duration_ms,
            step_results=step_log,
        )

    async def run_steps(
        self,
        db: AsyncSession,
        ctx: ValidationContext,
        steps: list[PipelineStep],
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        """
        Execute steps in order; the first failure stops the run.

        Typed PipelineErrors propagate unchanged (tagged with the step);
        anything else is wrapped as StepExecutionError.
        """
        for index, step in enumerate(steps, start=1):
            step_log = log.bind(step_name=step.name, step_index=index)
            step_log.info(f"Step {index}/{len(steps)}: {step.description}")
            started_at = self.clock()

            try:
                if step.timeout:
                    result = await asyncio.wait_for(step.execute(ctx), timeout=step.timeout)
                else:
                    result = await step.execute(ctx)
            except asyncio.TimeoutError as exc:
                error = StepTimeoutError(
                    f"Step '{step.name}' exceeded {step.timeout}s",
                    timeout_seconds=step.timeout or 0.0,
                    execution_id=str(ctx.execution_id),
                    step_name=step.name,
                )
                self._append_failure(ctx, step, started_at, error)
                step_log.error("Step timed out", timeout_seconds=step.timeout)
                raise error from exc
            except PipelineError as exc:
                exc.execution_id = exc.execution_id or str(ctx.execution_id)
                exc.step_name = exc.step_name or step.name
                self._append_failure(ctx, step, started_at, exc)
                step_log.error("Step failed, pipeline stopping", error=str(exc), error_type=type(exc).__name__)
                raise
            except Exception as exc:
                step_log.exception("Unexpected error in step", error=str(exc))
                error = StepExecutionError(
                    f"Step '{step.name}' failed: {exc}",
                    execution_id=str(ctx.execution_id),
                    step_name=step.name,
                )
                self._append_failure(ctx, step, started_at, error)
                raise error from exc

            ctx.step_results.append(result)
            step_log.info("Step completed", duration_ms=result.duration_ms, metadata=result.metadata)

            if step.commit_after:
                await db.commit()

    async def _finalise(
        self,
        db: AsyncSession,
        ctx: ValidationContext,
        completed_at: datetime,
        duration_ms: int,
        step_log: list[dict[str, Any]],
    ) -> None:
        """Close the execution row and commit the run.  Database faults become PersistenceError."""
        try:
            await executions_repo.finish_execution(
                db,
                ctx.execution_id,
                status=PipelineStatus.COMPLETED.value,
                completed_at=completed_at,
                duration_ms=duration_ms,
                execution_log=step_log,
                model=ctx.classification.model if ctx.classification else None,
                validation_result_id=ctx.validation_id,
            )
            await db.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Could not finalise validation: {exc}",
                execution_id=str(ctx.execution_id),
                step_name="finalise",
            ) from exc

    def _append_failure(
        self,
        ctx: ValidationContext,
        step: PipelineStep,
        started_at: datetime,
        error: PipelineError,
    ) -> None:
        now = self.clock()
        ctx.step_results.append(StepResult(
            step_name=step.name,
            status=StepStatus.FAILED,
            started_at=started_at,
            completed_at=now,
            duration_ms=elapsed_ms(started_at, now),
            error=str(error),
        ))
        ctx.add_error(f"Step '{step.name}' failed: {error}")

    async def _record_failure(
        self,
        db: AsyncSession,
        ctx: ValidationContext,
        exc: PipelineError,
        started_at: datetime,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        """Best effort: flag the document for review and close the execution row."""
        await db.rollback()

        completed_at = self.clock()
        error = exc.to_dict()
        status = (
            PipelineStatus.TIMEOUT if isinstance(exc, StepTimeoutError) else PipelineStatus.FAILED
        )

        try:
            await documents_repo.set_validation_status(
                db,
                ctx.document_id,
                DocumentValidationStatus.NEEDS_REVIEW.value,
                validation_metadata={"error": error, "execution_id": str(ctx.execution_id)},
            )
            await executions_repo.finish_execution(
                db,
                ctx.execution_id,
                status=status.value,
                completed_at=completed_at,
                duration_ms=elapsed_ms(started_at, completed_at),
                execution_log=[sr.to_dict() for sr in ctx.step_results],
                model=ctx.classification.model if ctx.classification else None,
                error_summary=str(exc),
                error_details=error,
            )
            await db.commit()
        except SQLAlchemyError as db_exc:
            await db.rollback()
            log.error("Could not record validation failure", error=str(db_exc))

        log.error(
            "Validation failed",
            error=str(exc),
            error_type=type(exc).__name__,
            step_name=exc.step_name,
            retryable=exc.retryable,
        )
