"""ValidationExecution repository — audit rows for pipeline runs."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docguard.core.constants import PipelineStatus
from docguard.db.models.validation_execution import ValidationExecution


async def start_execution(
    db: AsyncSession,
    *,
    execution_id: uuid.UUID,
    document_id: uuid.UUID,
    triggered_by: str,
    started_at: datetime,
    job_id: uuid.UUID | None = None,
) -> ValidationExecution:
    execution = ValidationExecution(
        id=execution_id,
        document_id=document_id,
        job_id=job_id,
        triggered_by=triggered_by,
        status=PipelineStatus.RUNNING.value,
        started_at=started_at,
    )
    db.add(execution)
    await db.flush()
    return execution


async def finish_execution(
    db: AsyncSession,
    execution_id: uuid.UUID,
    *,
    status: str,
    completed_at: datetime,
    duration_ms: int,
    execution_log: list[dict[str, Any]],
    model: str | None = None,
    validation_result_id: uuid.UUID | None = None,
    error_summary: str | None = None,
    error_details: dict[str, Any] | None = None,
) -> ValidationExecution | None:
    """Close an execution row.  Returns None if the row vanished (rolled back)."""
    execution = await db.get(ValidationExecution, execution_id)
    if execution is None:
        return None
    execution.status = status
    execution.completed_at = completed_at
    execution.duration_ms = duration_ms
    execution.execution_log = execution_log
    execution.model = model
    execution.validation_result_id = validation_result_id
    execution.error_summary = error_summary
    execution.error_details = error_details
    await db.flush()
    return execution


async def list_executions_for_document(
    db: AsyncSession,
    document_id: uuid.UUID,
    *,
    limit: int = 20,
) -> list[ValidationExecution]:
    stmt = (
        select(ValidationExecution)
        .where(ValidationExecution.document_id == document_id)
        .order_by(ValidationExecution.started_at.desc())
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
