"""
ValidationExecution — audit log of every pipeline run.

One row per run, with the full step-by-step log stored as JSON.  Rows
are never updated after the run finishes.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, Uuid

from docguard.core.constants import PipelineStatus
from docguard.db.models.base import Base, JSONType, generate_uuid, utcnow


class ValidationExecution(Base):
    """Tracks a single validation run with its step log."""

    __tablename__ = "validation_executions"

    id = Column(Uuid, primary_key=True, default=generate_uuid)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    job_id = Column(Uuid, ForeignKey("validation_jobs.id", ondelete="SET NULL"), nullable=True)
    validation_result_id = Column(Uuid, ForeignKey("document_validations.id", ondelete="SET NULL"), nullable=True)

    # Overall status
    status = Column(String(50), nullable=False, default=PipelineStatus.RUNNING.value)
    triggered_by = Column(String(50), nullable=False)
    model = Column(String(100), nullable=True)

    # Timing
    started_at = Column(DateTime(timezone=True), default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    duration_ms = Column(Integer, nullable=True)

    # Error tracking
    error_summary = Column(Text, nullable=True)
    error_details = Column(JSONType, nullable=True)

    # Step results, in execution order
    execution_log = Column(JSONType, default=list)

    def __repr__(self) -> str:
        return f"<ValidationExecution {self.id} doc={self.document_id} status={self.status}>"
