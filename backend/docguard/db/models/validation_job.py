"""
ValidationJob — one queued unit of validation work for a document.

Lifecycle:
    pending ──claim──▶ processing ──▶ completed
                          │
                          ├──▶ pending      (attempt+1, next_run_at pushed out)
                          └──▶ dead_letter  (attempts exhausted / fatal error)

The claim is a conditional UPDATE on `status`, so two workers can never
both own the same row.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, Uuid, text

from docguard.core.constants import JobStatus
from docguard.db.models.base import Base, JSONType, generate_uuid, utcnow

ACTIVE_JOB_PREDICATE = "status IN ('pending', 'processing')"


class ValidationJob(Base):
    """Durable, retryable validation job."""

    __tablename__ = "validation_jobs"
    __table_args__ = (
        Index("ix_validation_jobs_status_next_run", "status", "next_run_at"),
        # At most one pending/processing job per document
        Index(
            "uq_validation_jobs_active_document",
            "document_id",
            unique=True,
            postgresql_where=text(ACTIVE_JOB_PREDICATE),
            sqlite_where=text(ACTIVE_JOB_PREDICATE),
        ),
    )

    id = Column(Uuid, primary_key=True, default=generate_uuid)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)

    # ── Scheduling ────────────────────────────
    status = Column(String(50), nullable=False, default=JobStatus.PENDING.value)
    attempt = Column(Integer, nullable=False, default=0)
    max_attempts = Column(Integer, nullable=False, default=5)
    next_run_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # ── Timing ────────────────────────────────
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # ── Error ─────────────────────────────────
    error_message = Column(Text, nullable=True)
    error_details = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ValidationJob {self.id} doc={self.document_id} "
            f"status={self.status} attempt={self.attempt}/{self.max_attempts}>"
        )
