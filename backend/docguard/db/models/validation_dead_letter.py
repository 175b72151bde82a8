"""
ValidationDeadLetter — terminal failure record for manual inspection.

Written when a job is dead-lettered.  Resolution fields are filled when
an operator requeues (or otherwise handles) the entry.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, Uuid

from docguard.db.models.base import Base, JSONType, generate_uuid, utcnow


class ValidationDeadLetter(Base):
    """A dead-lettered validation job."""

    __tablename__ = "validation_dead_letters"

    id = Column(Uuid, primary_key=True, default=generate_uuid)
    job_id = Column(Uuid, ForeignKey("validation_jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)

    final_attempt = Column(Integer, nullable=False)
    final_error_message = Column(Text, nullable=True)
    final_error_details = Column(JSONType, nullable=True)

    # ── Resolution ────────────────────────────
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolved_by = Column(String(255), nullable=True)
    resolution_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<ValidationDeadLetter {self.id} job={self.job_id} resolved={self.resolved_at is not None}>"
