"""
Document — one employee-submitted file awaiting or holding a validation.

Ingestion (out of scope here) creates these rows.  The validation
pipeline reads the storage location and writes back `validation_status`,
`validation_metadata`, `status` and `content_hash`.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Uuid

from docguard.core.constants import DocumentStatus, DocumentValidationStatus
from docguard.db.models.base import Base, JSONType, generate_uuid, utcnow


class Document(Base):
    """A stored document and its externally visible validation state."""

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_org_content_hash", "organization_id", "content_hash"),
    )

    id = Column(Uuid, primary_key=True, default=generate_uuid)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    storage_config_id = Column(Uuid, ForeignKey("storage_configs.id", ondelete="SET NULL"), nullable=True)
    document_request_id = Column(Uuid, ForeignKey("document_requests.id", ondelete="SET NULL"), nullable=True)

    # ── File ──────────────────────────────────
    storage_path = Column(String(1000), nullable=False)
    original_filename = Column(String(500), nullable=False)
    mime_type = Column(String(100), nullable=True)
    sender_email = Column(String(320), nullable=True)
    content_hash = Column(String(64), nullable=True)

    # ── Status ────────────────────────────────
    status = Column(String(50), nullable=False, default=DocumentStatus.RECEIVED.value)
    validation_status = Column(String(50), nullable=False, default=DocumentValidationStatus.PENDING.value)
    validation_metadata = Column(JSONType, default=dict)

    # ── Timestamps ────────────────────────────
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Document {self.id} {self.original_filename} validation={self.validation_status}>"
