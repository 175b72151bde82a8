"""
DocumentRequest — the request an employee answered by sending a document.

Only `request_type` matters to validation: it is the type the submitted
document must match.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid

from docguard.db.models.base import Base, generate_uuid, utcnow


class DocumentRequest(Base):
    """An outgoing request for a specific document type."""

    __tablename__ = "document_requests"

    id = Column(Uuid, primary_key=True, default=generate_uuid)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)

    request_type = Column(String(255), nullable=True)
    subject = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<DocumentRequest {self.id} type={self.request_type}>"
