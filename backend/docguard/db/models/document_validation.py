"""
DocumentValidation — persisted outcome of running the pipeline on a document.

Exactly one row per document (unique `document_id`); re-running the
pipeline overwrites it in place.  `metadata_` keeps every intermediate
signal for audit.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Uuid

from docguard.db.models.base import Base, JSONType, generate_uuid, utcnow


class DocumentValidation(Base):
    """Validation result for one document."""

    __tablename__ = "document_validations"

    id = Column(Uuid, primary_key=True, default=generate_uuid)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, unique=True)

    # ── Classification ────────────────────────
    document_type = Column(String(100), nullable=True)
    document_type_confidence = Column(Float, nullable=True)
    issuing_country = Column(String(100), nullable=True)
    document_number = Column(String(255), nullable=True)

    # ── Owner match ───────────────────────────
    matched_employee_id = Column(Uuid, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    name_match_score = Column(Float, nullable=True)
    dob_match = Column(Boolean, nullable=True)
    owner_match_confidence = Column(Float, nullable=True)

    # ── Expiry ────────────────────────────────
    expiry_date = Column(Date, nullable=True)
    issue_date = Column(Date, nullable=True)
    expiry_status = Column(String(50), nullable=True)
    days_until_expiry = Column(Integer, nullable=True)

    # ── Authenticity ──────────────────────────
    authenticity_score = Column(Float, nullable=True)
    image_quality_score = Column(Float, nullable=True)
    is_duplicate = Column(Boolean, nullable=False, default=False)
    duplicate_of_document_id = Column(Uuid, ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)

    # ── Compliance ────────────────────────────
    matches_request_type = Column(Boolean, nullable=True)
    request_compliance_score = Column(Float, nullable=True)

    # ── Decision ──────────────────────────────
    overall_status = Column(String(50), nullable=False)
    can_auto_approve = Column(Boolean, nullable=False, default=False)
    requires_admin_review = Column(Boolean, nullable=False, default=True)
    review_priority = Column(String(20), nullable=False)

    metadata_ = Column("metadata", JSONType, default=dict)

    validated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<DocumentValidation doc={self.document_id} status={self.overall_status} priority={self.review_priority}>"
