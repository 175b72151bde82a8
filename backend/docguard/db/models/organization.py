"""
Organization — tenant owning employees, documents and storage configs.

`settings` holds per-organization tuning; the validation pipeline reads
`settings["auto_approval"]` for its auto-approval thresholds.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Uuid

from docguard.db.models.base import Base, JSONType, generate_uuid, utcnow


class Organization(Base):
    """A tenant organization."""

    __tablename__ = "organizations"

    id = Column(Uuid, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    settings = Column(JSONType, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Organization {self.id} {self.name}>"
