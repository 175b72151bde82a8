"""
Employee — one roster entry of an organization.

Owner matching compares the identity printed on a document against
these rows (exact email first, then fuzzy full-name matching).
"""

from __future__ import annotations

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Uuid

from docguard.db.models.base import Base, generate_uuid, utcnow


class Employee(Base):
    """Roster entry used for owner matching."""

    __tablename__ = "employees"

    id = Column(Uuid, primary_key=True, default=generate_uuid)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)

    full_name = Column(String(255), nullable=True)
    email = Column(String(320), nullable=False, index=True)
    date_of_birth = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Employee {self.id} {self.email}>"
