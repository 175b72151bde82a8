"""
StorageConfig — where an organization's documents are stored.

`config` is provider-specific JSON.  OAuth-backed providers keep their
tokens encrypted (`encrypted_access_token`, `encrypted_refresh_token`);
the DocumentFetcher rewrites them after a credential refresh.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid

from docguard.db.models.base import Base, JSONType, generate_uuid, utcnow


class StorageConfig(Base):
    """Storage provider + credentials for one organization."""

    __tablename__ = "storage_configs"

    id = Column(Uuid, primary_key=True, default=generate_uuid)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)

    provider = Column(String(50), nullable=False)   # supabase | onedrive | google_drive
    config = Column(JSONType, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<StorageConfig {self.id} provider={self.provider}>"
