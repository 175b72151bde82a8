"""
Document repository — documents and the storage configs they live in.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docguard.db.models.base import utcnow
from docguard.db.models.document import Document
from docguard.db.models.storage_config import StorageConfig


async def get_document(db: AsyncSession, document_id: uuid.UUID) -> Document | None:
    """Fetch a document by primary key."""
    return await db.get(Document, document_id)


async def set_validation_status(
    db: AsyncSession,
    document_id: uuid.UUID,
    validation_status: str,
    *,
    status: str | None = None,
    validation_metadata: dict[str, Any] | None = None,
) -> None:
    """Update the externally visible validation state of a document."""
    values: dict[str, Any] = {"validation_status": validation_status, "updated_at": utcnow()}
    if status is not None:
        values["status"] = status
    if validation_metadata is not None:
        values["validation_metadata"] = validation_metadata
    await db.execute(
        update(Document)
        .where(Document.id == document_id)
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )
    await db.flush()


async def set_content_hash(db: AsyncSession, document_id: uuid.UUID, content_hash: str) -> None:
    await db.execute(
        update(Document)
        .where(Document.id == document_id)
        .values(content_hash=content_hash)
        .execution_options(synchronize_session="fetch")
    )
    await db.flush()


async def find_duplicate(
    db: AsyncSession,
    *,
    organization_id: uuid.UUID,
    content_hash: str,
    exclude_document_id: uuid.UUID,
) -> Document | None:
    """Earliest other document in the organization with the same content hash."""
    stmt = (
        select(Document)
        .where(
            Document.organization_id == organization_id,
            Document.content_hash == content_hash,
            Document.id != exclude_document_id,
        )
        .order_by(Document.created_at.asc(), Document.id.asc())
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_storage_config(db: AsyncSession, storage_config_id: uuid.UUID | None) -> StorageConfig | None:
    if storage_config_id is None:
        return None
    return await db.get(StorageConfig, storage_config_id)


async def update_storage_config(
    db: AsyncSession,
    storage_config: StorageConfig,
    config: dict[str, Any],
) -> StorageConfig:
    """Replace a storage config's JSON (used after a credential refresh)."""
    storage_config.config = config
    storage_config.updated_at = utcnow()
    await db.flush()
    return storage_config
