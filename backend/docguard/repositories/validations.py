"""
DocumentValidation repository — one result row per document.

`upsert_validation` is the only writer: it updates the existing row for
the document or inserts a new one, so re-running the pipeline never
creates duplicates.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docguard.core.logging import get_logger
from docguard.db.models.base import utcnow
from docguard.db.models.document_validation import DocumentValidation
from docguard.pipeline.errors import PersistenceError

logger = get_logger(__name__)


async def get_validation_by_document(db: AsyncSession, document_id: uuid.UUID) -> DocumentValidation | None:
    stmt = select(DocumentValidation).where(DocumentValidation.document_id == document_id)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def upsert_validation(
    db: AsyncSession,
    document_id: uuid.UUID,
    values: dict[str, Any],
) -> DocumentValidation:
    """
    Insert or overwrite the validation row for `document_id`.

    `values` maps column attribute names (use `metadata_` for the
    metadata column) to their new values.  Raises PersistenceError on
    any database failure.
    """
    try:
        row = await get_validation_by_document(db, document_id)
        if row is None:
            row = DocumentValidation(document_id=document_id)
            db.add(row)
            created = True
        else:
            created = False

        for key, value in values.items():
            setattr(row, key, value)
        row.validated_at = utcnow()

        await db.flush()
    except SQLAlchemyError as exc:
        raise PersistenceError(
            f"Failed to persist validation for document {document_id}: {exc}",
            details={"document_id": str(document_id)},
        ) from exc

    logger.info(
        "Validation persisted",
        document_id=str(document_id),
        validation_id=str(row.id),
        created=created,
    )
    return row
