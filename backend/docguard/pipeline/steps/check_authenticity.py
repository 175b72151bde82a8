"""
CheckAuthenticityStep — magic-byte check and content-hash duplicate lookup.

The SHA-256 of the bytes is stored on the document; a duplicate is the
earliest other document in the same organization with the same hash.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from docguard.core.logging import get_logger
from docguard.ingestion.file_fingerprint import compute_content_hash
from docguard.pipeline.context import StepResult, ValidationContext
from docguard.pipeline.step import PipelineStep
from docguard.repositories import documents as documents_repo
from docguard.validation.authenticity_checker import check_authenticity

logger = get_logger(__name__)


class CheckAuthenticityStep(PipelineStep):
    """Validate file format and detect duplicate submissions."""

    name = "check_authenticity"
    description = "Check file format and duplicates"

    def __init__(self, db: AsyncSession, *, timeout: float) -> None:
        self.db = db
        self.timeout = timeout

    async def execute(self, ctx: ValidationContext) -> StepResult:
        started_at = self._now()
        doc = ctx.document

        content_hash = compute_content_hash(ctx.file_bytes)
        ctx.content_hash = content_hash
        await documents_repo.set_content_hash(self.db, doc.id, content_hash)

        duplicate = await documents_repo.find_duplicate(
            self.db,
            organization_id=doc.organization_id,
            content_hash=content_hash,
            exclude_document_id=doc.id,
        )
        if duplicate is not None:
            logger.info(
                "Duplicate submission detected",
                document_id=str(doc.id),
                duplicate_of=str(duplicate.id),
            )

        ctx.authenticity = check_authenticity(
            ctx.file_bytes,
            doc.mime_type,
            content_hash,
            duplicate_of=duplicate.id if duplicate is not None else None,
        )

        return self._success(started_at, metadata={
            "authenticity_score": ctx.authenticity.authenticity_score,
            "format_valid": ctx.authenticity.format_valid,
            "is_duplicate": ctx.authenticity.is_duplicate,
        })
