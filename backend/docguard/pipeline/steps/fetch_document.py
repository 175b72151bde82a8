"""
FetchDocumentStep — downloads the document bytes from its storage provider.

Refreshed credentials are committed as soon as this step succeeds so a
later failure does not roll the new tokens back.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from docguard.core.logging import get_logger
from docguard.ingestion.fetcher import DocumentFetcher
from docguard.pipeline.context import StepResult, ValidationContext
from docguard.pipeline.errors import FetchError
from docguard.pipeline.step import PipelineStep

logger = get_logger(__name__)


class FetchDocumentStep(PipelineStep):
    """Download the raw document from object storage."""

    name = "fetch_document"
    description = "Download document bytes from storage"
    commit_after = True

    def __init__(self, db: AsyncSession, fetcher: DocumentFetcher, *, timeout: float) -> None:
        self.db = db
        self.fetcher = fetcher
        self.timeout = timeout

    async def execute(self, ctx: ValidationContext) -> StepResult:
        started_at = self._now()

        outcome = await self.fetcher.fetch(self.db, ctx.document)
        if not outcome.data:
            raise FetchError(
                "Storage returned an empty file",
                execution_id=str(ctx.execution_id),
                step_name=self.name,
            )

        ctx.file_bytes = outcome.data
        ctx.credentials_refreshed = outcome.credentials_refreshed

        return self._success(started_at, metadata={
            "size_bytes": len(outcome.data),
            "credentials_refreshed": outcome.credentials_refreshed,
        })
