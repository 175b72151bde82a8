"""
Validation flow — the ordered step sequence for one document.

    fetch → classify → match owner → expiry → authenticity → compliance
          → decide → persist

Steps are built per run because they hold the run's database session.
"""

from __future__ import annotations

from datetime import date
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from docguard.core.config import Settings
from docguard.ingestion.fetcher import DocumentFetcher
from docguard.pipeline.step import PipelineStep
from docguard.pipeline.steps.analyze_expiry import AnalyzeExpiryStep
from docguard.pipeline.steps.check_authenticity import CheckAuthenticityStep
from docguard.pipeline.steps.check_compliance import CheckComplianceStep
from docguard.pipeline.steps.classify_document import ClassifyDocumentStep
from docguard.pipeline.steps.decide import DecideStep
from docguard.pipeline.steps.fetch_document import FetchDocumentStep
from docguard.pipeline.steps.match_owner import MatchOwnerStep
from docguard.pipeline.steps.persist_validation import PersistValidationStep
from docguard.processing.classifier import Classifier
from docguard.repositories.directory import Directory
from docguard.validation.owner_matcher import OwnerMatcher


def build_validation_flow(
    *,
    db: AsyncSession,
    settings: Settings,
    fetcher: DocumentFetcher,
    classifier: Classifier,
    directory: Directory,
    owner_matcher: OwnerMatcher,
    today: Callable[[], date],
) -> list[PipelineStep]:
    stage_timeout = settings.STAGE_TIMEOUT_SECONDS
    return [
        FetchDocumentStep(db, fetcher, timeout=settings.FETCH_TIMEOUT_SECONDS),
        ClassifyDocumentStep(classifier),
        MatchOwnerStep(directory, owner_matcher, timeout=stage_timeout),
        AnalyzeExpiryStep(today=today, timeout=stage_timeout),
        CheckAuthenticityStep(db, timeout=stage_timeout),
        CheckComplianceStep(directory, timeout=stage_timeout),
        DecideStep(directory, timeout=stage_timeout),
        PersistValidationStep(db, timeout=stage_timeout),
    ]
