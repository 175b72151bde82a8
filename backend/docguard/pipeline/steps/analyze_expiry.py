"""AnalyzeExpiryStep — expiry status from the classified dates."""

from __future__ import annotations

from datetime import date
from typing import Callable

from docguard.pipeline.context import StepResult, ValidationContext
from docguard.pipeline.step import PipelineStep
from docguard.validation.expiry_analyzer import analyze_expiry


class AnalyzeExpiryStep(PipelineStep):
    name = "analyze_expiry"
    description = "Classify document expiry"

    def __init__(self, *, today: Callable[[], date], timeout: float) -> None:
        self.today = today
        self.timeout = timeout

    async def execute(self, ctx: ValidationContext) -> StepResult:
        started_at = self._now()
        classification = ctx.classification

        ctx.expiry = analyze_expiry(
            classification.expiry_date if classification else None,
            classification.issue_date if classification else None,
            today=self.today(),
        )

        return self._success(started_at, metadata={
            "expiry_status": ctx.expiry.expiry_status.value,
            "days_until_expiry": ctx.expiry.days_until_expiry,
        })
