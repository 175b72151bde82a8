"""MatchOwnerStep — finds the roster member the document belongs to."""

from __future__ import annotations

from docguard.pipeline.context import StepResult, ValidationContext
from docguard.pipeline.step import PipelineStep
from docguard.repositories.directory import Directory
from docguard.validation.owner_matcher import OwnerMatcher


class MatchOwnerStep(PipelineStep):
    """Match the printed identity against the organization roster."""

    name = "match_owner"
    description = "Match document identity to an employee"

    def __init__(self, directory: Directory, matcher: OwnerMatcher, *, timeout: float) -> None:
        self.directory = directory
        self.matcher = matcher
        self.timeout = timeout

    async def execute(self, ctx: ValidationContext) -> StepResult:
        started_at = self._now()
        doc = ctx.document
        classification = ctx.classification

        roster = await self.directory.list_employees(doc.organization_id)
        review_threshold = await self.directory.get_owner_match_review_threshold(doc.organization_id)
        result = self.matcher.match(
            roster,
            doc.sender_email,
            classification.full_name_on_document if classification else None,
            classification.dob_on_document if classification else None,
            review_threshold=review_threshold,
        )
        ctx.owner_match = result

        return self._success(started_at, metadata={
            "roster_size": len(roster),
            "match_method": result.match_method,
            "matched_employee_id": str(result.matched_employee_id) if result.matched_employee_id else None,
            "confidence": result.owner_match_confidence,
        })
