"""CheckComplianceStep — classified type vs. the requested type."""

from __future__ import annotations

from docguard.pipeline.context import StepResult, ValidationContext
from docguard.pipeline.step import PipelineStep
from docguard.repositories.directory import Directory
from docguard.validation.compliance_checker import check_compliance


class CheckComplianceStep(PipelineStep):
    name = "check_compliance"
    description = "Compare document type with the originating request"

    def __init__(self, directory: Directory, *, timeout: float) -> None:
        self.directory = directory
        self.timeout = timeout

    async def execute(self, ctx: ValidationContext) -> StepResult:
        started_at = self._now()

        ctx.requested_type = await self.directory.get_requested_type(ctx.document_id)
        submitted = ctx.classification.document_type if ctx.classification else None
        ctx.compliance = check_compliance(ctx.requested_type, submitted)

        return self._success(started_at, metadata={
            "requested_type": ctx.requested_type,
            "submitted_type": submitted,
            "matches": ctx.compliance.matches_request_type,
            "score": ctx.compliance.request_compliance_score,
        })
