"""DecideStep — aggregates the signals with the organization's thresholds."""

from __future__ import annotations

from docguard.pipeline.context import StepResult, ValidationContext
from docguard.pipeline.errors import StepExecutionError
from docguard.pipeline.step import PipelineStep
from docguard.repositories.directory import Directory
from docguard.validation.decision_engine import decide


class DecideStep(PipelineStep):
    name = "decide"
    description = "Decide status, auto-approval and review priority"

    def __init__(self, directory: Directory, *, timeout: float) -> None:
        self.directory = directory
        self.timeout = timeout

    async def execute(self, ctx: ValidationContext) -> StepResult:
        started_at = self._now()

        missing = [
            name for name, value in (
                ("owner_match", ctx.owner_match),
                ("expiry", ctx.expiry),
                ("authenticity", ctx.authenticity),
                ("compliance", ctx.compliance),
            ) if value is None
        ]
        if missing:
            raise StepExecutionError(
                f"Cannot decide without signals: {', '.join(missing)}",
                execution_id=str(ctx.execution_id),
                step_name=self.name,
            )

        ctx.thresholds = await self.directory.get_auto_approval_thresholds(ctx.document.organization_id)
        ctx.decision = decide(
            ctx.owner_match, ctx.expiry, ctx.authenticity, ctx.compliance, ctx.thresholds,
        )

        return self._success(started_at, metadata={
            "overall_status": ctx.decision.overall_status.value,
            "can_auto_approve": ctx.decision.can_auto_approve,
            "review_priority": ctx.decision.review_priority.value,
            "critical_issues": ctx.decision.critical_issues,
            "warnings": ctx.decision.warnings,
        })
