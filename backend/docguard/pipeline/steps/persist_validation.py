"""
PersistValidationStep — writes the DocumentValidation row and the
document's externally visible status.

Upsert semantics: one row per document, overwritten on every run.
Document status mapping:

    verified + auto-approvable   -> verified
    needs_review                 -> needs_review
    rejected                     -> rejected
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from docguard.core.constants import DocumentStatus, OverallStatus
from docguard.pipeline.context import StepResult, ValidationContext
from docguard.pipeline.errors import StepExecutionError
from docguard.pipeline.step import PipelineStep
from docguard.repositories import documents as documents_repo
from docguard.repositories import validations as validations_repo


def document_status_for(overall_status: OverallStatus, can_auto_approve: bool) -> DocumentStatus:
    if overall_status == OverallStatus.VERIFIED and can_auto_approve:
        return DocumentStatus.VERIFIED
    if overall_status == OverallStatus.REJECTED:
        return DocumentStatus.REJECTED
    return DocumentStatus.NEEDS_REVIEW


def build_validation_values(ctx: ValidationContext) -> dict[str, Any]:
    """Map the context onto DocumentValidation columns."""
    c = ctx.classification
    o = ctx.owner_match
    e = ctx.expiry
    a = ctx.authenticity
    r = ctx.compliance
    d = ctx.decision

    return {
        "document_type": c.document_type if c else None,
        "document_type_confidence": c.document_type_confidence if c else None,
        "issuing_country": c.issuing_country if c else None,
        "document_number": c.document_number if c else None,
        "matched_employee_id": o.matched_employee_id,
        "name_match_score": o.name_match_score,
        "dob_match": o.dob_match,
        "owner_match_confidence": o.owner_match_confidence,
        "expiry_date": e.expiry_date,
        "issue_date": e.issue_date,
        "expiry_status": e.expiry_status.value,
        "days_until_expiry": e.days_until_expiry,
        "authenticity_score": a.authenticity_score,
        "image_quality_score": a.image_quality_score,
        "is_duplicate": a.is_duplicate,
        "duplicate_of_document_id": a.duplicate_of_document_id,
        "matches_request_type": r.matches_request_type,
        "request_compliance_score": r.request_compliance_score,
        "overall_status": d.overall_status.value,
        "can_auto_approve": d.can_auto_approve,
        "requires_admin_review": d.requires_admin_review,
        "review_priority": d.review_priority.value,
        "metadata_": ctx.to_metadata(),
    }


class PersistValidationStep(PipelineStep):
    """Upsert the validation result and update the document."""

    name = "persist_validation"
    description = "Persist validation result and document status"

    def __init__(self, db: AsyncSession, *, timeout: float) -> None:
        self.db = db
        self.timeout = timeout

    async def execute(self, ctx: ValidationContext) -> StepResult:
        started_at = self._now()

        if ctx.decision is None:
            raise StepExecutionError(
                "No decision to persist",
                execution_id=str(ctx.execution_id),
                step_name=self.name,
            )

        row = await validations_repo.upsert_validation(
            self.db, ctx.document_id, build_validation_values(ctx),
        )
        ctx.validation_id = row.id

        decision = ctx.decision
        document_status = document_status_for(decision.overall_status, decision.can_auto_approve)
        await documents_repo.set_validation_status(
            self.db,
            ctx.document_id,
            decision.overall_status.value,
            status=document_status.value,
            validation_metadata=ctx.to_metadata(),
        )

        return self._success(started_at, metadata={
            "validation_id": str(row.id),
            "document_status": document_status.value,
        })
