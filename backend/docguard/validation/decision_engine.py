"""
Decision engine — folds the four signals into one verdict.

Critical issues (any one rejects the document):
    name_match_low_confidence    owner confidence < 0.70
    document_expired             unless the organization allows expired docs
    authenticity_check_failed    authenticity < 0.70
    document_type_mismatch       compliance check failed

Warnings (route to review, raise priority):
    name_match_moderate_confidence   owner confidence < 0.90
    expiring_in_<N>_days             expiring soon
    authenticity_score_low           authenticity < 0.85
    duplicate_submission             same content already submitted
                                     (also blocks auto-approval)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from docguard.core.config import Settings
from docguard.core.constants import ExpiryStatus, OverallStatus, ReviewPriority
from docguard.validation.authenticity_checker import AuthenticityResult
from docguard.validation.compliance_checker import ComplianceResult
from docguard.validation.expiry_analyzer import ExpiryAnalysis
from docguard.validation.owner_matcher import OwnerMatchResult

OWNER_CRITICAL_BELOW = 0.70
OWNER_WARNING_BELOW = 0.90
OWNER_HIGH_PRIORITY_BELOW = 0.85
AUTHENTICITY_CRITICAL_BELOW = 0.70
AUTHENTICITY_WARNING_BELOW = 0.85


@dataclass(frozen=True)
class AutoApprovalThresholds:
    """Organization-tunable bar for skipping human review."""

    min_owner_match_confidence: float = 0.90
    min_authenticity_score: float = 0.85
    min_request_compliance_score: float = 0.95
    allow_expired_documents: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "AutoApprovalThresholds":
        return cls(
            min_owner_match_confidence=settings.MIN_OWNER_MATCH_CONFIDENCE,
            min_authenticity_score=settings.MIN_AUTHENTICITY_SCORE,
            min_request_compliance_score=settings.MIN_REQUEST_COMPLIANCE_SCORE,
            allow_expired_documents=settings.ALLOW_EXPIRED_DOCUMENTS,
        )

    def merged(self, overrides: dict[str, Any] | None) -> "AutoApprovalThresholds":
        """Apply an organization's `auto_approval` settings over these defaults."""
        if not overrides:
            return self
        values = asdict(self)
        for key in values:
            if overrides.get(key) is not None:
                values[key] = type(values[key])(overrides[key])
        return AutoApprovalThresholds(**values)


@dataclass
class ValidationDecision:
    overall_status: OverallStatus
    can_auto_approve: bool
    requires_admin_review: bool
    review_priority: ReviewPriority
    critical_issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "overall_status": self.overall_status.value,
            "can_auto_approve": self.can_auto_approve,
            "requires_admin_review": self.requires_admin_review,
            "review_priority": self.review_priority.value,
            "critical_issues": list(self.critical_issues),
            "warnings": list(self.warnings),
        }


def decide(
    owner: OwnerMatchResult,
    expiry: ExpiryAnalysis,
    authenticity: AuthenticityResult,
    compliance: ComplianceResult,
    thresholds: AutoApprovalThresholds | None = None,
) -> ValidationDecision:
    """Aggregate the signals into status, auto-approval and priority."""
    thresholds = thresholds or AutoApprovalThresholds()
    critical: list[str] = []
    warnings: list[str] = []

    owner_confidence = owner.owner_match_confidence
    if owner_confidence < OWNER_CRITICAL_BELOW:
        critical.append("name_match_low_confidence")
    elif owner_confidence < OWNER_WARNING_BELOW:
        warnings.append("name_match_moderate_confidence")

    if expiry.expiry_status == ExpiryStatus.EXPIRED:
        if not thresholds.allow_expired_documents:
            critical.append("document_expired")
    elif expiry.expiry_status == ExpiryStatus.EXPIRING_SOON:
        warnings.append(f"expiring_in_{expiry.days_until_expiry}_days")

    if authenticity.authenticity_score < AUTHENTICITY_CRITICAL_BELOW:
        critical.append("authenticity_check_failed")
    elif authenticity.authenticity_score < AUTHENTICITY_WARNING_BELOW:
        warnings.append("authenticity_score_low")

    if authenticity.is_duplicate:
        warnings.append("duplicate_submission")

    if not compliance.matches_request_type:
        critical.append("document_type_mismatch")

    can_auto_approve = (
        not critical
        and owner_confidence >= thresholds.min_owner_match_confidence
        and authenticity.authenticity_score >= thresholds.min_authenticity_score
        and compliance.request_compliance_score >= thresholds.min_request_compliance_score
        and not authenticity.is_duplicate
    )

    if critical:
        status = OverallStatus.REJECTED
    elif can_auto_approve:
        status = OverallStatus.VERIFIED
    else:
        status = OverallStatus.NEEDS_REVIEW

    if critical:
        priority = ReviewPriority.CRITICAL
    elif len(warnings) > 2 or owner_confidence < OWNER_HIGH_PRIORITY_BELOW:
        priority = ReviewPriority.HIGH
    elif warnings:
        priority = ReviewPriority.MEDIUM
    else:
        priority = ReviewPriority.LOW

    return ValidationDecision(
        overall_status=status,
        can_auto_approve=can_auto_approve,
        requires_admin_review=not can_auto_approve,
        review_priority=priority,
        critical_issues=critical,
        warnings=warnings,
    )
