"""
ValidationContext — mutable state object carried through every step.

This is the single source of truth for one validation run.  Each step
reads from and writes to the context; the persist step turns it into a
DocumentValidation row and the engine serialises the step results into
the execution log.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from docguard.processing.classifier import Classification
from docguard.validation.authenticity_checker import AuthenticityResult
from docguard.validation.compliance_checker import ComplianceResult
from docguard.validation.decision_engine import AutoApprovalThresholds, ValidationDecision
from docguard.validation.expiry_analyzer import ExpiryAnalysis
from docguard.validation.owner_matcher import OwnerMatchResult


# ═══════════════════════════════════════════════════════════
#  DocumentRef: the document fields the pipeline needs
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DocumentRef:
    """Snapshot of a documents row taken when the run starts."""

    id: uuid.UUID
    organization_id: uuid.UUID
    storage_config_id: uuid.UUID | None
    storage_path: str
    original_filename: str
    mime_type: str | None
    sender_email: str | None

    @classmethod
    def from_row(cls, row: Any) -> "DocumentRef":
        return cls(
            id=row.id,
            organization_id=row.organization_id,
            storage_config_id=row.storage_config_id,
            storage_path=row.storage_path,
            original_filename=row.original_filename,
            mime_type=row.mime_type,
            sender_email=row.sender_email,
        )


# ═══════════════════════════════════════════════════════════
#  StepResult
# ═══════════════════════════════════════════════════════════

@dataclass
class StepResult:
    """Outcome of a single pipeline step execution."""

    step_name: str
    status: str                     # StepStatus value
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialise for JSON storage."""
        return {
            "step_name": self.step_name,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "metadata": self.metadata,
        }


# ═══════════════════════════════════════════════════════════
#  ValidationContext
# ═══════════════════════════════════════════════════════════

@dataclass
class ValidationContext:
    """
    Carries all state between validation steps.

    Populated progressively: fetch fills `file_bytes`, classify fills
    `classification`, the four checks fill their results, decide fills
    `decision`, and persist sets `validation_id`.
    """

    # ─── Identity (set at init) ────────────────────────
    document: DocumentRef
    triggered_by: str
    execution_id: uuid.UUID = field(default_factory=uuid.uuid4)
    job_id: uuid.UUID | None = None

    # ─── Fetch ─────────────────────────────────────────
    file_bytes: bytes = b""
    content_hash: str | None = None
    credentials_refreshed: bool = False

    # ─── Signals ───────────────────────────────────────
    classification: Classification | None = None
    owner_match: OwnerMatchResult | None = None
    expiry: ExpiryAnalysis | None = None
    authenticity: AuthenticityResult | None = None
    requested_type: str | None = None
    compliance: ComplianceResult | None = None
    thresholds: AutoApprovalThresholds | None = None
    decision: ValidationDecision | None = None

    # ─── Output ────────────────────────────────────────
    validation_id: uuid.UUID | None = None

    # ─── Execution tracking ────────────────────────────
    step_results: list[StepResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def document_id(self) -> uuid.UUID:
        return self.document.id

    def add_error(self, error: str) -> None:
        """Record a non-fatal error."""
        self.errors.append(error)

    def to_metadata(self) -> dict[str, Any]:
        """
        Audit blob stored on both the validation row and the document.

        Contains only derived signals, so re-running on identical input
        produces an identical blob.
        """
        def dump(obj: Any) -> Any:
            return obj.to_dict() if obj is not None else None

        return {
            "classification": dump(self.classification),
            "owner_match": dump(self.owner_match),
            "expiry_analysis": dump(self.expiry),
            "authenticity": dump(self.authenticity),
            "request_compliance": dump(self.compliance),
            "summary": dump(self.decision),
        }
