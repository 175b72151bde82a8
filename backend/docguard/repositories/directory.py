"""
Directory — roster, originating request, and organization settings lookups.

The pipeline depends on the `Directory` protocol only; `SqlDirectory` is
the implementation over our own tables.
"""

from __future__ import annotations

import uuid
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docguard.db.models.document import Document
from docguard.db.models.document_request import DocumentRequest
from docguard.db.models.employee import Employee
from docguard.db.models.organization import Organization
from docguard.validation.decision_engine import AutoApprovalThresholds
from docguard.validation.owner_matcher import RosterEntry


class Directory(Protocol):
    async def list_employees(self, org_id: uuid.UUID) -> list[RosterEntry]: ...

    async def get_requested_type(self, document_id: uuid.UUID) -> str | None: ...

    async def get_auto_approval_thresholds(self, org_id: uuid.UUID) -> AutoApprovalThresholds: ...

    async def get_owner_match_review_threshold(self, org_id: uuid.UUID) -> float | None: ...


class SqlDirectory:
    """Directory backed by the organizations / employees / requests tables."""

    def __init__(self, db: AsyncSession, defaults: AutoApprovalThresholds | None = None) -> None:
        self.db = db
        self.defaults = defaults or AutoApprovalThresholds()

    async def list_employees(self, org_id: uuid.UUID) -> list[RosterEntry]:
        stmt = select(Employee).where(Employee.organization_id == org_id)
        result = await self.db.execute(stmt)
        return [
            RosterEntry(
                id=e.id,
                email=e.email,
                full_name=e.full_name,
                date_of_birth=e.date_of_birth,
            )
            for e in result.scalars().all()
        ]

    async def get_requested_type(self, document_id: uuid.UUID) -> str | None:
        stmt = (
            select(DocumentRequest.request_type)
            .join(Document, Document.document_request_id == DocumentRequest.id)
            .where(Document.id == document_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_auto_approval_thresholds(self, org_id: uuid.UUID) -> AutoApprovalThresholds:
        org = await self.db.get(Organization, org_id)
        overrides = (org.settings or {}).get("auto_approval") if org is not None else None
        return self.defaults.merged(overrides)

    async def get_owner_match_review_threshold(self, org_id: uuid.UUID) -> float | None:
        """The organization's `owner_match_review_threshold` setting, or None to keep the default."""
        org = await self.db.get(Organization, org_id)
        value = (org.settings or {}).get("owner_match_review_threshold") if org is not None else None
        return float(value) if value is not None else None
