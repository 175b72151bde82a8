"""Expiry analysis — classifies a document by days left until expiry."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone

from docguard.core.constants import EXPIRING_SOON_DAYS, ExpiryStatus


@dataclass
class ExpiryAnalysis:
    expiry_status: ExpiryStatus
    expiry_date: date | None = None
    issue_date: date | None = None
    days_until_expiry: int | None = None

    def to_dict(self) -> dict:
        return {
            "expiry_status": self.expiry_status.value,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "issue_date": self.issue_date.isoformat() if self.issue_date else None,
            "days_until_expiry": self.days_until_expiry,
        }


def analyze_expiry(
    expiry_date: date | None,
    issue_date: date | None = None,
    *,
    today: date | None = None,
) -> ExpiryAnalysis:
    """
    Compute expiry status from calendar days.

    Both dates are whole days, so "exactly 90 days" is expiring_soon and
    91 is expiring_later; anything in the past is expired.
    """
    if expiry_date is None:
        return ExpiryAnalysis(expiry_status=ExpiryStatus.NO_EXPIRY, issue_date=issue_date)

    if isinstance(expiry_date, datetime):
        expiry_date = expiry_date.date()
    if today is None:
        today = datetime.now(timezone.utc).date()

    days = (expiry_date - today).days

    if days < 0:
        status = ExpiryStatus.EXPIRED
    elif days <= EXPIRING_SOON_DAYS:
        status = ExpiryStatus.EXPIRING_SOON
    else:
        status = ExpiryStatus.EXPIRING_LATER

    return ExpiryAnalysis(
        expiry_status=status,
        expiry_date=expiry_date,
        issue_date=issue_date,
        days_until_expiry=days,
    )
