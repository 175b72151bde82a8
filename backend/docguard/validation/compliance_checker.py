"""
Request compliance — does the submitted document type match the request?

Types are compared after normalization (lowercase, `_`/`-`/runs of
spaces collapsed, apostrophes dropped).  A match is exact equality,
containment either way, or a shared synonym group.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass

EXACT_SCORE = 1.0
FUZZY_SCORE = 0.9
MISMATCH_SCORE = 0.5


def normalize_document_type(value: str | None) -> str:
    if not value:
        return ""
    text = re.sub(r"[_\s-]+", " ", value.lower().strip())
    text = text.replace("'", "")
    return re.sub(r"\s+", " ", text).strip()


_SYNONYM_GROUPS: list[frozenset[str]] = [
    frozenset(
        normalize_document_type(v)
        for v in ("driving license", "drivers license", "driver license",
                  "drivers_license", "driver_license", "driving_license")
    ),
    frozenset(
        normalize_document_type(v)
        for v in ("id card", "id_card", "identification card", "national id", "government id")
    ),
    frozenset(
        normalize_document_type(v)
        for v in ("birth certificate", "birth_certificate", "birth cert")
    ),
]


def document_type_synonyms(value: str | None) -> set[str]:
    """The normalized value plus every synonym of its group."""
    normalized = normalize_document_type(value)
    synonyms = {normalized}
    for group in _SYNONYM_GROUPS:
        if normalized in group:
            synonyms |= group
    return synonyms


def _overlaps(a: str, b: str) -> bool:
    return a == b or a in b or b in a


def document_types_match(requested: str | None, submitted: str | None) -> bool:
    """True on exact, containment, or synonym match.  Empty never matches."""
    a = normalize_document_type(requested)
    b = normalize_document_type(submitted)
    if not a or not b:
        return False
    if _overlaps(a, b):
        return True
    return any(
        _overlaps(s1, s2)
        for s1 in document_type_synonyms(a)
        for s2 in document_type_synonyms(b)
    )


@dataclass
class ComplianceResult:
    matches_request_type: bool
    request_compliance_score: float
    requested_type: str | None = None
    submitted_type: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def check_compliance(requested_type: str | None, submitted_type: str | None) -> ComplianceResult:
    """Compare the requested type (if any) with the classified type."""
    if not requested_type or not requested_type.strip():
        return ComplianceResult(True, EXACT_SCORE, requested_type, submitted_type)

    if not document_types_match(requested_type, submitted_type):
        return ComplianceResult(False, MISMATCH_SCORE, requested_type, submitted_type)

    exact = normalize_document_type(requested_type) == normalize_document_type(submitted_type)
    return ComplianceResult(
        True,
        EXACT_SCORE if exact else FUZZY_SCORE,
        requested_type,
        submitted_type,
    )
