"""
Owner matching — decides which roster member a document belongs to.

Two paths:

    1. Exact sender-email match against the roster.  The sender is a
       strong prior; the printed name (when present) only refines the
       name score.
    2. No email match: fuzzy-match the printed name against every roster
       member and accept the best score above a floor.

Name scoring parses both names into first / middle / last, tolerating
"First Last" and "Last, First" orderings, and compares each part with a
normalized Levenshtein similarity.  A whole-string similarity (weighted
down 20%) backs up the structured score for names the parser misreads.

    confidence = name_score*0.6 + email_match*0.3 + dob_match*0.1   (cap 1.0)
"""

from __future__ import annotations

import re
import uuid
from dataclasses import asdict, dataclass, field
from datetime import date

from docguard.core.config import Settings

FIRST_WEIGHT = 0.35
LAST_WEIGHT = 0.40
MIDDLE_WEIGHT = 0.25

NAME_WEIGHT = 0.6
EMAIL_BONUS = 0.3
DOB_BONUS = 0.1

SIMPLE_SCORE_WEIGHT = 0.8

_COMMA_ORDER = re.compile(r"^[^,]+,\s*[^,]+")


@dataclass(frozen=True)
class RosterEntry:
    """One organization member as seen by the matcher."""

    id: uuid.UUID
    email: str
    full_name: str | None = None
    date_of_birth: date | None = None


@dataclass(frozen=True)
class NameParts:
    first: str
    last: str
    middle: tuple[str, ...] = field(default_factory=tuple)

    def swapped(self) -> "NameParts":
        return NameParts(first=self.last, last=self.first, middle=self.middle)


@dataclass
class OwnerMatchResult:
    matched_employee_id: uuid.UUID | None
    name_match_score: float
    dob_match: bool
    owner_match_confidence: float
    requires_review: bool
    match_method: str = "none"   # email | name | none

    def to_dict(self) -> dict:
        data = asdict(self)
        if self.matched_employee_id is not None:
            data["matched_employee_id"] = str(self.matched_employee_id)
        return data


# ── String similarity ────────────────────────

def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance (insert / delete / substitute, unit cost)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """1 - distance/max_len; 0.0 when either side is empty."""
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    return max(0.0, 1 - levenshtein_distance(a, b) / max(len(a), len(b)))


# ── Name parsing ─────────────────────────────

def normalize_name(name: str) -> str:
    """Lowercase, commas to spaces, drop punctuation, collapse whitespace."""
    text = name.lower().replace(",", " ")
    text = re.sub(r"[^\w\s]", "", text)
    return re.sub(r"\s+", " ", text).strip()


def parse_name_parts(name: str) -> NameParts:
    """
    Split a name into first / middle / last.

    "Doe, John Q"  -> first=john, middle=(q,), last=doe
    "John Q Doe"   -> first=john, middle=(q,), last=doe
    "John"         -> first=john, last=""
    """
    parts = normalize_name(name).split()

    if _COMMA_ORDER.match(name.strip()) and len(parts) >= 2:
        return NameParts(first=parts[1], last=parts[0], middle=tuple(parts[2:]))
    if not parts:
        return NameParts(first="", last="")
    if len(parts) == 1:
        return NameParts(first=parts[0], last="")
    if len(parts) == 2:
        return NameParts(first=parts[0], last=parts[1])
    return NameParts(first=parts[0], last=parts[-1], middle=tuple(parts[1:-1]))


def _structured_score(a: NameParts, b: NameParts) -> float:
    first_score = similarity(a.first, b.first)
    last_score = similarity(a.last, b.last)

    if not a.middle and not b.middle:
        return (first_score * FIRST_WEIGHT + last_score * LAST_WEIGHT) / (FIRST_WEIGHT + LAST_WEIGHT)

    middle_a = " ".join(a.middle)
    middle_b = " ".join(b.middle)

    if middle_a and middle_b:
        middle_score = similarity(middle_a, middle_b)
    else:
        # Middle name on one side only: it may be the other side's first/last
        best = max(
            similarity(middle_a, b.first),
            similarity(middle_b, a.first),
            similarity(middle_a, b.last),
            similarity(middle_b, a.last),
        )
        floor = 0.85 if first_score >= 0.9 and last_score >= 0.9 else 0.7
        middle_score = max(best, floor)

    return first_score * FIRST_WEIGHT + last_score * LAST_WEIGHT + middle_score * MIDDLE_WEIGHT


def name_parts_score(a: NameParts, b: NameParts) -> float:
    """Best structured score over the first/last swap permutations."""
    return max(
        _structured_score(a, b),
        _structured_score(a, b.swapped()),
        _structured_score(a.swapped(), b),
    )


def fuzzy_match_names(name1: str, name2: str) -> float:
    """Name similarity in [0, 1]; 1.0 for names equal after normalization."""
    n1 = normalize_name(name1)
    n2 = normalize_name(name2)
    if n1 == n2:
        return 1.0 if n1 else 0.0

    structured = name_parts_score(parse_name_parts(name1), parse_name_parts(name2))
    simple = similarity(n1, n2) * SIMPLE_SCORE_WEIGHT
    return max(structured, simple)


def owner_match_confidence(name_score: float, dob_match: bool, email_match: bool) -> float:
    confidence = name_score * NAME_WEIGHT
    if email_match:
        confidence += EMAIL_BONUS
    if dob_match:
        confidence += DOB_BONUS
    return min(confidence, 1.0)


# ── Matcher ──────────────────────────────────

class OwnerMatcher:
    """Match a document's printed identity against an organization roster."""

    def __init__(self, *, review_threshold: float = 0.85, name_floor: float = 0.7) -> None:
        self.review_threshold = review_threshold
        self.name_floor = name_floor

    @classmethod
    def from_settings(cls, settings: Settings) -> "OwnerMatcher":
        return cls(
            review_threshold=settings.OWNER_MATCH_REVIEW_THRESHOLD,
            name_floor=settings.NAME_MATCH_FLOOR,
        )

    def match(
        self,
        roster: list[RosterEntry],
        sender_email: str | None,
        doc_name: str | None = None,
        doc_dob: date | None = None,
        *,
        review_threshold: float | None = None,
    ) -> OwnerMatchResult:
        """`review_threshold` overrides the matcher default for this call."""
        threshold = self.review_threshold if review_threshold is None else review_threshold
        by_email = self._find_by_email(roster, sender_email)
        if by_email is not None:
            name_score = 1.0
            if doc_name and by_email.full_name:
                name_score = fuzzy_match_names(doc_name, by_email.full_name)
            return self._result(by_email, name_score, doc_dob, threshold, email_match=True)

        if doc_name:
            best: RosterEntry | None = None
            best_score = 0.0
            for entry in roster:
                if not entry.full_name:
                    continue
                score = fuzzy_match_names(doc_name, entry.full_name)
                if score > best_score and score > self.name_floor:
                    best, best_score = entry, score
            if best is not None:
                return self._result(best, best_score, doc_dob, threshold, email_match=False)

        return OwnerMatchResult(
            matched_employee_id=None,
            name_match_score=0.0,
            dob_match=False,
            owner_match_confidence=0.0,
            requires_review=True,
        )

    @staticmethod
    def _find_by_email(roster: list[RosterEntry], email: str | None) -> RosterEntry | None:
        if not email:
            return None
        wanted = email.strip().lower()
        for entry in roster:
            if entry.email and entry.email.strip().lower() == wanted:
                return entry
        return None

    def _result(
        self,
        entry: RosterEntry,
        name_score: float,
        doc_dob: date | None,
        review_threshold: float,
        *,
        email_match: bool,
    ) -> OwnerMatchResult:
        # DOB only counts against the match when both sides have one
        dob_match = True
        if doc_dob is not None and entry.date_of_birth is not None:
            dob_match = doc_dob == entry.date_of_birth

        confidence = owner_match_confidence(name_score, dob_match, email_match)
        return OwnerMatchResult(
            matched_employee_id=entry.id,
            name_match_score=name_score,
            dob_match=dob_match,
            owner_match_confidence=confidence,
            requires_review=confidence < review_threshold,
            match_method="email" if email_match else "name",
        )
