"""Tests for name similarity and roster matching."""

import uuid
from datetime import date

import pytest

from docguard.validation.owner_matcher import (
    OwnerMatcher,
    RosterEntry,
    fuzzy_match_names,
    levenshtein_distance,
    normalize_name,
    parse_name_parts,
    similarity,
)

JANE = RosterEntry(
    id=uuid.uuid4(),
    email="jane.doe@example.com",
    full_name="Jane Doe",
    date_of_birth=date(1990, 5, 17),
)
BOB = RosterEntry(
    id=uuid.uuid4(),
    email="bob@example.com",
    full_name="Robert Smith",
    date_of_birth=date(1985, 1, 2),
)


class TestStringSimilarity:
    def test_levenshtein(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0

    def test_similarity_bounds(self):
        assert similarity("abc", "abc") == 1.0
        assert similarity("", "abc") == 0.0
        assert similarity("jon", "john") == pytest.approx(0.75)


class TestNameParsing:
    def test_normalize(self):
        assert normalize_name("  O'Brien,   Mary-Ann ") == "obrien maryann"

    def test_comma_order(self):
        parts = parse_name_parts("Doe, John Q")
        assert parts.first == "john"
        assert parts.last == "doe"
        assert parts.middle == ("q",)

    def test_natural_order(self):
        parts = parse_name_parts("John Quincy Doe")
        assert (parts.first, parts.middle, parts.last) == ("john", ("quincy",), "doe")

    def test_single_token(self):
        parts = parse_name_parts("Cher")
        assert parts.first == "cher"
        assert parts.last == ""


class TestFuzzyMatchNames:
    def test_identical_after_normalization(self):
        assert fuzzy_match_names("JANE  DOE", "jane doe") == 1.0

    def test_comma_permutation_scores_high(self):
        assert fuzzy_match_names("Doe, John", "John Doe") >= 0.95

    def test_middle_name_on_one_side(self):
        assert fuzzy_match_names("John Q Doe", "John Doe") >= 0.9

    def test_typo_is_partial(self):
        score = fuzzy_match_names("Jon Doe", "John Doe")
        assert 0.8 < score < 1.0

    def test_unrelated_names(self):
        assert fuzzy_match_names("Alice Smith", "Bob Jones") < 0.5

    def test_empty_names(self):
        assert fuzzy_match_names("", "") == 0.0


class TestOwnerMatcher:
    def setup_method(self):
        self.matcher = OwnerMatcher(review_threshold=0.85, name_floor=0.7)

    def test_email_match_is_case_insensitive(self):
        result = self.matcher.match([BOB, JANE], "JANE.DOE@Example.com", "Jane Doe", date(1990, 5, 17))
        assert result.matched_employee_id == JANE.id
        assert result.match_method == "email"
        assert result.owner_match_confidence == pytest.approx(1.0)
        assert result.requires_review is False

    def test_email_match_with_dob_mismatch(self):
        result = self.matcher.match([JANE], "jane.doe@example.com", "Jane Doe", date(1991, 1, 1))
        assert result.dob_match is False
        assert result.owner_match_confidence == pytest.approx(0.9)

    def test_email_match_without_printed_name(self):
        result = self.matcher.match([JANE], "jane.doe@example.com")
        assert result.name_match_score == 1.0
        assert result.dob_match is True

    def test_name_only_match_needs_review(self):
        result = self.matcher.match([BOB, JANE], "someone@else.com", "Doe, Jane")
        assert result.matched_employee_id == JANE.id
        assert result.match_method == "name"
        assert result.owner_match_confidence == pytest.approx(0.7)
        assert result.requires_review is True

    def test_review_threshold_override(self):
        result = self.matcher.match([BOB, JANE], "someone@else.com", "Doe, Jane", review_threshold=0.65)
        assert result.owner_match_confidence == pytest.approx(0.7)
        assert result.requires_review is False
        assert self.matcher.review_threshold == 0.85

    def test_name_below_floor_is_no_match(self):
        result = self.matcher.match([BOB, JANE], "someone@else.com", "Zed Quux")
        assert result.matched_employee_id is None
        assert result.owner_match_confidence == 0.0
        assert result.requires_review is True

    def test_empty_roster(self):
        result = self.matcher.match([], "jane.doe@example.com", "Jane Doe")
        assert result.matched_employee_id is None
        assert result.match_method == "none"
