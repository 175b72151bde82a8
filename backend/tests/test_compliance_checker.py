"""Tests for requested-vs-submitted document type checks."""

import pytest

from docguard.validation.compliance_checker import (
    check_compliance,
    document_types_match,
    normalize_document_type,
)


class TestNormalization:
    @pytest.mark.parametrize("raw,expected", [
        ("Driver's License", "drivers license"),
        ("drivers_license", "drivers license"),
        ("  ID-Card ", "id card"),
        (None, ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_document_type(raw) == expected


class TestDocumentTypesMatch:
    def test_synonyms_are_symmetric(self):
        assert document_types_match("driving license", "drivers_license")
        assert document_types_match("drivers_license", "driving license")

    def test_containment(self):
        assert document_types_match("id", "national id")

    def test_mismatch(self):
        assert not document_types_match("passport", "drivers_license")

    def test_empty_never_matches(self):
        assert not document_types_match("passport", None)


class TestCheckCompliance:
    def test_exact(self):
        result = check_compliance("passport", "passport")
        assert result.matches_request_type is True
        assert result.request_compliance_score == 1.0

    def test_punctuation_only_difference_is_exact(self):
        result = check_compliance("Driver's License", "drivers_license")
        assert result.request_compliance_score == 1.0

    def test_synonym_scores_lower(self):
        result = check_compliance("driving license", "drivers_license")
        assert result.matches_request_type is True
        assert result.request_compliance_score == 0.9

    def test_mismatch(self):
        result = check_compliance("passport", "birth_certificate")
        assert result.matches_request_type is False
        assert result.request_compliance_score == 0.5

    def test_no_request_type_is_compliant(self):
        result = check_compliance(None, "passport")
        assert result.matches_request_type is True
        assert result.request_compliance_score == 1.0

    def test_unclassified_document_fails_a_request(self):
        result = check_compliance("passport", None)
        assert result.matches_request_type is False
