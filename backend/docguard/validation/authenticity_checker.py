"""
Authenticity check — format consistency plus duplicate detection.

    format invalid        -> 0.70 (base)
    valid PDF             -> 0.90
    valid image           -> 0.85
    valid, other type     -> 0.70

A format mismatch or a duplicate always requires review.  Image quality
is not scored; `image_quality_score` stays None.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from docguard.processing.format_detector import is_image, is_pdf, validate_file_format

BASE_SCORE = 0.7
PDF_SCORE = 0.9
IMAGE_SCORE = 0.85


@dataclass
class AuthenticityResult:
    authenticity_score: float
    format_valid: bool
    pdf_valid: bool
    content_hash: str
    is_duplicate: bool = False
    duplicate_of_document_id: uuid.UUID | None = None
    image_quality_score: float | None = None
    requires_review: bool = False

    def to_dict(self) -> dict:
        return {
            "authenticity_score": self.authenticity_score,
            "format_valid": self.format_valid,
            "pdf_valid": self.pdf_valid,
            "content_hash": self.content_hash,
            "is_duplicate": self.is_duplicate,
            "duplicate_of_document_id": (
                str(self.duplicate_of_document_id) if self.duplicate_of_document_id else None
            ),
            "image_quality_score": self.image_quality_score,
            "requires_review": self.requires_review,
        }


def check_authenticity(
    data: bytes,
    mime_type: str | None,
    content_hash: str,
    duplicate_of: uuid.UUID | None = None,
) -> AuthenticityResult:
    """Score the file; `duplicate_of` is the earlier document with the same hash."""
    format_valid = validate_file_format(data, mime_type)
    pdf_valid = format_valid and is_pdf(mime_type)
    image_valid = format_valid and is_image(mime_type)

    score = BASE_SCORE
    if pdf_valid:
        score = PDF_SCORE
    elif image_valid:
        score = IMAGE_SCORE

    is_duplicate = duplicate_of is not None
    return AuthenticityResult(
        authenticity_score=score,
        format_valid=format_valid,
        pdf_valid=pdf_valid,
        content_hash=content_hash,
        is_duplicate=is_duplicate,
        duplicate_of_document_id=duplicate_of,
        requires_review=not format_valid or is_duplicate,
    )
