"""
Best-effort text extraction for the text classification path.

Only PDFs with a text layer yield anything; scans, other formats and
unreadable files give an empty string.  The classifier treats the text
as a hint, never as a requirement.
"""

from __future__ import annotations

import io

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from docguard.core.logging import get_logger
from docguard.processing.format_detector import is_pdf

logger = get_logger(__name__)

MAX_PAGES = 3


def extract_text(data: bytes, mime_type: str | None) -> str:
    """Return the text of the first few PDF pages, or "" when unavailable."""
    if not data or not is_pdf(mime_type):
        return ""

    try:
        reader = PdfReader(io.BytesIO(data))
        pages = reader.pages[:MAX_PAGES]
        text = "\n".join((page.extract_text() or "") for page in pages)
    except (PyPdfError, ValueError, KeyError, TypeError) as exc:
        logger.warning("PDF text extraction failed", error=str(exc))
        return ""

    return " ".join(text.split())
