"""
Format Detector — checks a file's magic bytes against its declared MIME type.

Only the signatures we can verify cheaply are checked; other image types
and non-image types pass as long as the file is not empty.
"""

from __future__ import annotations

PDF_MIME = "application/pdf"

# MIME type -> (offset, signature) pairs that must all match
_SIGNATURES: dict[str, tuple[tuple[int, bytes], ...]] = {
    "application/pdf": ((0, b"%PDF"),),
    "image/jpeg": ((0, b"\xff\xd8\xff"),),
    "image/jpg": ((0, b"\xff\xd8\xff"),),
    "image/png": ((0, b"\x89PNG"),),
    "image/gif": ((0, b"GIF8"),),
    "image/webp": ((0, b"RIFF"), (8, b"WEBP")),
    "image/bmp": ((0, b"BM"),),
}


def is_image(mime_type: str | None) -> bool:
    """True for any image/* MIME type."""
    return bool(mime_type) and mime_type.lower().startswith("image/")


def is_pdf(mime_type: str | None) -> bool:
    return bool(mime_type) and mime_type.lower() == PDF_MIME


def validate_file_format(data: bytes, mime_type: str | None) -> bool:
    """Return True when `data` is non-empty and matches the MIME signature."""
    if not data:
        return False

    signatures = _SIGNATURES.get((mime_type or "").lower())
    if signatures is None:
        return True

    return all(data[offset:offset + len(sig)] == sig for offset, sig in signatures)
