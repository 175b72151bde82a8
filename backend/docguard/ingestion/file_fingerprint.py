"""
File fingerprinting — SHA-256 content hash for duplicate detection.
"""

import hashlib


def compute_content_hash(data: bytes) -> str:
    """Hex SHA-256 digest of the document bytes."""
    return hashlib.sha256(data).hexdigest()
