"""Content identity for extracted snippets."""

import hashlib


def content_hash(content: str) -> str:
    """SHA-256 hex digest of the snippet with surrounding whitespace removed."""
    return hashlib.sha256(content.strip().encode("utf-8")).hexdigest()
