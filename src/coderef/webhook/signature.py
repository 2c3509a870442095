"""HMAC-SHA256 delivery signatures (``X-Hub-Signature-256``)."""

from __future__ import annotations

import hashlib
import hmac

from coderef.config.constants import SIGNATURE_PREFIX
from coderef.webhook.errors import SignatureMismatchError


def compute_signature(body: bytes, secret: str) -> str:
    """``sha256=<hex>`` header value for body."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(body: bytes, header: str | None, secret: str | None) -> bool:
    """True when header carries the signature of body under secret.

    Missing inputs and mismatches return False. The comparison runs in
    constant time with respect to where the values differ.
    """
    if not header or not secret:
        return False
    expected = compute_signature(body, secret)
    return hmac.compare_digest(expected.encode("utf-8"), header.strip().encode("utf-8"))


def require_valid_signature(body: bytes, header: str | None, secret: str | None) -> None:
    """Raise SignatureMismatchError unless the signature verifies."""
    if not header:
        raise SignatureMismatchError("Missing signature header")
    if not verify_signature(body, header, secret):
        raise SignatureMismatchError()
