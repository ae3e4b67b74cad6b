"""HMAC utilities for signing and verifying payment webhooks."""
from __future__ import annotations

import hashlib
import hmac
import json


def compute_signature(secret: str, payload: dict) -> str:
    """Sign ``payload`` as canonical JSON (sorted keys, no whitespace)."""
    body = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode()
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_hmac(sig_header: str, body: bytes, secret: str) -> bool:
    """Return ``True`` if HMAC-SHA256 signature matches the body."""
    if not sig_header:
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, sig_header)
