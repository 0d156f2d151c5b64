"""Shared helpers — ids, hashing."""

from __future__ import annotations

import hashlib
import uuid


def new_ad_id() -> str:
    """Return a fresh, collision-resistant listing id."""
    return uuid.uuid4().hex


def sha256_bytes(payload: bytes) -> str:
    """Return the hex SHA-256 digest of *payload*."""
    return hashlib.sha256(payload).hexdigest()
