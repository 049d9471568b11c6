"""
Identifier and Hash Helpers
===========================
"""

import hashlib
import uuid


def generate_id() -> str:
    """Short uppercase record id (first segment of a UUID4)."""
    return str(uuid.uuid4()).split("-")[0].upper()


def content_hash(data: bytes) -> str:
    """SHA-256 fingerprint of raw file bytes, used for duplicate detection."""
    return hashlib.sha256(data).hexdigest()
