"""PIN hashing for the local lock screen: SHA-256 hex of a 4-digit PIN."""

from __future__ import annotations

import hashlib
import hmac
import re

_PIN_PATTERN = re.compile(r"[0-9]{4}")


def hash_pin(pin: str) -> str:
    if not _PIN_PATTERN.fullmatch(pin or ""):
        raise ValueError("PIN must be exactly 4 digits")
    return hashlib.sha256(pin.encode("utf-8")).hexdigest()


def verify_pin(pin: str, stored_hash: str) -> bool:
    """False for malformed PINs as well as wrong ones."""
    try:
        candidate = hash_pin(pin)
    except ValueError:
        return False
    return hmac.compare_digest(candidate, stored_hash)
