# app/core/security.py
from __future__ import annotations

import re
from typing import Optional

import bcrypt

_BCRYPT_RE = re.compile(r"^\$2[aby]\$\d{2}\$[./A-Za-z0-9]{53}$")


def is_bcrypt_hash(value: Optional[str]) -> bool:
    return bool(value and _BCRYPT_RE.match(value))


def hash_password(plaintext: str, rounds: int = 12) -> str:
    """Hash a plaintext password. Values that are already bcrypt hashes pass through unchanged."""
    if is_bcrypt_hash(plaintext):
        return plaintext
    return bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def check_password(stored_hash: Optional[str], candidate: str) -> bool:
    if not is_bcrypt_hash(stored_hash):
        return False
    return bcrypt.checkpw(candidate.encode("utf-8"), stored_hash.encode("utf-8"))
