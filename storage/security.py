# storage/security.py
from __future__ import annotations

from typing import Optional, Tuple
import hashlib
import hmac
import os
import re


SCHEME = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 200_000
MIN_PASSWORD_LENGTH = 6

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def _split(encoded: str) -> Optional[Tuple[int, bytes, bytes]]:
    """pbkdf2_sha256$<iterations>$<salt_hex>$<digest_hex> -> (iterations, salt, digest)"""
    try:
        scheme, iterations_s, salt_hex, digest_hex = str(encoded).split("$", 3)
        if scheme != SCHEME:
            return None
        return int(iterations_s), bytes.fromhex(salt_hex), bytes.fromhex(digest_hex)
    except ValueError:
        return None


def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    salt = os.urandom(16)
    return f"{SCHEME}${iterations}${salt.hex()}${_derive(password, salt, iterations).hex()}"


def is_password_hashed(value: str) -> bool:
    return isinstance(value, str) and value.startswith(f"{SCHEME}$")


def verify_password(password: str, encoded: str) -> bool:
    parts = _split(encoded)
    if parts is None:
        return False
    iterations, salt, expected = parts
    return hmac.compare_digest(_derive(password, salt, iterations), expected)


def needs_rehash(encoded: str, min_iterations: int = DEFAULT_ITERATIONS) -> bool:
    parts = _split(encoded)
    return parts is None or parts[0] < min_iterations


def email_policy_error(email: str) -> Optional[str]:
    if not _EMAIL_RE.match(str(email or "").strip()):
        return "Please enter a valid email address."
    return None


def password_policy_error(password: str) -> Optional[str]:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        return f"Password should be at least {MIN_PASSWORD_LENGTH} characters."
    return None
