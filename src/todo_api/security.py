from __future__ import annotations

import hashlib
import hmac
import secrets

_SCHEME = "pbkdf2_sha256"
_ITERATIONS = 260_000


# PUBLIC_INTERFACE
def hash_password(password: str, iterations: int = _ITERATIONS) -> str:
    """
    Hash a password with PBKDF2-HMAC-SHA256 and a random salt.

    Returns a self-describing string: 'pbkdf2_sha256$<iterations>$<salt>$<hex digest>'.
    """
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"{_SCHEME}${iterations}${salt}${digest.hex()}"


# PUBLIC_INTERFACE
def verify_password(password: str, encoded: str) -> bool:
    """Check a password against a value produced by hash_password."""
    try:
        scheme, iterations, salt, expected = encoded.split("$", 3)
        rounds = int(iterations)
    except ValueError:
        return False
    if scheme != _SCHEME:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), rounds)
    return hmac.compare_digest(digest.hex(), expected)
