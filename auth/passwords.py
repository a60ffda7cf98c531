"""Keyed password hashing.

Each password gets a fresh random HMAC-SHA512 key. The key is stored as
the salt and the HMAC of the UTF-8 password under that key is stored as
the hash. Both are kept as base64 text.
"""

import base64
import hashlib
import hmac
import secrets

# HMAC-SHA512 block size; keys of this length are used without rehashing
SALT_BYTES = 128


def _digest(password: str, key: bytes) -> bytes:
    return hmac.new(key, password.encode("utf-8"), hashlib.sha512).digest()


def hash_password(password: str) -> tuple[str, str]:
    """Hash a password.

    Returns:
        Tuple of (hash, salt), both base64 encoded
    """
    key = secrets.token_bytes(SALT_BYTES)
    digest = _digest(password, key)
    return (
        base64.b64encode(digest).decode("ascii"),
        base64.b64encode(key).decode("ascii"),
    )


def verify_password(password: str, stored_hash: str, stored_salt: str) -> bool:
    """Check a password against a stored hash and salt in constant time.

    Malformed stored values never match.
    """
    try:
        key = base64.b64decode(stored_salt, validate=True)
        expected = base64.b64decode(stored_hash, validate=True)
    except ValueError:
        return False
    return hmac.compare_digest(_digest(password, key), expected)
