"""
Credential and session-token helpers.

Passwords are stored as salted PBKDF2-SHA256 digests in the form
`pbkdf2_sha256$<iterations>$<salt>$<hexdigest>`. Session tokens are opaque
random strings; their lifetime is tracked in the `sessions` collection.
"""

import hashlib
import hmac
import logging
import secrets
from typing import Optional

from kumbh_alert.core.settings import settings

logger = logging.getLogger(__name__)

_ALGORITHM = "pbkdf2_sha256"


def hash_password(password: str, salt: Optional[str] = None, iterations: Optional[int] = None) -> str:
    """
    Hash a password with a random salt.

    Args:
        password: Plain-text password
        salt: Optional salt (generated when omitted)
        iterations: Optional PBKDF2 iteration count (defaults to settings)

    Returns:
        Encoded hash string safe to persist
    """
    salt = salt or secrets.token_hex(16)
    iterations = iterations or settings.PASSWORD_HASH_ITERATIONS
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"{_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: Optional[str]) -> bool:
    """Constant-time check of a password against an encoded hash."""
    if not encoded:
        return False
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
    except ValueError:
        logger.warning("Stored password hash has an unexpected format")
        return False
    if algorithm != _ALGORITHM:
        return False
    candidate = hash_password(password, salt=salt, iterations=int(iterations))
    return hmac.compare_digest(candidate.rsplit("$", 1)[1], expected)


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


def get_bearer_token(auth_header: Optional[str]) -> Optional[str]:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    if not auth_header:
        return None
    parts = auth_header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None
