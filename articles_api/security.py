"""
Credential hashing and access-token handling.

Passwords are hashed with bcrypt; access tokens are HS256 JWTs carrying
``sub`` (user id) and ``email`` plus ``iat``/``exp``.  Expiry is enforced
by PyJWT on decode.
"""
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

from articles_api.config import settings
from articles_api.exceptions import UnauthorizedError

# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def hash_password(raw_password: str) -> str:
    """Hash a raw password using bcrypt and return the utf-8 string."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(raw_password.encode(), salt).decode("utf-8")


def verify_password(raw_password: str, password_hash: str) -> bool:
    """Verify *raw_password* against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(raw_password.encode(), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

def create_access_token(user_id, email: str) -> str:
    """Sign an access token for the given user."""
    issued_at = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(seconds=settings.JWT_EXPIRES_IN)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token, raising UnauthorizedError on failure."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise UnauthorizedError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise UnauthorizedError("Invalid token") from exc
    return payload
