"""
Password hashing, access tokens and reset codes.

- Passwords: bcrypt (cost from settings.BCRYPT_ROUNDS).
- Tokens: HS256 JWT signed with settings.JWT_SECRET_KEY, claims:
    sub  user id (string UUID)
    iat  issue time (epoch seconds), compared against password_changed_at
    exp  expiry
- Reset codes: 6 random digits; only the sha256 hex digest is stored.
"""

import hashlib
import secrets
import string
import uuid
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any

import bcrypt
from jose import jwt, JWTError

from app.core.config import get_settings
from app.core.errors import UnauthorizedError
from app.core.time_utils import utc_now

settings = get_settings()

RESET_CODE_TTL_MINUTES = 10


# ---- passwords ----


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


@lru_cache
def dummy_password_hash() -> str:
    """
    Hash used to burn the same bcrypt time when a login email is unknown,
    so response timing doesn't reveal which accounts exist.
    """
    return hash_password("this-is-a-dummy-password")


def generate_temp_password(length: int = 16) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


# ---- tokens ----


def create_access_token(
    user_id: uuid.UUID,
    issued_at: datetime | None = None,
) -> str:
    """
    Issue a signed access token bound to `user_id`.

    `issued_at` defaults to now; tests pass an older value to simulate a
    token minted before a password change.
    """
    iat = issued_at or utc_now()
    claims = {
        "sub": str(user_id),
        "iat": int(iat.timestamp()),
        "exp": int((iat + timedelta(minutes=settings.JWT_EXPIRES_MINUTES)).timestamp()),
    }
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALG)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token (signature + exp).

    Raises:
        UnauthorizedError: if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALG],
        )
    except JWTError:
        raise UnauthorizedError("Invalid or expired token")


# ---- reset codes ----


def generate_reset_code() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


def hash_reset_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()
