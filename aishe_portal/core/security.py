# aishe_portal/core/security.py
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from passlib.context import CryptContext

from aishe_portal.core.config import settings
from aishe_portal.core.errors import UnauthorizedError

# 1. Configuration
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)
ALGORITHM = "HS256"


# 2. Password Handling
def _pre_hash_password(password: str) -> str:
    """
    Handle the 'bcrypt 72-byte limit' safely.
    Passwords longer than 72 bytes are SHA-256 hashed first so every byte
    still counts; the 64-char hexdigest fits inside the limit.
    """
    if len(password.encode('utf-8')) <= 72:
        return password
    return hashlib.sha256(password.encode('utf-8')).hexdigest()


def hash_password(password: str) -> str:
    return pwd_context.hash(_pre_hash_password(password))


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Fails closed: a missing or unrecognised digest never verifies."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(_pre_hash_password(plain_password), hashed_password)
    except (ValueError, TypeError):
        return False


# 3. Token Creation
class TokenError(UnauthorizedError):
    default_message = "Invalid token"


def create_access_token(
    claims: dict[str, Any],
    secret: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> str:
    issued_at = now or datetime.now(timezone.utc)
    ttl = expires_delta or timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS)

    to_encode = dict(claims)
    to_encode.update({"iat": issued_at, "exp": issued_at + ttl})

    return jwt.encode(to_encode, secret or settings.JWT_SECRET, algorithm=ALGORITHM)


# 4. Decoding
def decode_token(
    token: str,
    secret: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Verify signature and expiry and return the claims.
    `now` replaces the wall clock for the expiry check.
    """
    try:
        payload = jwt.decode(
            token,
            secret or settings.JWT_SECRET,
            algorithms=[ALGORITHM],
            options={"require": ["exp"], "verify_exp": now is None, "verify_iat": False},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token expired")
    except jwt.InvalidTokenError:
        raise TokenError("Invalid token")

    if now is not None and payload["exp"] <= now.timestamp():
        raise TokenError("Token expired")

    return payload


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise TokenError("No token provided")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise TokenError("No token provided")
    return token
