"""Password hashing and bearer tokens for portal users."""

import hashlib
import hmac
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from components.core.config import get_settings

ALGORITHM = "HS256"
SALT_BYTES = 32


def get_password_hash(password: str, salt: Optional[str] = None) -> str:
    """Salted sha256 digest, stored as ``salt:digest``."""
    salt = salt or os.urandom(SALT_BYTES).hex()
    digest = hashlib.sha256((salt + password).encode()).hexdigest()
    return f"{salt}:{digest}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    salt, sep, _ = hashed_password.partition(":")
    if not sep:
        return False
    return hmac.compare_digest(get_password_hash(plain_password, salt), hashed_password)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Signed token carrying ``data`` plus an expiry claim."""
    settings = get_settings()
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = dict(data, exp=datetime.now(timezone.utc) + lifetime)
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """Claims of a valid token, None for a missing, forged or expired one."""
    if not token:
        return None
    try:
        return jwt.decode(token, get_settings().SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def token_subject(token: Optional[str]) -> Optional[int]:
    """User id a token was issued for."""
    claims = verify_token(token)
    if claims is None:
        return None
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        return None
