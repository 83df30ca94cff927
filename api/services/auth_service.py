from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
import structlog

from api.config import settings

logger = structlog.get_logger()

# Login lives in the identity provider; this service only issues (for
# tooling) and verifies the access tokens it hands out.

# ---------- JWT key loading ----------

_private_key: Optional[str] = None
_public_key: Optional[str] = None


def _is_symmetric() -> bool:
    return settings.JWT_ALGORITHM.startswith("HS")


def _load_private_key() -> str:
    global _private_key
    if _is_symmetric():
        return settings.JWT_SECRET_KEY
    if _private_key is None:
        with open(settings.JWT_PRIVATE_KEY_PATH, "r") as f:
            _private_key = f.read()
    return _private_key


def _load_public_key() -> str:
    global _public_key
    if _is_symmetric():
        return settings.JWT_SECRET_KEY
    if _public_key is None:
        with open(settings.JWT_PUBLIC_KEY_PATH, "r") as f:
            _public_key = f.read()
    return _public_key


# ---------- token generation ----------

def create_access_token(
    user_id: str,
    role: str,
    email: str,
    vendor_id: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": role,
        "email": email,
        "iat": now,
        "exp": now + timedelta(
            minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
        ),
        "type": "access",
    }
    if vendor_id:
        claims["vendor_id"] = str(vendor_id)
    return jwt.encode(claims, _load_private_key(), algorithm=settings.JWT_ALGORITHM)


# ---------- token verification ----------

def decode_token(token: str) -> dict:
    """Decode and verify a JWT token. Raises JWTError on failure."""
    return jwt.decode(token, _load_public_key(), algorithms=[settings.JWT_ALGORITHM])


def verify_access_token(token: str) -> dict:
    """Verify an access token and return its claims."""
    payload = decode_token(token)
    if payload.get("type") != "access":
        raise JWTError("Not an access token")
    for claim in ("sub", "role"):
        if not payload.get(claim):
            raise JWTError(f"Missing '{claim}' claim")
    return payload
