"""
Access token utilities.

End-user tokens are issued by the hosted auth provider and signed with the
project's shared JWT secret. This service only verifies them; token creation
is kept for local tooling and tests.
"""
from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from prayerhouse.core.config import settings


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create an access token shaped like the auth provider's."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
    to_encode.update({"exp": expire})
    to_encode.setdefault("aud", settings.JWT_AUDIENCE)
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify an access token."""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            audience=settings.JWT_AUDIENCE
        )
        return payload
    except JWTError:
        return None


def display_name_from_claims(payload: dict) -> str:
    """Pick the display name the auth provider put in the token."""
    metadata = payload.get("user_metadata") or {}
    for candidate in (metadata.get("name"), metadata.get("full_name"), payload.get("name")):
        if candidate and str(candidate).strip():
            return str(candidate).strip()
    return "사용자"
