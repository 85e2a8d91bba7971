"""
API dependencies for authentication.
"""
from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from prayerhouse.core.security import decode_access_token, display_name_from_claims

security = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """Authenticated user as resolved from the access token."""
    id: str
    name: str


def _resolve_user(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[CurrentUser]:
    if credentials is None:
        return None
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    return CurrentUser(id=str(user_id), name=display_name_from_claims(payload))


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> CurrentUser:
    """Get current authenticated user from token."""
    user = _resolve_user(credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="로그인이 필요합니다.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[CurrentUser]:
    """Current user if a valid token was sent, otherwise None (public pages)."""
    return _resolve_user(credentials)
