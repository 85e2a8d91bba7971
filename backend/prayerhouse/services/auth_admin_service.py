"""
Admin calls against the hosted auth service.
"""
import logging
from typing import Optional
import httpx
from prayerhouse.core.config import settings
from prayerhouse.core.errors import ConfigurationMissing, UpstreamError

logger = logging.getLogger(__name__)


def delete_auth_user(user_id: str, client: Optional[httpx.Client] = None) -> None:
    """
    Delete a user account with the service role key.

    Raises ConfigurationMissing when the auth service is not configured and
    UpstreamError when the service rejects the call.
    """
    if not settings.AUTH_SERVICE_URL or not settings.AUTH_SERVICE_ROLE_KEY:
        logger.error("AUTH_SERVICE_URL or AUTH_SERVICE_ROLE_KEY is not configured")
        raise ConfigurationMissing("서버 설정이 필요합니다. AUTH_SERVICE_ROLE_KEY를 설정해주세요.")

    url = f"{settings.AUTH_SERVICE_URL.rstrip('/')}/auth/v1/admin/users/{user_id}"
    headers = {
        "apikey": settings.AUTH_SERVICE_ROLE_KEY,
        "Authorization": f"Bearer {settings.AUTH_SERVICE_ROLE_KEY}",
    }

    owns_client = client is None
    client = client or httpx.Client(timeout=settings.AUTH_ADMIN_TIMEOUT)
    try:
        logger.info(f"Deleting auth user {user_id}")
        response = client.delete(url, headers=headers)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        error_text = e.response.text[:200] if e.response.text else ""
        logger.error(f"Auth admin HTTP error: {e.response.status_code} - {error_text}")
        raise UpstreamError(f"계정 삭제에 실패했습니다: {error_text or e.response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"Auth admin network error: {e}")
        raise UpstreamError(f"계정 삭제에 실패했습니다: {e}")
    finally:
        if owns_client:
            client.close()
