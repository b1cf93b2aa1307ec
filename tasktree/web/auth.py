"""
Caller identity extraction from auth-proxy headers
"""

from typing import Optional
from fastapi import Request
from pydantic import BaseModel
from tasktree.config.settings import settings
from tasktree.config.constants import (
    PRINCIPAL_ID_HEADER,
    PRINCIPAL_NAME_HEADER,
    PRINCIPAL_IDP_HEADER,
)
from tasktree.utils.error_handler import AuthenticationError
from tasktree.utils.logger import logger


class CallerIdentity(BaseModel):
    """Authenticated caller"""
    id: str
    name: Optional[str] = None
    provider: str = "unknown"


def get_caller(request: Request) -> CallerIdentity:
    """
    Resolve the caller from headers injected by the authenticating proxy

    In dev mode a request without identity headers runs as the configured
    development user.

    Raises:
        AuthenticationError: No caller id and dev mode is off
    """
    user_id = request.headers.get(PRINCIPAL_ID_HEADER, "").strip()
    user_name = request.headers.get(PRINCIPAL_NAME_HEADER)

    if not user_id:
        if settings.DEV_MODE:
            logger.debug("[Auth] Development mode: using test user")
            return CallerIdentity(
                id=settings.DEV_USER_ID,
                name=settings.DEV_USER_NAME,
                provider="local",
            )
        raise AuthenticationError("Authentication required. Please log in.")

    return CallerIdentity(
        id=user_id,
        name=user_name,
        provider=request.headers.get(PRINCIPAL_IDP_HEADER, "unknown"),
    )
