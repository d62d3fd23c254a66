# =============================================================================
# Auth Dependencies — Service Bearer Token
# =============================================================================
#
# The function endpoints (/process, /embed, /search) are called by the
# ingestion trigger worker and by trusted backends with
# `Authorization: Bearer <SERVICE_TOKEN>`.
#
#   SERVICE_TOKEN unset            → 500 {"error": "Missing environment variables."}
#   no Authorization header        → 500 {"error": "No authorization header passed"}
#   token mismatch                 → 401
#   AUTH_ENABLED=false             → no checks (local development)
#
# HTTPBearer(auto_error=False) so a missing header reaches this dependency
# instead of FastAPI's default 403.
# =============================================================================

from __future__ import annotations

import hmac
import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from docsearch.config import Settings, get_settings
from docsearch.errors import ConfigurationError, MissingAuthorizationError

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


async def require_service_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> None:
    """FastAPI dependency enforcing the service bearer token."""
    if not settings.auth_enabled:
        return

    if not settings.service_token:
        logger.error("SERVICE_TOKEN is not configured")
        raise ConfigurationError("Missing environment variables.")

    if credentials is None:
        raise MissingAuthorizationError("No authorization header passed")

    if not hmac.compare_digest(credentials.credentials, settings.service_token):
        raise HTTPException(
            status_code=401,
            detail="Invalid service token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
