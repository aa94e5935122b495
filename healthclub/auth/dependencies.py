# healthclub/auth/dependencies.py
from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from healthclub.config.settings import settings
from healthclub.db.database import get_db
from healthclub.errors import AuthError
from healthclub.models.api_key import ApiKey
from healthclub.services.api_keys import verify_api_key

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
cron_secret_header = APIKeyHeader(name="x-cron-secret", auto_error=False)


def _bearer_value(bearer: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if bearer and getattr(bearer, "scheme", "").lower() == "bearer":
        return bearer.credentials.strip()
    return None


def require_api_key(
    db: Session = Depends(get_db),
    header_key: Optional[str] = Security(api_key_header),
    bearer: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> ApiKey:
    """
    Mobile app endpoints.
    X-API-Key first, otherwise Authorization: Bearer <key>.
    """
    plain = header_key or _bearer_value(bearer)
    if not plain:
        raise AuthError("Unauthorized. Valid API key required.")

    key = verify_api_key(db, plain)
    if key is None:
        raise AuthError("Unauthorized. Valid API key required.")
    return key


def require_cron_secret(
    request: Request,
    header_secret: Optional[str] = Security(cron_secret_header),
    bearer: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> None:
    """
    Cron triggers and operator endpoints.
    x-cron-secret first, otherwise Authorization: Bearer <secret>.
    With no CRON_SECRET configured the check is open, except in production.
    """
    expected = settings.cron_secret
    if not expected:
        if settings.is_production:
            logger.error("[auth] CRON_SECRET is not configured; rejecting %s", request.url.path)
            raise AuthError("Unauthorized. Valid CRON_SECRET required.")
        logger.warning("[auth] CRON_SECRET not set, allowing %s (development)", request.url.path)
        return

    provided = header_secret or _bearer_value(bearer)
    if not provided or not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise AuthError("Unauthorized. Valid CRON_SECRET required.")


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.headers.get("x-real-ip"):
        return request.headers.get("x-real-ip")
    return request.client.host if request.client else None
