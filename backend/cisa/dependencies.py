"""FastAPI dependency injection for session verification and the field cipher."""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request
from sqlmodel import Session

from cisa.config import get_settings
from cisa.db import get_session
from cisa.models.admin import Admin
from cisa.services.field_cipher import FieldCipher, get_field_cipher
from cisa.services.session_gate import SESSION_COOKIE_NAME
from cisa.services.tokens import Principal, TokenExpired, TokenOk, TokenService, get_token_service

logger = logging.getLogger(__name__)


def get_tokens() -> TokenService:
    return get_token_service()


def get_cipher() -> FieldCipher:
    return get_field_cipher()


def verify_session(
    request: Request,
    tokens: TokenService = Depends(get_tokens),
) -> Principal | None:
    """Return the principal from the admin-token cookie, or None.

    Invalid and expired tokens both yield None; the reason is only logged.
    """
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None
    result = tokens.verify(token)
    if isinstance(result, TokenOk):
        return result.principal
    if isinstance(result, TokenExpired):
        logger.info("Expired session token on %s", request.url.path)
    else:
        logger.warning("Invalid session token on %s: %s", request.url.path, result.reason)
    return None


def require_admin(
    principal: Principal | None = Depends(verify_session),
    session: Session = Depends(get_session),
) -> Principal:
    """Guard for admin API endpoints.

    Raises HTTPException 401 when there is no valid session. When
    REVALIDATE_PRINCIPAL is on, the admin row is re-read so deactivated
    or deleted accounts lose access before their token expires.
    """
    if principal is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if get_settings().revalidate_principal:
        admin = session.get(Admin, principal.id)
        if admin is None or not admin.is_active:
            logger.warning("Session for inactive or missing admin %s rejected", principal.username)
            raise HTTPException(status_code=401, detail="Unauthorized")
    return principal
