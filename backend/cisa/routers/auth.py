"""Auth endpoints: login, logout, session verification.

Username/password login against Argon2 hashes; the session is an HS256
JWT carried in the HttpOnly ``admin-token`` cookie.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlmodel import Session, select

from cisa.config import get_settings
from cisa.db import get_session
from cisa.dependencies import get_tokens, verify_session
from cisa.middleware import clear_session_cookie
from cisa.models.admin import Admin, AdminRead, LoginRequest, LoginResponse, SessionRead
from cisa.services.session_gate import SESSION_COOKIE_NAME
from cisa.services.tokens import Principal, TokenService
from cisa.utils.crypto import verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _set_session_cookie(response: Response, token: str, tokens: TokenService) -> None:
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        max_age=int(tokens.ttl.total_seconds()),
        path="/",
        httponly=True,
        samesite="lax",
        secure=get_settings().secure_cookies,
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    response: Response,
    db: Session = Depends(get_session),
    tokens: TokenService = Depends(get_tokens),
) -> LoginResponse:
    """Verify credentials, issue a session token and set the cookie."""
    username = body.username.strip()
    if not username or not body.password:
        raise HTTPException(status_code=400, detail="Username and password are required")

    admin = db.exec(select(Admin).where(Admin.username == username)).first()
    if admin is None or not verify_password(admin.password_hash, body.password):
        logger.info("Failed login for %s", username)
        raise HTTPException(status_code=401, detail="Invalid username or password")
    if not admin.is_active:
        logger.info("Login refused for inactive admin %s", username)
        raise HTTPException(status_code=401, detail="Account is disabled")

    admin.last_login = datetime.now(timezone.utc)
    db.add(admin)
    db.commit()
    db.refresh(admin)

    token = tokens.issue(Principal(id=admin.id, username=admin.username, role=admin.role))
    _set_session_cookie(response, token, tokens)
    logger.info("Admin %s logged in", admin.username)
    return LoginResponse(message="Login successful", admin=AdminRead.model_validate(admin))


@router.post("/logout")
async def logout(response: Response) -> dict:
    """Clear the session cookie. Works with or without a valid session."""
    clear_session_cookie(response, SESSION_COOKIE_NAME, get_settings().secure_cookies)
    return {"message": "Logged out"}


@router.delete("/login")
async def logout_via_delete(response: Response) -> dict:
    clear_session_cookie(response, SESSION_COOKIE_NAME, get_settings().secure_cookies)
    return {"message": "Logged out"}


@router.get("/verify", response_model=SessionRead)
async def verify(principal: Principal | None = Depends(verify_session)) -> SessionRead:
    if principal is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return SessionRead(admin_id=principal.id, username=principal.username, role=principal.role)
