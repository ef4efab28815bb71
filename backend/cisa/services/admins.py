"""Admin account provisioning."""

from __future__ import annotations

import logging

from sqlmodel import Session, or_, select

from cisa.models.admin import Admin
from cisa.utils.crypto import hash_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AdminExistsError(Exception):
    """Raised when the username or email is already taken."""


def create_admin(
    session: Session,
    username: str,
    password: str,
    name: str = "",
    email: str | None = None,
    role: str = "admin",
) -> Admin:
    username = username.strip()
    if not username:
        raise ValueError("Username cannot be empty")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    clauses = [Admin.username == username]
    if email:
        clauses.append(Admin.email == email)
    if session.exec(select(Admin).where(or_(*clauses))).first() is not None:
        raise AdminExistsError(f"Admin '{username}' or its email already exists")

    admin = Admin(
        username=username,
        password_hash=hash_password(password),
        name=name,
        email=email or None,
        role=role,
        is_active=True,
    )
    session.add(admin)
    session.commit()
    session.refresh(admin)
    logger.info("Created admin %s", username)
    return admin


def ensure_bootstrap_admin(session: Session, username: str, password: str) -> bool:
    """Create the configured first admin if it does not exist yet.

    Returns True when an account was created.
    """
    if not username or not password:
        return False
    if session.exec(select(Admin).where(Admin.username == username)).first() is not None:
        return False
    create_admin(session, username, password, name="System Administrator")
    return True
