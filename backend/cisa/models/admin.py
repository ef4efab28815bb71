"""Admin accounts for the back office."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel
from sqlmodel import Field, SQLModel


class Admin(SQLModel, table=True):
    __tablename__ = "admins"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    username: str = Field(index=True, unique=True)
    password_hash: str  # Argon2id PHC string, never the raw password
    name: str = Field(default="")
    email: str | None = Field(default=None, unique=True)
    role: str = Field(default="admin")
    is_active: bool = Field(default=True)
    last_login: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# --- Pydantic request/response schemas ---


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class AdminRead(BaseModel):
    id: str
    username: str
    name: str
    email: str | None
    role: str

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    message: str
    admin: AdminRead


class SessionRead(BaseModel):
    """Principal decoded from the session cookie."""

    admin_id: str
    username: str
    role: str
