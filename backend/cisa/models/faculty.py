"""Faculty and department reference data used by the registration form."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class Faculty(SQLModel, table=True):
    __tablename__ = "faculties"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str = Field(index=True, unique=True)
    code: str | None = Field(default=None)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Department(SQLModel, table=True):
    __tablename__ = "departments"
    __table_args__ = (UniqueConstraint("faculty_id", "name"),)

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    faculty_id: str = Field(foreign_key="faculties.id", index=True)
    name: str
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# --- Pydantic schemas ---

class FacultyCreate(BaseModel):
    name: str
    code: str | None = None
    is_active: bool = True


class FacultyUpdate(BaseModel):
    name: str | None = None
    code: str | None = None
    is_active: bool | None = None


class DepartmentCreate(BaseModel):
    faculty_id: str
    name: str
    is_active: bool = True


class DepartmentUpdate(BaseModel):
    name: str | None = None
    is_active: bool | None = None


class DepartmentRead(BaseModel):
    id: str
    faculty_id: str
    name: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class FacultyRead(BaseModel):
    id: str
    name: str
    code: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    departments: list[DepartmentRead] = []

    model_config = {"from_attributes": True}
