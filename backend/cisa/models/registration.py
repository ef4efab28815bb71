"""Registration model: staff/faculty requests for system access.

``national_id`` is stored as a field-cipher envelope
(``<ivHex>:<tagHex>:<ciphertextHex>``), never as plaintext. Rows written
before encryption was introduced may still hold plaintext until the
backfill script has run.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field as PydanticField, field_validator
from sqlmodel import Field, SQLModel

Prefix = Literal["นาย", "นาง", "นางสาว"]
AcademicPosition = Literal["อาจารย์", "ผู้ช่วยศาสตราจารย์", "รองศาสตราจารย์", "ศาสตราจารย์"]
RegistrationStatus = Literal["active", "inactive"]

NATIONAL_ID_PATTERN = r"^[0-9]{13}$"
PHONE_PATTERN = r"^[0-9]{9,10}$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class Registration(SQLModel, table=True):
    __tablename__ = "registrations"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    sequence: int = Field(index=True, unique=True)
    prefix: str
    first_name_th: str
    last_name_th: str
    first_name_en: str
    last_name_en: str
    national_id: str  # envelope; see module docstring
    email: str = Field(index=True, unique=True)
    phone_number: str
    faculty: str
    department: str
    academic_position: str
    administrative_position: str | None = Field(default=None)
    role: str = Field(default="user")
    status: str = Field(default="active")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# --- Pydantic request/response schemas ---


class RegistrationCreate(BaseModel):
    """Public registration form payload."""

    prefix: Prefix
    first_name_th: str = PydanticField(min_length=1)
    last_name_th: str = PydanticField(min_length=1)
    first_name_en: str = PydanticField(min_length=1)
    last_name_en: str = PydanticField(min_length=1)
    national_id: str = PydanticField(pattern=NATIONAL_ID_PATTERN)
    email: str = PydanticField(pattern=EMAIL_PATTERN)
    phone_number: str = PydanticField(pattern=PHONE_PATTERN)
    faculty: str = PydanticField(min_length=1)
    department: str = PydanticField(min_length=1)
    academic_position: AcademicPosition
    administrative_position: str | None = None

    @field_validator(
        "first_name_th", "last_name_th", "first_name_en", "last_name_en",
        "national_id", "email", "phone_number", "faculty", "department",
        mode="before",
    )
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("administrative_position")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()


class AdminRegistrationCreate(RegistrationCreate):
    """Admin-entered registration; may also set the account role."""

    role: str = "user"


class RegistrationUpdate(AdminRegistrationCreate):
    """Full replacement of an existing registration (PUT)."""


class StatusUpdate(BaseModel):
    status: RegistrationStatus


class RegistrationCreated(BaseModel):
    id: str
    sequence: int


class RegistrationSummary(BaseModel):
    """Short row for dashboard lists and chart drill-downs."""

    id: str
    sequence: int
    first_name_th: str
    last_name_th: str
    faculty: str
    academic_position: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class RegistrationPublic(BaseModel):
    """Listing row for the public endpoint, without national ID or phone."""

    id: str
    sequence: int
    prefix: str
    first_name_th: str
    last_name_th: str
    first_name_en: str
    last_name_en: str
    email: str
    faculty: str
    department: str
    academic_position: str
    administrative_position: str | None
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class RegistrationRead(RegistrationPublic):
    """Admin view with the national ID revealed.

    ``national_id`` is UNDECRYPTABLE when the stored envelope fails to
    decrypt; ``national_id_legacy`` marks unencrypted pre-migration values.
    """

    national_id: str
    national_id_legacy: bool = False
    national_id_undecryptable: bool = False
    phone_number: str
    role: str
    updated_at: datetime
