from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import Session, col, select

from cisa.db import get_session
from cisa.dependencies import get_cipher, require_admin
from cisa.models.registration import (
    AdminRegistrationCreate,
    Registration,
    RegistrationRead,
    RegistrationSummary,
    RegistrationUpdate,
)
from cisa.services.field_cipher import FieldCipher, protect_field
from cisa.services.registrations import (
    RegistrationConflictError,
    find_duplicates,
    next_sequence,
    save_registration,
    to_read,
)
from cisa.services.tokens import Principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

RECENT_LIMIT = 5
MONTHLY_WINDOW = 6  # calendar months, current month included
DETAIL_TYPES = ("faculty", "position")


class RegistrationList(BaseModel):
    registrations: list[RegistrationRead]
    undecryptable_count: int


class FacultyCount(BaseModel):
    faculty: str
    count: int


class PositionCount(BaseModel):
    position: str
    count: int


class MonthCount(BaseModel):
    month: str  # "YYYY-MM"
    count: int


class Stats(BaseModel):
    total: int
    active: int
    inactive: int
    by_faculty: list[FacultyCount]
    by_position: list[PositionCount]
    recent: list[RegistrationSummary]
    monthly: list[MonthCount]


class StatsDetails(BaseModel):
    type: str
    value: str
    registrations: list[RegistrationSummary]


def _raise_on_duplicate(db: Session, cipher: FieldCipher, body, exclude_id: str | None = None) -> None:
    check = find_duplicates(db, cipher, body.national_id, body.email, exclude_id=exclude_id)
    if check.email_taken:
        raise HTTPException(status_code=400, detail="This email is already in use")
    if check.national_id_taken:
        raise HTTPException(status_code=400, detail="This national ID is already in use")


def _save(db: Session, registration: Registration) -> None:
    try:
        save_registration(db, registration)
    except RegistrationConflictError:
        raise HTTPException(
            status_code=409, detail="Registration conflicted with another change, please retry"
        )


def _month_window_start(now: datetime, months: int) -> datetime:
    """First instant of the month ``months - 1`` months before ``now``."""
    index = now.year * 12 + (now.month - 1) - (months - 1)
    return datetime(index // 12, index % 12 + 1, 1, tzinfo=timezone.utc)


@router.get("/registrations", response_model=RegistrationList)
async def list_registrations(
    _admin: Principal = Depends(require_admin),
    cipher: FieldCipher = Depends(get_cipher),
    db: Session = Depends(get_session),
) -> RegistrationList:
    """All registrations, newest first, with national IDs revealed.

    A row that fails to decrypt is returned with the sentinel value instead
    of failing the whole listing.
    """
    rows = db.exec(select(Registration).order_by(col(Registration.created_at).desc())).all()
    items = [to_read(r, cipher) for r in rows]
    undecryptable = sum(1 for item in items if item.national_id_undecryptable)
    if undecryptable:
        logger.warning("%d registration(s) have undecryptable national IDs", undecryptable)
    return RegistrationList(registrations=items, undecryptable_count=undecryptable)


@router.post("/registrations", response_model=RegistrationRead, status_code=201)
async def create_registration(
    body: AdminRegistrationCreate,
    admin: Principal = Depends(require_admin),
    cipher: FieldCipher = Depends(get_cipher),
    db: Session = Depends(get_session),
) -> RegistrationRead:
    _raise_on_duplicate(db, cipher, body)

    data = body.model_dump()
    data["national_id"] = protect_field(body.national_id)
    registration = Registration(sequence=next_sequence(db), **data)
    _save(db, registration)
    logger.info("Admin %s created registration %s", admin.username, registration.id)
    return to_read(registration, cipher)


@router.get("/registrations/{registration_id}", response_model=RegistrationRead)
async def get_registration(
    registration_id: str,
    _admin: Principal = Depends(require_admin),
    cipher: FieldCipher = Depends(get_cipher),
    db: Session = Depends(get_session),
) -> RegistrationRead:
    registration = db.get(Registration, registration_id)
    if registration is None:
        raise HTTPException(status_code=404, detail="Registration not found")
    return to_read(registration, cipher)


@router.put("/registrations/{registration_id}", response_model=RegistrationRead)
async def update_registration(
    registration_id: str,
    body: RegistrationUpdate,
    admin: Principal = Depends(require_admin),
    cipher: FieldCipher = Depends(get_cipher),
    db: Session = Depends(get_session),
) -> RegistrationRead:
    registration = db.get(Registration, registration_id)
    if registration is None:
        raise HTTPException(status_code=404, detail="Registration not found")

    _raise_on_duplicate(db, cipher, body, exclude_id=registration_id)

    for field, value in body.model_dump().items():
        setattr(registration, field, value)
    # Re-encrypt on every save; this also upgrades legacy plaintext rows.
    registration.national_id = protect_field(body.national_id)
    registration.updated_at = datetime.now(timezone.utc)
    _save(db, registration)
    logger.info("Admin %s updated registration %s", admin.username, registration.id)
    return to_read(registration, cipher)


@router.delete("/registrations/{registration_id}")
async def delete_registration(
    registration_id: str,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_session),
) -> dict:
    registration = db.get(Registration, registration_id)
    if registration is None:
        raise HTTPException(status_code=404, detail="Registration not found")
    db.delete(registration)
    db.commit()
    logger.info("Admin %s deleted registration %s", admin.username, registration_id)
    return {"message": "Registration deleted"}


@router.get("/stats", response_model=Stats)
async def stats(
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_session),
) -> Stats:
    """Dashboard counters, the latest registrations and a monthly series."""
    by_status = dict(
        db.exec(select(Registration.status, func.count()).group_by(Registration.status)).all()
    )
    by_faculty = db.exec(
        select(Registration.faculty, func.count())
        .group_by(Registration.faculty)
        .order_by(func.count().desc(), Registration.faculty)
    ).all()
    by_position = db.exec(
        select(Registration.academic_position, func.count())
        .group_by(Registration.academic_position)
        .order_by(func.count().desc(), Registration.academic_position)
    ).all()
    recent = db.exec(
        select(Registration).order_by(col(Registration.created_at).desc()).limit(RECENT_LIMIT)
    ).all()

    # SQLite stores datetimes as ISO text, so the month key is its prefix
    month = func.strftime("%Y-%m", Registration.created_at)
    window_start = _month_window_start(datetime.now(timezone.utc), MONTHLY_WINDOW)
    monthly = db.exec(
        select(month, func.count())
        .where(Registration.created_at >= window_start.replace(tzinfo=None))
        .group_by(month)
        .order_by(month.desc())
    ).all()

    return Stats(
        total=sum(by_status.values()),
        active=by_status.get("active", 0),
        inactive=by_status.get("inactive", 0),
        by_faculty=[FacultyCount(faculty=f, count=n) for f, n in by_faculty],
        by_position=[PositionCount(position=p, count=n) for p, n in by_position],
        recent=[RegistrationSummary.model_validate(r) for r in recent],
        monthly=[MonthCount(month=m, count=n) for m, n in monthly],
    )


@router.get("/stats/details", response_model=StatsDetails)
async def stats_details(
    kind: str | None = Query(default=None, alias="type"),
    value: str | None = None,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_session),
) -> StatsDetails:
    """Registrations behind one bar of the faculty or position chart."""
    if not kind or not value:
        raise HTTPException(status_code=400, detail="Missing type or value parameter")
    if kind not in DETAIL_TYPES:
        raise HTTPException(status_code=400, detail="Invalid type parameter")

    column = Registration.faculty if kind == "faculty" else Registration.academic_position
    rows = db.exec(
        select(Registration).where(column == value).order_by(col(Registration.created_at).desc())
    ).all()
    return StatsDetails(
        type=kind,
        value=value,
        registrations=[RegistrationSummary.model_validate(r) for r in rows],
    )
