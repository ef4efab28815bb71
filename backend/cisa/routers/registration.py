"""Public registration endpoints."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from cisa.db import get_session
from cisa.dependencies import get_cipher, require_admin
from cisa.models.registration import (
    Registration,
    RegistrationCreate,
    RegistrationCreated,
    RegistrationPublic,
    StatusUpdate,
)
from cisa.services.field_cipher import FieldCipher, mask_national_id, protect_field
from cisa.services.registrations import (
    RegistrationConflictError,
    find_duplicates,
    next_sequence,
    save_registration,
)
from cisa.services.tokens import Principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["registration"])


@router.post("/registration", response_model=RegistrationCreated, status_code=201)
async def register(
    body: RegistrationCreate,
    db: Session = Depends(get_session),
    cipher: FieldCipher = Depends(get_cipher),
) -> RegistrationCreated:
    check = find_duplicates(db, cipher, body.national_id, body.email)
    if check.national_id_taken:
        logger.info("Rejected duplicate registration for national ID %s", mask_national_id(body.national_id))
        raise HTTPException(status_code=400, detail="This national ID is already registered")
    if check.email_taken:
        raise HTTPException(status_code=400, detail="This email is already registered")

    data = body.model_dump()
    data["national_id"] = protect_field(body.national_id)
    registration = Registration(sequence=next_sequence(db), **data)
    try:
        save_registration(db, registration)
    except RegistrationConflictError:
        raise HTTPException(
            status_code=409, detail="Registration conflicted with another submission, please retry"
        )
    logger.info("Registration %s created (sequence %d)", registration.id, registration.sequence)
    return RegistrationCreated(id=registration.id, sequence=registration.sequence)


@router.get("/registrations", response_model=list[RegistrationPublic])
async def list_registrations(db: Session = Depends(get_session)) -> list[RegistrationPublic]:
    rows = db.exec(select(Registration).order_by(Registration.sequence)).all()
    return [RegistrationPublic.model_validate(r) for r in rows]


@router.patch("/registrations/{registration_id}/status", response_model=RegistrationPublic)
async def update_status(
    registration_id: str,
    body: StatusUpdate,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_session),
) -> RegistrationPublic:
    registration = db.get(Registration, registration_id)
    if registration is None:
        raise HTTPException(status_code=404, detail="Registration not found")
    registration.status = body.status
    registration.updated_at = datetime.now(timezone.utc)
    db.add(registration)
    db.commit()
    db.refresh(registration)
    return RegistrationPublic.model_validate(registration)
