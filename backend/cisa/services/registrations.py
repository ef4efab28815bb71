"""Registration persistence helpers that depend on the field cipher.

Encrypted national IDs cannot be matched with a WHERE clause (every
envelope has a fresh IV), so uniqueness is checked by decrypting stored
values and comparing plaintext.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from cisa.models.registration import Registration, RegistrationRead
from cisa.services.field_cipher import FieldCipher, looks_encrypted, reveal_field

logger = logging.getLogger(__name__)


class RegistrationConflictError(Exception):
    """Raised when a commit hits the unique sequence or email constraint."""


@dataclass(frozen=True, slots=True)
class DuplicateCheck:
    national_id_taken: bool = False
    email_taken: bool = False
    # Set when a match was against unencrypted legacy data
    matched_legacy: bool = False
    # Rows that could not be compared because decryption failed
    skipped_undecryptable: int = 0

    @property
    def conflict(self) -> bool:
        return self.national_id_taken or self.email_taken


def next_sequence(session: Session) -> int:
    current = session.exec(select(func.max(Registration.sequence))).one()
    return (current or 0) + 1


def save_registration(session: Session, registration: Registration) -> Registration:
    """Commit a new or changed registration.

    A concurrent writer can take the same sequence number or email between
    the duplicate check and this commit; the transaction is rolled back and
    RegistrationConflictError raised instead of leaking IntegrityError.
    """
    session.add(registration)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning("Registration commit rejected by a unique constraint")
        raise RegistrationConflictError("Registration conflicts with an existing record") from exc
    session.refresh(registration)
    return registration


def find_duplicates(
    session: Session,
    cipher: FieldCipher,
    national_id: str,
    email: str,
    exclude_id: str | None = None,
) -> DuplicateCheck:
    """Check whether national_id or email is already registered.

    Legacy plaintext rows are compared as-is but reported through
    ``matched_legacy``. Undecryptable rows are skipped and counted.
    """
    email_stmt = select(Registration.id).where(func.lower(Registration.email) == email.lower())
    if exclude_id is not None:
        email_stmt = email_stmt.where(Registration.id != exclude_id)
    email_taken = session.exec(email_stmt).first() is not None

    id_stmt = select(Registration.id, Registration.national_id)
    if exclude_id is not None:
        id_stmt = id_stmt.where(Registration.id != exclude_id)

    national_id_taken = False
    matched_legacy = False
    skipped = 0
    for _row_id, stored in session.exec(id_stmt).all():
        revealed = reveal_field(cipher, stored)
        if revealed.undecryptable:
            skipped += 1
            continue
        if revealed.value == national_id:
            national_id_taken = True
            matched_legacy = revealed.legacy
            break

    if skipped:
        logger.warning(
            "Duplicate check skipped %d registration(s) with undecryptable national IDs", skipped
        )
    if matched_legacy:
        logger.info("Duplicate national ID matched an unencrypted legacy row")

    return DuplicateCheck(
        national_id_taken=national_id_taken,
        email_taken=email_taken,
        matched_legacy=matched_legacy,
        skipped_undecryptable=skipped,
    )


def to_read(registration: Registration, cipher: FieldCipher) -> RegistrationRead:
    """Build the admin view, revealing the national ID for this one row."""
    revealed = reveal_field(cipher, registration.national_id)
    data = registration.model_dump()
    data.update(
        national_id=revealed.value,
        national_id_legacy=revealed.legacy,
        national_id_undecryptable=revealed.undecryptable,
    )
    return RegistrationRead.model_validate(data)


def backfill_plaintext_national_ids(
    session: Session, cipher: FieldCipher, dry_run: bool = False
) -> int:
    """Encrypt national IDs still stored as plaintext. Returns rows affected."""
    rows = session.exec(select(Registration)).all()
    pending = [r for r in rows if not looks_encrypted(r.national_id)]
    if dry_run:
        return len(pending)
    for registration in pending:
        registration.national_id = cipher.encrypt(registration.national_id)
        session.add(registration)
    session.commit()
    logger.info("Encrypted %d legacy national ID(s)", len(pending))
    return len(pending)
