"""Tests for backend/cisa/services/registrations.py and services/admins.py."""
from __future__ import annotations

import os

import pytest
from sqlmodel import select

from cisa.models.admin import Admin
from cisa.models.registration import Registration
from cisa.services.admins import AdminExistsError, create_admin, ensure_bootstrap_admin
from cisa.services.field_cipher import FieldCipher, looks_encrypted
from cisa.services.registrations import (
    RegistrationConflictError,
    backfill_plaintext_national_ids,
    find_duplicates,
    next_sequence,
    save_registration,
    to_read,
)


def _add(session, national_id: str, email: str, sequence: int, make_payload) -> Registration:
    payload = make_payload(email=email)
    payload["national_id"] = national_id
    row = Registration(sequence=sequence, **payload)
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


class TestNextSequence:
    def test_empty_table(self, session):
        assert next_sequence(session) == 1

    def test_after_gap(self, session, cipher, make_payload):
        _add(session, cipher.encrypt("1"), "a@x.ac.th", 7, make_payload)
        assert next_sequence(session) == 8


class TestSaveRegistration:
    def test_saves(self, session, cipher, make_payload):
        row = Registration(sequence=1, **{**make_payload(), "national_id": cipher.encrypt("1")})
        assert save_registration(session, row).id is not None
        assert session.exec(select(Registration)).one().sequence == 1

    def test_duplicate_sequence_raises_and_rolls_back(self, session, cipher, make_payload):
        _add(session, cipher.encrypt("1"), "a@x.ac.th", 1, make_payload)
        clash = Registration(sequence=1, **{**make_payload(email="b@x.ac.th"), "national_id": "x"})
        with pytest.raises(RegistrationConflictError):
            save_registration(session, clash)
        # Session is usable again after the rollback
        assert len(session.exec(select(Registration)).all()) == 1

    def test_duplicate_email_raises(self, session, cipher, make_payload):
        _add(session, cipher.encrypt("1"), "a@x.ac.th", 1, make_payload)
        clash = Registration(sequence=2, **{**make_payload(email="a@x.ac.th"), "national_id": "x"})
        with pytest.raises(RegistrationConflictError):
            save_registration(session, clash)


class TestFindDuplicates:
    def test_no_rows(self, session, cipher):
        check = find_duplicates(session, cipher, "1234567890123", "a@x.ac.th")
        assert check.conflict is False

    def test_encrypted_match(self, session, cipher, make_payload):
        _add(session, cipher.encrypt("1234567890123"), "a@x.ac.th", 1, make_payload)
        check = find_duplicates(session, cipher, "1234567890123", "b@x.ac.th")
        assert check.national_id_taken is True
        assert check.email_taken is False
        assert check.matched_legacy is False

    def test_legacy_match_is_reported(self, session, cipher, make_payload):
        _add(session, "1234567890123", "a@x.ac.th", 1, make_payload)
        check = find_duplicates(session, cipher, "1234567890123", "b@x.ac.th")
        assert check.national_id_taken is True
        assert check.matched_legacy is True

    def test_email_match_ignores_case(self, session, cipher, make_payload):
        _add(session, cipher.encrypt("1"), "Mixed@X.ac.th", 1, make_payload)
        check = find_duplicates(session, cipher, "2", "mixed@x.ac.th")
        assert check.email_taken is True
        assert check.national_id_taken is False

    def test_exclude_self(self, session, cipher, make_payload):
        row = _add(session, cipher.encrypt("1234567890123"), "a@x.ac.th", 1, make_payload)
        check = find_duplicates(session, cipher, "1234567890123", "a@x.ac.th", exclude_id=row.id)
        assert check.conflict is False

    def test_undecryptable_rows_are_skipped(self, session, cipher, make_payload):
        foreign = FieldCipher(os.urandom(32))
        _add(session, foreign.encrypt("1234567890123"), "a@x.ac.th", 1, make_payload)
        check = find_duplicates(session, cipher, "1234567890123", "b@x.ac.th")
        assert check.national_id_taken is False
        assert check.skipped_undecryptable == 1


class TestToRead:
    def test_reveals(self, session, cipher, make_payload):
        row = _add(session, cipher.encrypt("1234567890123"), "a@x.ac.th", 1, make_payload)
        read = to_read(row, cipher)
        assert read.national_id == "1234567890123"
        assert read.national_id_undecryptable is False
        # The stored row is untouched
        assert looks_encrypted(row.national_id)


class TestBackfill:
    def test_encrypts_only_plaintext_rows(self, session, cipher, make_payload):
        encrypted = cipher.encrypt("1111111111111")
        _add(session, encrypted, "a@x.ac.th", 1, make_payload)
        _add(session, "2222222222222", "b@x.ac.th", 2, make_payload)

        assert backfill_plaintext_national_ids(session, cipher) == 1
        rows = {r.sequence: r for r in session.exec(select(Registration)).all()}
        assert rows[1].national_id == encrypted
        assert cipher.decrypt(rows[2].national_id) == "2222222222222"

        # Second run has nothing left to do
        assert backfill_plaintext_national_ids(session, cipher) == 0

    def test_dry_run_changes_nothing(self, session, cipher, make_payload):
        _add(session, "2222222222222", "b@x.ac.th", 1, make_payload)
        assert backfill_plaintext_national_ids(session, cipher, dry_run=True) == 1
        row = session.exec(select(Registration)).one()
        assert row.national_id == "2222222222222"


class TestAdminProvisioning:
    def test_create_hashes_password(self, session):
        admin = create_admin(session, "  root  ", "long-enough-pw")
        assert admin.username == "root"
        assert admin.password_hash.startswith("$argon2")
        assert admin.is_active is True
        assert admin.role == "admin"

    def test_short_password(self, session):
        with pytest.raises(ValueError, match="at least"):
            create_admin(session, "root", "short")

    def test_empty_username(self, session):
        with pytest.raises(ValueError, match="Username"):
            create_admin(session, "   ", "long-enough-pw")

    def test_duplicate_username(self, session):
        create_admin(session, "root", "long-enough-pw")
        with pytest.raises(AdminExistsError):
            create_admin(session, "root", "another-password")

    def test_duplicate_email(self, session):
        create_admin(session, "one", "long-enough-pw", email="a@x.ac.th")
        with pytest.raises(AdminExistsError):
            create_admin(session, "two", "long-enough-pw", email="a@x.ac.th")

    def test_bootstrap_once(self, session):
        assert ensure_bootstrap_admin(session, "boot", "long-enough-pw") is True
        assert ensure_bootstrap_admin(session, "boot", "long-enough-pw") is False
        assert len(session.exec(select(Admin)).all()) == 1

    def test_bootstrap_disabled_without_credentials(self, session):
        assert ensure_bootstrap_admin(session, "", "") is False
        assert session.exec(select(Admin)).first() is None
