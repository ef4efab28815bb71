#!/usr/bin/env python3
"""Encrypt national IDs that were stored before field encryption existed.

Once this has run against a database, no registration holds plaintext and
the legacy passthrough on read is never taken.
"""

from __future__ import annotations

import argparse
import os
import sys

# Allow running from repo root: add backend/ to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from sqlmodel import Session

import cisa.models  # noqa: F401
from cisa.db import engine
from cisa.services.field_cipher import CipherConfigError, get_field_cipher
from cisa.services.registrations import backfill_plaintext_national_ids


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Encrypt legacy plaintext national IDs in place."
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report how many rows would be encrypted",
    )
    args = parser.parse_args()

    try:
        cipher = get_field_cipher()
    except CipherConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    with Session(engine) as session:
        count = backfill_plaintext_national_ids(session, cipher, dry_run=args.dry_run)

    if args.dry_run:
        print(f"{count} registration(s) still hold plaintext national IDs")
    else:
        print(f"Encrypted {count} registration(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
