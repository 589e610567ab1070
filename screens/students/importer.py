# app/screens/students/importer.py
from __future__ import annotations

import logging
import re
from typing import List, Tuple

import pandas as pd
from sqlalchemy import text as sa_text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from screens.students.db import create_user

log = logging.getLogger(__name__)

REQUIRED_COLS = ["first_name", "last_name", "email"]
OPTIONAL_COLS = ["phone_number", "father_name", "program", "previous_school", "enquiry_level"]

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def enquiry_template() -> pd.DataFrame:
    return pd.DataFrame(columns=REQUIRED_COLS + OPTIONAL_COLS)


def _cell(row, name: str) -> str:
    value = getattr(row, name, "")
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def import_enquiries(
    conn: Connection,
    df_import: pd.DataFrame,
    default_level: int = 1,
    rounds: int = 12,
) -> Tuple[int, int, List[str]]:
    """
    Create one enquiry per CSV row. Returns (created, skipped, errors);
    a bad row is skipped and reported, it never aborts the batch.
    """
    created, skipped, errors = 0, 0, []

    df_import = df_import.copy()
    df_import.columns = [str(col).strip().lower() for col in df_import.columns]
    missing = [c for c in REQUIRED_COLS if c not in df_import.columns]
    if missing:
        errors.append(f"Import file is missing required columns: {', '.join(missing)}")
        return 0, 0, errors

    for row in df_import.itertuples():
        first = _cell(row, "first_name")
        last = _cell(row, "last_name")
        email = _cell(row, "email").lower()

        if not first or not last:
            errors.append(f"Skipped row {row.Index}: first_name and last_name are required.")
            skipped += 1
            continue
        if not EMAIL_RE.match(email):
            errors.append(f"Skipped row {row.Index} ({first} {last}): invalid email '{email}'.")
            skipped += 1
            continue

        level_raw = _cell(row, "enquiry_level")
        try:
            level = int(float(level_raw)) if level_raw else default_level
        except ValueError:
            errors.append(f"Skipped row {row.Index} ({email}): enquiry_level '{level_raw}' is not a number.")
            skipped += 1
            continue
        if not 1 <= level <= 5:
            errors.append(f"Skipped row {row.Index} ({email}): enquiry_level must be 1-5.")
            skipped += 1
            continue

        exists = conn.execute(
            sa_text("SELECT 1 FROM users WHERE LOWER(email) = :e"), {"e": email}
        ).fetchone()
        if exists:
            errors.append(f"Skipped row {row.Index}: a user with email '{email}' already exists.")
            skipped += 1
            continue

        payload = {
            "first_name": first,
            "last_name": last,
            "email": email,
            "phone_number": _cell(row, "phone_number"),
            "father_name": _cell(row, "father_name"),
            "program": _cell(row, "program"),
            "previous_school": _cell(row, "previous_school"),
            "enquiry_level": level,
        }
        try:
            create_user(conn, payload, rounds=rounds)
            created += 1
        except IntegrityError as e:
            errors.append(f"Skipped row {row.Index} ({email}): {e.orig}")
            skipped += 1

    log.info(f"Enquiry import: {created} created, {skipped} skipped")
    return created, skipped, errors
