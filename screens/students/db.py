# app/screens/students/db.py
from __future__ import annotations

import json
import logging
import random
import string
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd
from sqlalchemy import text as sa_text
from sqlalchemy.engine import Connection

from core.security import check_password, hash_password
from screens.correspondence.db import STUDENT_ROLE
from screens.correspondence.records import Record, level_label

log = logging.getLogger(__name__)

STATUS_ACTIVE, STATUS_PAUSED, STATUS_DELETED = 1, 2, 3

# JSON text columns holding nested profile documents
JSON_FIELDS = ("qualifications", "experiences", "family_info", "academic_records")

PLAIN_FIELDS = (
    "phone_number", "secondary_phone", "mobile_number", "address", "reference",
    "previous_school", "program", "matric_obtained_marks", "matric_total_marks",
    "gender", "dob", "cnic", "father_name",
    "enquiry_level", "prospectus_stage", "level",
    "institute_id", "processed_year",
)


# --- Credential Helpers ---

def _generate_username(conn: Connection, first_name: str, last_name: str, retries: int = 6) -> str:
    """first 5 letters of the given name + surname initial + 4 digits, unique in users."""
    given = "".join(filter(str.isalpha, (first_name or "").lower()))
    surname = "".join(filter(str.isalpha, (last_name or "").lower()))
    base5 = (given[:5] or surname[:5] or "xxxxx").ljust(5, "x")
    initial = surname[:1] or "x"
    for _ in range(retries):
        candidate = f"{base5}{initial}{''.join(random.choices(string.digits, k=4))}"
        exists = conn.execute(
            sa_text("SELECT 1 FROM users WHERE user_name = :u"), {"u": candidate}
        ).fetchone()
        if not exists:
            return candidate
    return f"{base5}{initial}{''.join(random.choices(string.digits, k=6))}"


def _initial_password_from_name(first_name: str, phone: Optional[str]) -> str:
    """Deterministic initial password: name part @ last four phone digits."""
    name_part = "".join(filter(str.isalpha, (first_name or "").lower()))[:4] or "user"
    digits = "".join(filter(str.isdigit, phone or ""))[-4:].zfill(4)
    pw = f"{name_part}@{digits}"
    if len(pw) < 8:
        pw = f"{pw}abcd"[:8]
    return pw


# --- Directory CRUD ---

def create_user(conn: Connection, payload: Mapping[str, Any], rounds: int = 12) -> int:
    """
    Insert a directory user. The password (given or generated) is always
    stored as a bcrypt hash. Returns the new user id.
    """
    first_name = (payload.get("first_name") or "").strip()
    last_name = (payload.get("last_name") or "").strip()
    email = (payload.get("email") or "").strip().lower()
    if not first_name or not last_name or not email:
        raise ValueError("first_name, last_name and email are required")

    user_name = (payload.get("user_name") or "").strip() or _generate_username(conn, first_name, last_name)
    password = payload.get("password") or _initial_password_from_name(first_name, payload.get("phone_number"))

    params: Dict[str, Any] = {
        "user_name": user_name,
        "email": email,
        "password_hash": hash_password(password, rounds=rounds),
        "first_name": first_name,
        "last_name": last_name,
        "role": payload.get("role") or STUDENT_ROLE,
        "is_approved": 1 if payload.get("is_approved") else 0,
    }
    for col in PLAIN_FIELDS:
        if payload.get(col) not in (None, ""):
            params[col] = payload.get(col)
    for col in JSON_FIELDS:
        if payload.get(col) is not None:
            params[col] = json.dumps(payload[col], ensure_ascii=False)

    cols = ", ".join(params)
    binds = ", ".join(f":{c}" for c in params)
    res = conn.execute(sa_text(f"INSERT INTO users ({cols}) VALUES ({binds})"), params)
    log.info(f"Created user {user_name} ({params['role']})")
    return int(res.lastrowid)


def set_password(conn: Connection, user_id: int, plaintext: str, rounds: int = 12) -> None:
    conn.execute(sa_text("""
        UPDATE users
           SET password_hash = :h,
               last_password_changed_on = CURRENT_TIMESTAMP,
               updated_on = CURRENT_TIMESTAMP
         WHERE id = :id
    """), {"h": hash_password(plaintext, rounds=rounds), "id": user_id})


def verify_password(conn: Connection, user_name: str, candidate: str) -> bool:
    row = conn.execute(
        sa_text("SELECT password_hash FROM users WHERE user_name = :u AND deleted_at IS NULL"),
        {"u": user_name},
    ).fetchone()
    return bool(row) and check_password(row[0], candidate)


def set_approval(conn: Connection, user_id: int, approved: bool) -> None:
    conn.execute(sa_text("""
        UPDATE users SET is_approved = :a, updated_on = CURRENT_TIMESTAMP WHERE id = :id
    """), {"a": 1 if approved else 0, "id": user_id})


def set_enquiry_level(conn: Connection, user_id: int, level: int) -> None:
    if not 1 <= int(level) <= 5:
        raise ValueError("level must be between 1 and 5")
    conn.execute(sa_text("""
        UPDATE users SET enquiry_level = :lvl, updated_on = CURRENT_TIMESTAMP WHERE id = :id
    """), {"lvl": int(level), "id": user_id})


def soft_delete_user(conn: Connection, user_id: int) -> None:
    conn.execute(sa_text("""
        UPDATE users
           SET status = :st, deleted_at = CURRENT_TIMESTAMP, updated_on = CURRENT_TIMESTAMP
         WHERE id = :id
    """), {"st": STATUS_DELETED, "id": user_id})


def account_status(row: Mapping[str, Any]) -> str:
    status = row.get("status")
    is_active = row.get("is_active", 1)
    if status == STATUS_ACTIVE and is_active and row.get("is_approved"):
        return "Active"
    # NULL is_active is unknown, only an explicit 0 pauses
    if status == STATUS_PAUSED or row.get("is_suspended") or is_active in (0, False):
        return "Paused"
    return "Pending"


def get_profile(conn: Connection, user_id: int) -> Optional[Dict[str, Any]]:
    row = conn.execute(sa_text("SELECT * FROM users WHERE id = :id"), {"id": user_id}).fetchone()
    if not row:
        return None
    prof = dict(row._mapping)
    prof.pop("password_hash", None)
    for col in JSON_FIELDS:
        raw = prof.get(col)
        try:
            prof[col] = json.loads(raw) if raw else None
        except ValueError:
            log.warning(f"Unreadable {col} JSON for user {user_id}")
            prof[col] = None
    prof["account_status"] = account_status(prof)
    return prof


def list_directory(conn: Connection, include_deleted: bool = False) -> pd.DataFrame:
    """Student-role rows for the directory table."""
    where = "" if include_deleted else "AND deleted_at IS NULL"
    rows = conn.execute(sa_text(f"""
        SELECT id, first_name, last_name, email, phone_number, user_name,
               enquiry_level, prospectus_stage, level,
               status, is_active, is_approved, is_suspended, created_on
        FROM users
        WHERE role = :role {where}
        ORDER BY created_on DESC, id DESC
    """), {"role": STUDENT_ROLE}).fetchall()

    columns = ["ID", "Name", "Email", "Phone", "Username", "Level", "Approved", "Account Status"]
    if not rows:
        return pd.DataFrame(columns=columns)

    data: List[Dict[str, Any]] = []
    for r in rows:
        m = dict(r._mapping)
        rec = Record.from_mapping(m)
        data.append({
            "ID": m["id"],
            "Name": rec.display_name,
            "Email": m["email"],
            "Phone": m["phone_number"] or "",
            "Username": m["user_name"],
            "Level": level_label(rec),
            "Approved": bool(m["is_approved"]),
            "Account Status": account_status(m),
        })
    return pd.DataFrame(data, columns=columns)
