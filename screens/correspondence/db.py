# screens/correspondence/db.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import text as sa_text
from sqlalchemy.engine import Connection

STUDENT_ROLE = "Student"

_RECORD_COLS = """
    id, first_name, last_name, email, phone_number,
    enquiry_level, prospectus_stage, level, is_approved,
    father_name, program
"""

# Students tab: a usable name and not explicitly unapproved.
_STUDENT_CLAUSE = """
    AND (TRIM(COALESCE(first_name, '')) <> '' OR TRIM(COALESCE(last_name, '')) <> '')
    AND (is_approved IS NULL OR is_approved <> 0)
"""


def _db_list_records(conn: Connection, category: str) -> List[Dict[str, Any]]:
    """Student-role directory rows for one correspondence category, oldest first."""
    extra = _STUDENT_CLAUSE if category == "student" else ""
    rows = conn.execute(sa_text(f"""
        SELECT {_RECORD_COLS}
        FROM users
        WHERE role = :role
          AND deleted_at IS NULL
          AND COALESCE(status, 1) <> 3
          {extra}
        ORDER BY created_on, id
    """), {"role": STUDENT_ROLE}).fetchall()
    return [dict(r._mapping) for r in rows]


def _db_user_exists(conn: Connection, user_id: int) -> bool:
    row = conn.execute(
        sa_text("SELECT 1 FROM users WHERE id = :id AND deleted_at IS NULL"),
        {"id": user_id},
    ).fetchone()
    return bool(row)


def _db_insert_remark(
    conn: Connection,
    user_id: int,
    remark: str,
    author_name: Optional[str] = None,
) -> bool:
    if not _db_user_exists(conn, user_id):
        return False
    conn.execute(sa_text("""
        INSERT INTO user_remarks (user_id, remark, author_name)
        VALUES (:uid, :remark, :author)
    """), {"uid": user_id, "remark": remark, "author": author_name})
    conn.execute(
        sa_text("UPDATE users SET updated_on = CURRENT_TIMESTAMP WHERE id = :id"),
        {"id": user_id},
    )
    return True


def _db_list_remarks(conn: Connection, user_id: int) -> List[Dict[str, Any]]:
    rows = conn.execute(sa_text("""
        SELECT id, user_id, remark, author_name, created_at
        FROM user_remarks
        WHERE user_id = :uid
        ORDER BY created_at, id
    """), {"uid": user_id}).fetchall()
    return [dict(r._mapping) for r in rows]
