# schemas/users_schema.py
from __future__ import annotations

from sqlalchemy import text as sa_text
from sqlalchemy.engine import Engine
import logging

log = logging.getLogger(__name__)


# Columns added after the first release; ensure_columns() back-fills them on old databases.
LATE_COLUMNS = [
    ("enquiry_level", "INTEGER"),
    ("level", "INTEGER"),
    ("is_processed", "INTEGER DEFAULT 0"),
    ("processed_year", "TEXT"),
    ("deleted_at", "TIMESTAMP"),
    ("experiences", "TEXT"),
]


def install_schema(engine: Engine) -> None:
    """
    Create (if missing) the user/student directory tables and indexes.
    Idempotent: safe to re-run.

    Nested profile documents (qualifications, experiences, family info,
    academic records) are stored as JSON text in their own columns.
    """
    ddl = [

        # 1) Directory of users; students and enquiries are users with role 'Student'
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_name TEXT NOT NULL UNIQUE,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            role TEXT NOT NULL,
            institute_id INTEGER,
            status INTEGER DEFAULT 1,
            -- 1=Active, 2=Paused, 3=Deleted

            phone_number TEXT,
            secondary_phone TEXT,
            mobile_number TEXT,
            address TEXT,
            reference TEXT,

            previous_school TEXT,
            program TEXT,
            matric_obtained_marks INTEGER,
            matric_total_marks INTEGER,

            gender TEXT,
            dob DATE,
            cnic TEXT,
            father_name TEXT,

            enquiry_level INTEGER,
            prospectus_stage INTEGER DEFAULT 1,
            level INTEGER,
            is_processed INTEGER DEFAULT 0,
            processed_year TEXT,

            qualifications TEXT,
            experiences TEXT,
            family_info TEXT,
            academic_records TEXT,

            is_active INTEGER DEFAULT 1,
            is_approved INTEGER DEFAULT 0,
            is_suspended INTEGER DEFAULT 0,

            created_on TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_on TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            deleted_at TIMESTAMP,
            last_password_changed_on TIMESTAMP
        )
        """,

        # 2) Application settings
        """
        CREATE TABLE IF NOT EXISTS app_settings (
            key TEXT PRIMARY KEY,
            value TEXT
        );
        """,

        # Helpful indexes
        "CREATE INDEX IF NOT EXISTS idx_users_email    ON users(email)",
        "CREATE INDEX IF NOT EXISTS idx_users_role     ON users(role)",
        "CREATE INDEX IF NOT EXISTS idx_users_approved ON users(is_approved)",
    ]

    try:
        with engine.begin() as conn:
            for stmt in ddl:
                conn.execute(sa_text(stmt))
        ensure_columns(engine)
        log.info("✅ Users schema installed/verified successfully.")
    except Exception as e:
        log.error(f"❌ Failed to install users schema: {e}")
        raise


def ensure_columns(engine: Engine) -> list[str]:
    """
    Add any of LATE_COLUMNS missing from an existing users table.
    Returns the names of the columns that were added.
    """
    added = []
    with engine.begin() as conn:
        existing = {
            r[1] for r in conn.execute(sa_text("PRAGMA table_info(users)")).fetchall()
        }
        for col, definition in LATE_COLUMNS:
            if col not in existing:
                conn.execute(sa_text(f"ALTER TABLE users ADD COLUMN {col} {definition}"))
                added.append(col)
                log.info(f"Added {col} to users")
    return added
