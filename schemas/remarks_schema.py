# schemas/remarks_schema.py
from __future__ import annotations

from sqlalchemy import text as sa_text
from sqlalchemy.engine import Engine
import logging

log = logging.getLogger(__name__)


def install_schema(engine: Engine) -> None:
    """
    Create (if missing) the correspondence log table.
    Rows are append-only; history is read back ordered by created_at.
    """
    ddl = [
        """
        CREATE TABLE IF NOT EXISTS user_remarks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            remark TEXT NOT NULL,
            author_name TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id)
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_user_remarks_user ON user_remarks(user_id, created_at)",
    ]

    try:
        with engine.begin() as conn:
            for stmt in ddl:
                conn.execute(sa_text(stmt))
        log.info("✅ Remarks schema installed/verified successfully.")
    except Exception as e:
        log.error(f"❌ Failed to install remarks schema: {e}")
        raise
