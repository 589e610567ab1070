# screens/correspondence/records.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

CATEGORIES = ("enquiry", "student")

LEVEL_NAMES = {
    1: "Level 1 - Initial Enquiry",
    2: "Level 2 - Follow-up",
    3: "Level 3 - Serious Interest",
    4: "Level 4 - Documents Submitted",
    5: "Level 5 - Admitted Student",
}


def _as_level(value: Any) -> Optional[int]:
    """Coerce a stored level value; falsy or unparseable values count as absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) or None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(float(text)) or None
    except ValueError:
        return None


def _as_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, str):
        v = value.strip().lower()
        if v in ("", "none", "null"):
            return None
        return v in ("1", "true", "yes", "y")
    return bool(value)


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        # epoch milliseconds, as some stores emit
        return datetime.fromtimestamp(float(text) / 1000.0, tz=timezone.utc)
    except ValueError:
        return None


@dataclass
class Record:
    """A student or enquiry row as the correspondence screen sees it."""

    id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone_number: str = ""
    enquiry_level: Optional[int] = None
    prospectus_stage: Optional[int] = None
    level: Optional[int] = None
    is_approved: Optional[bool] = None
    father_name: str = ""
    program: str = ""

    @classmethod
    def from_mapping(cls, m: Mapping[str, Any]) -> "Record":
        """
        Build a record from either the REST document shape
        (``_id``, ``fullName.firstName``, ``phoneNumber``, ...) or a flat DB row.
        """
        full_name = m.get("fullName") or {}
        if not isinstance(full_name, Mapping):
            full_name = {}
        rid = m.get("_id", m.get("id"))
        return cls(
            id="" if rid is None else str(rid),
            first_name=(full_name.get("firstName") or m.get("first_name") or "").strip(),
            last_name=(full_name.get("lastName") or m.get("last_name") or "").strip(),
            email=m.get("email") or "",
            phone_number=m.get("phoneNumber") or m.get("phone_number") or "",
            enquiry_level=_as_level(m.get("enquiryLevel", m.get("enquiry_level"))),
            prospectus_stage=_as_level(m.get("prospectusStage", m.get("prospectus_stage"))),
            level=_as_level(m.get("level")),
            is_approved=_as_bool(m.get("isApproved", m.get("is_approved"))),
            father_name=(
                m.get("fatherName") or full_name.get("fatherName") or m.get("father_name") or ""
            ),
            program=m.get("program") or "",
        )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def has_name(self) -> bool:
        return bool(self.first_name or self.last_name)


def resolve_level(record: Record) -> int:
    """enquiry level, else prospectus stage, else generic level, else 1."""
    return record.enquiry_level or record.prospectus_stage or record.level or 1


def level_label(record: Record) -> str:
    lvl = resolve_level(record)
    return LEVEL_NAMES.get(lvl, f"Level {lvl}")


def is_student_visible(record: Record) -> bool:
    return record.has_name and record.is_approved is not False


@dataclass
class Remark:
    remark: str
    created_at: Optional[datetime] = None
    record_id: str = ""
    author: Optional[str] = None

    @classmethod
    def from_mapping(cls, m: Mapping[str, Any], record_id: str = "") -> "Remark":
        return cls(
            remark=m.get("remark") or "",
            created_at=_as_datetime(
                m.get("createdAt") or m.get("timestamp") or m.get("created_at")
            ),
            record_id=str(m.get("user_id") or record_id),
            author=m.get("receptionistName") or m.get("author_name"),
        )


@dataclass
class Notice:
    kind: str
    message: str


@dataclass
class HistoryEntry:
    index: int
    date_label: str
    remark: str
    author: Optional[str] = None


@dataclass
class HistoryResult:
    ok: bool
    entries: list[HistoryEntry] = field(default_factory=list)
    message: str = ""
