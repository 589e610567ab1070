from datetime import datetime, timedelta
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine

from core.errors import StoreError
from schemas.remarks_schema import install_schema as install_remarks
from schemas.users_schema import install_schema as install_users
from screens.correspondence.records import Record, Remark
from screens.students.db import create_user

# bcrypt's minimum work factor keeps the suite fast
TEST_ROUNDS = 4


def make_record(rid, first="", last="", level=None, **kw) -> Record:
    return Record(id=str(rid), first_name=first, last_name=last, level=level, **kw)


class FakeStore:
    """In-memory store with switchable failures and a call log."""

    def __init__(self, records: Optional[Dict[str, List[Record]]] = None):
        self.records = records or {"enquiry": [], "student": []}
        self.remarks: Dict[str, List[Remark]] = {}
        self.calls: List[tuple] = []
        self.fail_list = False
        self.fail_add = False
        self.reject_add = False
        self.fail_history = False

    def list_records(self, category):
        self.calls.append(("list_records", category))
        if self.fail_list:
            raise StoreError("list_records", "connection refused")
        return list(self.records.get(category, []))

    def add_remark(self, record_id, remark, author=None):
        self.calls.append(("add_remark", record_id, remark, author))
        if self.fail_add:
            raise StoreError("add_remark", "server error")
        if self.reject_add:
            return False
        base = datetime(2024, 1, 1, 9, 0)
        existing = self.remarks.setdefault(record_id, [])
        existing.append(Remark(remark=remark, created_at=base + timedelta(days=len(existing)),
                               record_id=record_id, author=author))
        return True

    def list_remarks(self, record_id):
        self.calls.append(("list_remarks", record_id))
        if self.fail_history:
            raise StoreError("list_remarks", "timeout")
        return list(self.remarks.get(record_id, []))

    def count(self, name):
        return sum(1 for c in self.calls if c[0] == name)


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'test.db'}")
    install_users(eng)
    install_remarks(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def seeded(engine):
    """Five student-role rows covering the category rules, plus one staff row."""
    rows = [
        dict(first_name="Alice", last_name="Khan", email="john@x.com", phone_number="0300-1112222",
             enquiry_level=2, is_approved=True),
        dict(first_name="Bilal", last_name="Ahmed", email="bilal@x.com", prospectus_stage=4),
        dict(first_name="Sara", last_name="Malik", email="sara@x.com", level=5, is_approved=True),
        dict(first_name="Omar", last_name="Raza", email="omar@x.com", enquiry_level=3, is_approved=True),
        dict(first_name="Zain", last_name="Ali", email="zain@x.com", enquiry_level=1, is_approved=True),
        dict(first_name="Tariq", last_name="Staff", email="teacher@x.com", role="Teacher", is_approved=True),
    ]
    ids = {}
    with engine.begin() as conn:
        for r in rows:
            ids[r["email"]] = create_user(conn, r, rounds=TEST_ROUNDS)
    return ids
