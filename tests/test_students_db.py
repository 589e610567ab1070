import pandas as pd
import pytest
from sqlalchemy import text as sa_text

from conftest import TEST_ROUNDS
from core.security import check_password, hash_password, is_bcrypt_hash
from screens.students.db import (
    _initial_password_from_name,
    account_status,
    create_user,
    get_profile,
    list_directory,
    set_approval,
    set_enquiry_level,
    set_password,
    soft_delete_user,
    verify_password,
)
from screens.students.importer import enquiry_template, import_enquiries


def _user(conn, uid):
    return conn.execute(sa_text("SELECT * FROM users WHERE id = :id"), {"id": uid}).mappings().one()


# ── passwords ──────────────────────────────────────────────────────────────

def test_hash_password_passes_existing_hashes_through():
    hashed = hash_password("secret123", rounds=TEST_ROUNDS)
    assert is_bcrypt_hash(hashed)
    assert hash_password(hashed, rounds=TEST_ROUNDS) == hashed
    assert check_password(hashed, "secret123")
    assert not check_password(hashed, "wrong")
    assert not check_password("not-a-hash", "not-a-hash")


def test_created_user_stores_hash_and_verifies(engine):
    with engine.begin() as conn:
        uid = create_user(conn, {"first_name": "Asma", "last_name": "Noor", "email": "Asma@X.com",
                                 "user_name": "asma", "password": "hunter22"}, rounds=TEST_ROUNDS)
        row = _user(conn, uid)
        assert row["email"] == "asma@x.com"
        assert row["role"] == "Student"
        assert row["password_hash"] != "hunter22"
        assert is_bcrypt_hash(row["password_hash"])
        assert verify_password(conn, "asma", "hunter22")
        assert not verify_password(conn, "asma", "hunter23")
        assert not verify_password(conn, "nobody", "hunter22")

        set_password(conn, uid, "changed99", rounds=TEST_ROUNDS)
        assert verify_password(conn, "asma", "changed99")
        assert _user(conn, uid)["last_password_changed_on"] is not None


def test_generated_username_and_initial_password(engine):
    with engine.begin() as conn:
        uid = create_user(conn, {"first_name": "Muhammad", "last_name": "Iqbal", "email": "mi@x.com",
                                 "phone_number": "0300-1234567"}, rounds=TEST_ROUNDS)
        row = _user(conn, uid)
        assert row["user_name"].startswith("muhami")
        assert len(row["user_name"]) == 10
        assert verify_password(conn, row["user_name"], "muha@4567")


def test_initial_password_is_at_least_eight_chars():
    assert _initial_password_from_name("Al", None) == "al@0000a"
    assert len(_initial_password_from_name("", "12")) >= 8


@pytest.mark.parametrize("missing", ["first_name", "last_name", "email"])
def test_required_fields(engine, missing):
    payload = {"first_name": "A", "last_name": "B", "email": "ab@x.com"}
    payload[missing] = "  "
    with engine.begin() as conn:
        with pytest.raises(ValueError):
            create_user(conn, payload, rounds=TEST_ROUNDS)


# ── profile / status ───────────────────────────────────────────────────────

@pytest.mark.parametrize("row, expected", [
    ({"status": 1, "is_active": 1, "is_approved": 1}, "Active"),
    ({"status": 1, "is_active": 1, "is_approved": 0}, "Pending"),
    ({"status": 2, "is_active": 1, "is_approved": 1}, "Paused"),
    ({"status": 1, "is_active": 0, "is_approved": 1}, "Paused"),
    ({"status": 1, "is_active": 1, "is_approved": 1, "is_suspended": 1}, "Active"),
    ({"status": 1, "is_active": 1, "is_approved": 0, "is_suspended": 1}, "Paused"),
    ({"status": 1, "is_active": None, "is_approved": 1}, "Pending"),
    ({"status": 1, "is_active": None, "is_approved": 1, "is_suspended": 1}, "Paused"),
])
def test_account_status(row, expected):
    assert account_status(row) == expected


def test_profile_decodes_json_and_hides_hash(engine):
    quals = [{"degree": "Matric", "year": 2020, "marks": 950}]
    family = {"father": {"name": "Zafar", "occupation": "Teacher"}}
    with engine.begin() as conn:
        uid = create_user(conn, {"first_name": "Hina", "last_name": "Z", "email": "hina@x.com",
                                 "qualifications": quals, "family_info": family}, rounds=TEST_ROUNDS)
        prof = get_profile(conn, uid)
        assert prof["qualifications"] == quals
        assert prof["family_info"] == family
        assert prof["experiences"] is None
        assert "password_hash" not in prof
        assert prof["account_status"] == "Pending"

        set_approval(conn, uid, True)
        assert get_profile(conn, uid)["account_status"] == "Active"
        assert get_profile(conn, 424242) is None


def test_corrupt_json_column_reads_as_none(engine):
    with engine.begin() as conn:
        uid = create_user(conn, {"first_name": "Hina", "last_name": "Z", "email": "hina@x.com"},
                          rounds=TEST_ROUNDS)
        conn.execute(sa_text("UPDATE users SET experiences = '{broken' WHERE id = :id"), {"id": uid})
        assert get_profile(conn, uid)["experiences"] is None


def test_set_enquiry_level_bounds(engine, seeded):
    uid = seeded["zain@x.com"]
    with engine.begin() as conn:
        set_enquiry_level(conn, uid, 4)
        assert _user(conn, uid)["enquiry_level"] == 4
        for bad in (0, 6):
            with pytest.raises(ValueError):
                set_enquiry_level(conn, uid, bad)


def test_directory_lists_student_role_only(engine, seeded):
    with engine.connect() as conn:
        df = list_directory(conn)
    assert list(df.columns) == ["ID", "Name", "Email", "Phone", "Username", "Level", "Approved", "Account Status"]
    assert "Tariq Staff" not in set(df["Name"])
    assert len(df) == 5
    alice = df[df["Email"] == "john@x.com"].iloc[0]
    assert alice["Level"] == "Level 2 - Follow-up"
    assert bool(alice["Approved"])
    assert alice["Account Status"] == "Active"


def test_directory_hides_deleted_unless_asked(engine, seeded):
    with engine.begin() as conn:
        soft_delete_user(conn, seeded["bilal@x.com"])
    with engine.connect() as conn:
        assert "bilal@x.com" not in set(list_directory(conn)["Email"])
        assert "bilal@x.com" in set(list_directory(conn, include_deleted=True)["Email"])


def test_empty_directory(engine):
    with engine.connect() as conn:
        df = list_directory(conn)
    assert df.empty
    assert "Account Status" in df.columns


# ── importer ───────────────────────────────────────────────────────────────

def test_template_columns():
    cols = list(enquiry_template().columns)
    assert cols[:3] == ["first_name", "last_name", "email"]
    assert "enquiry_level" in cols


def test_import_creates_and_skips(engine, seeded):
    df = pd.DataFrame([
        {"First_Name": "Nadia", "Last_Name": "Khan", "Email": "nadia@x.com", "Enquiry_Level": 3},
        {"First_Name": "Rafay", "Last_Name": "Ali", "Email": "rafay@x.com", "Enquiry_Level": None},
        {"First_Name": "", "Last_Name": "Ghost", "Email": "ghost@x.com", "Enquiry_Level": 1},
        {"First_Name": "Bad", "Last_Name": "Mail", "Email": "not-an-email", "Enquiry_Level": 1},
        {"First_Name": "Too", "Last_Name": "High", "Email": "high@x.com", "Enquiry_Level": 9},
        {"First_Name": "Word", "Last_Name": "Level", "Email": "word@x.com", "Enquiry_Level": "two"},
        {"First_Name": "Dup", "Last_Name": "Alice", "Email": "JOHN@x.com", "Enquiry_Level": 1},
    ])
    with engine.begin() as conn:
        created, skipped, errors = import_enquiries(conn, df, default_level=2, rounds=TEST_ROUNDS)
        assert (created, skipped) == (2, 5)
        assert len(errors) == 5
        levels = dict(conn.execute(sa_text(
            "SELECT email, enquiry_level FROM users WHERE email IN ('nadia@x.com', 'rafay@x.com')"
        )).fetchall())
    assert levels == {"nadia@x.com": 3, "rafay@x.com": 2}
    assert any("already exists" in e for e in errors)
    assert any("not a number" in e for e in errors)


def test_import_requires_columns(engine):
    df = pd.DataFrame([{"first_name": "A", "email": "a@x.com"}])
    with engine.begin() as conn:
        created, skipped, errors = import_enquiries(conn, df, rounds=TEST_ROUNDS)
    assert (created, skipped) == (0, 0)
    assert "last_name" in errors[0]


def test_duplicate_within_one_file(engine):
    df = pd.DataFrame([
        {"first_name": "A", "last_name": "One", "email": "same@x.com"},
        {"first_name": "B", "last_name": "Two", "email": "same@x.com"},
    ])
    with engine.begin() as conn:
        created, skipped, _ = import_enquiries(conn, df, rounds=TEST_ROUNDS)
    assert (created, skipped) == (1, 1)
