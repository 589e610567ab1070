# screens/correspondence/store.py
from __future__ import annotations

import logging
from datetime import timezone
from typing import Any, List, Optional, Protocol

import httpx
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import StoreError
from screens.correspondence.db import (
    _db_insert_remark,
    _db_list_records,
    _db_list_remarks,
)
from screens.correspondence.records import CATEGORIES, Record, Remark

log = logging.getLogger(__name__)


class RecordStore(Protocol):
    def list_records(self, category: str) -> List[Record]: ...

    def add_remark(self, record_id: str, remark: str, author: Optional[str] = None) -> bool: ...

    def list_remarks(self, record_id: str) -> List[Remark]: ...


def _check_category(category: str) -> None:
    if category not in CATEGORIES:
        raise ValueError(f"Unknown category: {category!r}")


def _parse_id(record_id: str) -> Optional[int]:
    try:
        return int(str(record_id).strip())
    except ValueError:
        return None


class DbRecordStore:
    """Record store backed by the local users / user_remarks tables."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def list_records(self, category: str) -> List[Record]:
        _check_category(category)
        try:
            with self.engine.connect() as conn:
                rows = _db_list_records(conn, category)
        except SQLAlchemyError as e:
            raise StoreError("list_records", str(e)) from e
        return [Record.from_mapping(r) for r in rows]

    def add_remark(self, record_id: str, remark: str, author: Optional[str] = None) -> bool:
        uid = _parse_id(record_id)
        if uid is None:
            log.warning("Refusing remark for non-numeric record id %r", record_id)
            return False
        try:
            with self.engine.begin() as conn:
                return _db_insert_remark(conn, uid, remark, author)
        except SQLAlchemyError as e:
            raise StoreError("add_remark", str(e)) from e

    def list_remarks(self, record_id: str) -> List[Remark]:
        uid = _parse_id(record_id)
        if uid is None:
            return []
        try:
            with self.engine.connect() as conn:
                rows = _db_list_remarks(conn, uid)
        except SQLAlchemyError as e:
            raise StoreError("list_remarks", str(e)) from e
        remarks = [Remark.from_mapping(r, record_id=str(uid)) for r in rows]
        # SQLite CURRENT_TIMESTAMP is UTC without an offset
        for r in remarks:
            if r.created_at is not None and r.created_at.tzinfo is None:
                r.created_at = r.created_at.replace(tzinfo=timezone.utc)
        return remarks


def _unwrap_list(payload: Any) -> list:
    """Accept a bare list, {"data": [...]}, or a single object."""
    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]
    if not payload:
        return []
    return payload if isinstance(payload, list) else [payload]


class HttpRecordStore:
    """Record store that talks to the remote REST API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        token: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def _request(self, operation: str, method: str, url: str, **kwargs) -> Any:
        try:
            response = self.client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise StoreError(operation, str(e)) from e
        except ValueError as e:
            raise StoreError(operation, f"invalid JSON response: {e}") from e

    def list_records(self, category: str) -> List[Record]:
        _check_category(category)
        payload = self._request("list_records", "GET", "/students", params={"category": category})
        return [Record.from_mapping(item) for item in _unwrap_list(payload) if isinstance(item, dict)]

    def add_remark(self, record_id: str, remark: str, author: Optional[str] = None) -> bool:
        body = {"studentId": record_id, "remark": remark}
        payload = self._request("add_remark", "POST", "/remarks/add-remark", json=body)
        return bool(isinstance(payload, dict) and payload.get("success"))

    def list_remarks(self, record_id: str) -> List[Remark]:
        payload = self._request("list_remarks", "GET", f"/remarks/remarks/{record_id}")
        data = (payload or {}).get("data") if isinstance(payload, dict) else None
        remarks = (data or {}).get("remarks") if isinstance(data, dict) else None
        return [
            Remark.from_mapping(r, record_id=str(record_id))
            for r in (remarks or []) if isinstance(r, dict)
        ]


def build_store(settings, engine: Optional[Engine] = None) -> RecordStore:
    """Pick the store implementation named in settings.store.backend."""
    if settings.store.backend == "http":
        return HttpRecordStore(
            settings.store.base_url,
            timeout=settings.store.timeout,
            token=settings.store.token,
        )
    if engine is None:
        raise ValueError("DbRecordStore needs an engine")
    return DbRecordStore(engine)
