# screens/correspondence/workflow.py
from __future__ import annotations

import enum
import itertools
import logging
from datetime import datetime
from typing import List, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError

from core.errors import StoreError
from screens.correspondence.records import (
    CATEGORIES,
    HistoryEntry,
    HistoryResult,
    Notice,
    Record,
    Remark,
    is_student_visible,
)

log = logging.getLogger(__name__)

STORE_ERRORS = (StoreError, httpx.HTTPError, SQLAlchemyError)

NO_HISTORY_MESSAGE = "No correspondence found for this record."
HISTORY_FAILED_MESSAGE = "Failed to fetch correspondence history."
EMPTY_NOTE_MESSAGE = "Please enter a note"
NOTE_SAVED_MESSAGE = "Correspondence added successfully"
NOTE_FAILED_MESSAGE = "Failed to add correspondence. Please try again."


# ────────────────────────────────────────────────────────────────────────────────
# Record loading
# ────────────────────────────────────────────────────────────────────────────────

class RecordLoader:
    """
    Loads the record set for a category. Every fetch is tagged with a token;
    only the result for the most recently issued token is applied.
    """

    def __init__(self):
        self._tokens = itertools.count(1)
        self.latest_token = 0
        self.records: List[Record] = []
        self.loading = False
        self.category: Optional[str] = None

    def begin(self, category: str) -> int:
        if category not in CATEGORIES:
            raise ValueError(f"Unknown category: {category!r}")
        self.latest_token = next(self._tokens)
        self.loading = True
        self.category = category
        return self.latest_token

    def fetch(self, store, category: str) -> List[Record]:
        try:
            records = store.list_records(category)
        except STORE_ERRORS:
            log.exception("Error fetching %s records", category)
            return []
        if category == "student":
            records = [r for r in records if is_student_visible(r)]
        log.info("Fetched %d %s records", len(records), category)
        return records

    def apply(self, token: int, records: List[Record]) -> bool:
        if token != self.latest_token:
            log.debug("Discarding stale response for token %s (latest %s)", token, self.latest_token)
            return False
        self.records = list(records)
        self.loading = False
        return True

    def load(self, store, category: str) -> List[Record]:
        token = self.begin(category)
        self.apply(token, self.fetch(store, category))
        return self.records


# ────────────────────────────────────────────────────────────────────────────────
# Add-note workflow
# ────────────────────────────────────────────────────────────────────────────────

class ComposerState(str, enum.Enum):
    IDLE = "idle"
    COMPOSING = "composing"
    SUBMITTING = "submitting"


class NoteComposer:
    def __init__(self, author: Optional[str] = None):
        self.author = author
        self.state = ComposerState.IDLE
        self.target: Optional[Record] = None
        self.buffer = ""
        self.validation_message: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state is not ComposerState.IDLE

    @property
    def is_submitting(self) -> bool:
        return self.state is ComposerState.SUBMITTING

    def open(self, record: Record) -> None:
        self.target = record
        self.buffer = ""
        self.validation_message = None
        self.state = ComposerState.COMPOSING

    def cancel(self) -> None:
        if self.is_submitting:
            return
        self._reset()

    def _reset(self) -> None:
        self.state = ComposerState.IDLE
        self.target = None
        self.buffer = ""
        self.validation_message = None

    def submit(self, store, text: Optional[str] = None) -> Optional[Notice]:
        """
        Returns the acknowledgment to show, or None when nothing happened
        (composer closed or a submission already in flight).
        """
        if self.state is not ComposerState.COMPOSING:
            return None
        if text is not None:
            self.buffer = text
        note = self.buffer.strip()
        if not note:
            self.validation_message = EMPTY_NOTE_MESSAGE
            return Notice("validation", EMPTY_NOTE_MESSAGE)

        self.validation_message = None
        self.state = ComposerState.SUBMITTING
        try:
            ok = store.add_remark(self.target.id, note, self.author)
        except STORE_ERRORS:
            log.exception("Error adding correspondence for record %s", self.target.id)
            ok = False

        if ok:
            log.info("Added correspondence for record %s", self.target.id)
            self._reset()
            return Notice("success", NOTE_SAVED_MESSAGE)

        self.state = ComposerState.COMPOSING
        return Notice("failure", NOTE_FAILED_MESSAGE)


# ────────────────────────────────────────────────────────────────────────────────
# History
# ────────────────────────────────────────────────────────────────────────────────

def format_date(value: Optional[datetime], date_format: str = "%x") -> str:
    if value is None:
        return "Unknown date"
    if value.tzinfo is not None:
        value = value.astimezone()
    return value.strftime(date_format)


def _sort_key(remark: Remark):
    ts = remark.created_at
    return (ts is None, ts.timestamp() if ts is not None else 0.0)


class HistoryViewer:
    """Fetch-and-present, nothing cached between calls."""

    def __init__(self, date_format: str = "%x"):
        self.date_format = date_format

    def fetch(self, store, record: Record) -> HistoryResult:
        try:
            remarks = store.list_remarks(record.id)
        except STORE_ERRORS:
            log.exception("Error fetching correspondence for record %s", record.id)
            return HistoryResult(ok=False, message=HISTORY_FAILED_MESSAGE)

        if not remarks:
            return HistoryResult(ok=True, message=NO_HISTORY_MESSAGE)

        ordered = sorted(remarks, key=_sort_key)
        entries = [
            HistoryEntry(
                index=i,
                date_label=format_date(r.created_at, self.date_format),
                remark=r.remark,
                author=r.author,
            )
            for i, r in enumerate(ordered, start=1)
        ]
        return HistoryResult(ok=True, entries=entries)
