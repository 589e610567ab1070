# screens/correspondence/controller.py
from __future__ import annotations

import logging
from typing import List, Optional, Tuple, Union

from screens.correspondence.filters import filter_records, parse_min_level
from screens.correspondence.pagination import PAGE_SIZE, Paginator
from screens.correspondence.records import CATEGORIES, HistoryResult, Notice, Record
from screens.correspondence.workflow import HistoryViewer, NoteComposer, RecordLoader

log = logging.getLogger(__name__)

LEVEL_OPTIONS: List[Tuple[str, str]] = [
    ("", "All Levels"),
    ("1", "Level 1+ (All)"),
    ("2", "Level 2+ (Follow-up onwards)"),
    ("3", "Level 3+ (Serious Interest onwards)"),
    ("4", "Level 4+ (Documents Submitted onwards)"),
    ("5", "Level 5 (Admitted)"),
]

STUDENT_LEVEL_OPTIONS: List[Tuple[str, str]] = [
    ("", "All Levels"),
    ("5", "Level 5 - Admitted Students Only"),
]


def level_options(category: str) -> List[Tuple[str, str]]:
    return LEVEL_OPTIONS if category == "enquiry" else STUDENT_LEVEL_OPTIONS


class CorrespondenceController:
    """
    View state for the correspondence screen. Holds no Streamlit objects so the
    page can keep one instance per session and tests can drive it directly.
    """

    def __init__(
        self,
        store,
        page_size: int = PAGE_SIZE,
        author: Optional[str] = None,
        date_format: str = "%x",
    ):
        self.store = store
        self.category = "enquiry"
        self.search = ""
        self.min_level: Optional[int] = None
        self.paginator = Paginator(page_size=page_size)
        self.loader = RecordLoader()
        self.composer = NoteComposer(author=author)
        self.viewer = HistoryViewer(date_format=date_format)
        self.history: Optional[HistoryResult] = None
        self.history_record: Optional[Record] = None
        self.notices: List[Notice] = []

    # ── loading ────────────────────────────────────────────────────────────
    @property
    def loaded(self) -> bool:
        return self.loader.category == self.category and not self.loader.loading

    def refresh(self) -> List[Record]:
        self.loader.load(self.store, self.category)
        self._sync_total()
        return self.loader.records

    def ensure_loaded(self) -> None:
        if not self.loaded:
            self.refresh()

    # ── criteria; every change returns to page 1 ──────────────────────────
    def set_category(self, category: str) -> None:
        if category not in CATEGORIES:
            raise ValueError(f"Unknown category: {category!r}")
        changed = category != self.category
        self.category = category
        self.paginator.reset()
        if changed:
            self.close_history()
            allowed = {code for code, _ in level_options(category)}
            if self.min_level is not None and str(self.min_level) not in allowed:
                self.min_level = None
            # marks the set stale; the page fetches under its loading spinner
            self.loader.begin(category)

    def set_search(self, search: str) -> None:
        self.search = search or ""
        self.paginator.reset()
        self._sync_total()

    def set_min_level(self, value: Union[str, int, None]) -> None:
        self.min_level = parse_min_level(value)
        self.paginator.reset()
        self._sync_total()

    # ── derived views ─────────────────────────────────────────────────────
    def filtered(self) -> List[Record]:
        return filter_records(self.loader.records, self.search, self.min_level)

    def _sync_total(self) -> None:
        self.paginator.update_total(len(self.filtered()))

    def page_items(self) -> List[Record]:
        items = self.filtered()
        self.paginator.update_total(len(items))
        return self.paginator.slice(items)

    def go_to_page(self, page: int) -> bool:
        return self.paginator.go_to(page)

    def previous_page(self) -> bool:
        return self.paginator.previous()

    def next_page(self) -> bool:
        return self.paginator.next()

    # ── notes ─────────────────────────────────────────────────────────────
    def start_note(self, record: Record) -> None:
        self.composer.open(record)

    def cancel_note(self) -> None:
        self.composer.cancel()

    def submit_note(self, text: Optional[str] = None) -> Optional[Notice]:
        notice = self.composer.submit(self.store, text)
        # the dialog shows validation inline; only store outcomes become toasts
        if notice is not None and notice.kind != "validation":
            self.notices.append(notice)
        return notice

    # ── history ───────────────────────────────────────────────────────────
    def view_history(self, record: Record) -> HistoryResult:
        result = self.viewer.fetch(self.store, record)
        self.history = result
        self.history_record = record
        if not result.ok:
            self.notices.append(Notice("failure", result.message))
        return result

    def close_history(self) -> None:
        self.history = None
        self.history_record = None

    def drain_notices(self) -> List[Notice]:
        out, self.notices = self.notices, []
        return out
