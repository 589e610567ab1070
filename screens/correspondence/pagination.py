# screens/correspondence/pagination.py
from __future__ import annotations

import math
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")

PAGE_SIZE = 10


class Paginator:
    """
    1-indexed page window over a filtered sequence.
    Out-of-range page requests are ignored rather than clamped.
    """

    def __init__(self, total: int = 0, page_size: int = PAGE_SIZE, page: int = 1):
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.page_size = page_size
        self.total = total
        self.page = page

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def start_index(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def end_index(self) -> int:
        return min(self.page * self.page_size, self.total)

    def update_total(self, total: int) -> None:
        self.total = total

    def reset(self) -> None:
        self.page = 1

    def go_to(self, page: int) -> bool:
        if 1 <= page <= self.total_pages:
            self.page = page
            return True
        return False

    def previous(self) -> bool:
        return self.go_to(self.page - 1)

    def next(self) -> bool:
        return self.go_to(self.page + 1)

    def slice(self, items: Sequence[T]) -> List[T]:
        return list(items[self.start_index:self.page * self.page_size])

    def window(self) -> List[Optional[int]]:
        """
        Page buttons to show: first, last, and current±1.
        None marks an ellipsis gap.
        """
        out: List[Optional[int]] = []
        last = self.total_pages
        cur = self.page
        for p in range(1, last + 1):
            if p == 1 or p == last or cur - 1 <= p <= cur + 1:
                out.append(p)
            elif (p == cur - 2 and cur > 3) or (p == cur + 2 and cur < last - 2):
                out.append(None)
        return out

    def range_label(self, noun: str = "records") -> str:
        if self.total == 0:
            return f"No {noun}"
        label = f"Showing {self.start_index + 1}-{self.end_index} of {self.total} {noun}"
        if self.total_pages > 1:
            label += f" (Page {self.page} of {self.total_pages})"
        return label
