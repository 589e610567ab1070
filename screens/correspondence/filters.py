# screens/correspondence/filters.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Union

from screens.correspondence.records import Record, resolve_level

log = logging.getLogger(__name__)


def parse_min_level(value: Union[str, int, None]) -> Optional[int]:
    """'', None or an unparseable value means no level filter."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    value = str(value).strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        log.warning("Ignoring unparseable level filter %r", value)
        return None


def matches_search(record: Record, search: str) -> bool:
    if not search:
        return True
    needle = search.lower()
    name = f"{record.first_name} {record.last_name}".lower()
    return (
        needle in name
        or needle in (record.email or "").lower()
        or needle in (record.phone_number or "").lower()
    )


def meets_level(record: Record, min_level: Optional[int]) -> bool:
    # cumulative: a level 4 record also satisfies "level 2 and above"
    return min_level is None or resolve_level(record) >= min_level


def filter_records(
    records: Iterable[Record],
    search: str = "",
    min_level: Union[str, int, None] = None,
) -> List[Record]:
    threshold = parse_min_level(min_level)
    return [
        r for r in records
        if matches_search(r, search) and meets_level(r, threshold)
    ]
