"""
In-memory list filtering shared by the list and report endpoints.

Rows are plain dicts (usually to_dict() output enriched with derived
fields such as risk level), so the same helpers serve tables whose
filter columns are computed rather than stored.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable


SORT_ASC = "asc"
SORT_DESC = "desc"


def matches_search(row: dict, term: str | None, fields: Iterable[str]) -> bool:
    """Case-insensitive substring match over any of the given fields."""
    if term is None:
        return True
    needle = term.strip().casefold()
    if not needle:
        return True
    for field in fields:
        value = row.get(field)
        if value is None:
            continue
        if needle in str(value).casefold():
            return True
    return False


def search_rows(rows: list[dict], term: str | None, fields: Iterable[str]) -> list[dict]:
    fields = tuple(fields)
    return [row for row in rows if matches_search(row, term, fields)]


def filter_equals(rows: list[dict], **criteria: Any) -> list[dict]:
    """
    Keep rows whose fields equal the given values.

    None, "" and "all" mean "no filter" for that field, mirroring the
    dropdown defaults of the admin screens.
    """
    active = {k: v for k, v in criteria.items() if v not in (None, "", "all")}
    if not active:
        return list(rows)
    return [row for row in rows if all(row.get(k) == v for k, v in active.items())]


def sort_rows(
    rows: list[dict],
    sort_by: str | None,
    sort_order: str | None = SORT_ASC,
    *,
    keys: dict[str, Callable[[dict], Any]],
    default: str,
) -> list[dict]:
    """
    Stable sort by a named key.

    Unknown sort_by falls back to the default key. Rows whose key is None
    always sort last regardless of direction.
    """
    key_func = keys.get(sort_by or default) or keys[default]
    reverse = (sort_order or SORT_ASC).lower() == SORT_DESC

    present = [row for row in rows if key_func(row) is not None]
    missing = [row for row in rows if key_func(row) is None]
    present.sort(key=key_func, reverse=reverse)
    return present + missing
