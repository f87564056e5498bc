"""
List transform pipeline for the records views.

transform() runs: search -> category filter -> sort.
- Search: case-insensitive substring over the configured fields; any field may match.
- Category: exact match on one field.
- Sort: stable. Numeric keys compare as floats (0 when missing or non-numeric),
  other keys as lower-cased strings ("" when missing).

Blank search terms and blank category values pass everything through.
The input sequence is never mutated.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional, Sequence

ASC = "asc"
DESC = "desc"

# Admin file list
ADMIN_SEARCH_FIELDS = ("file_name", "subject", "uploader_email")
# Records view (both roles)
RECORD_SEARCH_FIELDS = ("inward_number", "allocated_to", "department", "file_name", "subject")

SORT_KEYS = {
    "created_at": "Date Uploaded",
    "file_name": "File Name",
    "uploader_email": "Uploader",
    "department": "Department",
    "file_size": "File Size",
}
NUMERIC_SORT_KEYS = frozenset({"created_at", "updated_at", "file_size"})
DEFAULT_SORT_KEY = "created_at"
DEFAULT_SORT_ORDER = DESC

STATUS_FILTERS = ("all", "pending", "completed")


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def _numeric(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _text(value: Any) -> str:
    return "" if value is None else str(value).lower()


def sort_key_func(sort_key: str, numeric_keys: Iterable[str] = NUMERIC_SORT_KEYS) -> Callable[[Any], Any]:
    if sort_key in numeric_keys:
        return lambda item: _numeric(_field(item, sort_key))
    return lambda item: _text(_field(item, sort_key))


def search(items: Iterable[Any], term: Optional[str], fields: Sequence[str]) -> List[Any]:
    needle = (term or "").strip().lower()
    if not needle:
        return list(items)
    return [item for item in items if any(needle in _text(_field(item, name)) for name in fields)]


def filter_by_field(items: Iterable[Any], field: str, value: Optional[str]) -> List[Any]:
    if not value:
        return list(items)
    return [item for item in items if _field(item, field) == value]


def transform(
    records: Sequence[Any],
    search_term: Optional[str] = "",
    category_filter: Optional[str] = "",
    sort_key: Optional[str] = DEFAULT_SORT_KEY,
    sort_order: Optional[str] = DEFAULT_SORT_ORDER,
    *,
    search_fields: Sequence[str] = RECORD_SEARCH_FIELDS,
    category_field: str = "department",
    numeric_keys: Iterable[str] = NUMERIC_SORT_KEYS,
) -> List[Any]:
    """Return a new, ordered list. Descending uses the mirrored comparator (reverse=True keeps ties stable)."""
    result = search(records, search_term, search_fields)
    result = filter_by_field(result, category_field, category_filter)
    key = sort_key_func(sort_key or DEFAULT_SORT_KEY, numeric_keys)
    return sorted(result, key=key, reverse=(sort_order == DESC))


def filter_by_status(records: Iterable[Any], status_filter: Optional[str]) -> List[Any]:
    """'pending' includes records without a status; 'all' (or blank) passes everything."""
    if status_filter == "pending":
        return [r for r in records if (_field(r, "status") or "Pending") == "Pending"]
    if status_filter == "completed":
        return [r for r in records if _field(r, "status") == "Completed"]
    return list(records)


def normalize_sort(sort_key: Optional[str], sort_order: Optional[str]) -> tuple[str, str]:
    key = sort_key if sort_key in SORT_KEYS else DEFAULT_SORT_KEY
    order = sort_order if sort_order in (ASC, DESC) else DEFAULT_SORT_ORDER
    return key, order
