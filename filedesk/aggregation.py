"""
Monthly rollups for the diary and log-book, and the dashboard counters.

Everything is recomputed from scratch on each call; nothing is cached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence

from .timeutils import period_key
from .validators import parse_number


@dataclass
class PeriodSummary:
    count: int = 0
    total_distance: float = 0.0
    entries: List[Any] = field(default_factory=list)


def _get(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def summarize_period(entries: Sequence[Any], period: str, *, amount_field: str = "distance") -> PeriodSummary:
    """
    Entries whose date falls in `period` ("YYYY-MM"), in input order.

    Non-numeric amounts add 0 but the entry still counts.
    """
    selected = [e for e in entries if period_key(_get(e, "date")) == period]
    total = sum((parse_number(_get(e, amount_field)) or 0.0) for e in selected)
    return PeriodSummary(count=len(selected), total_distance=total, entries=selected)


def record_stats(records: Iterable[Any]) -> Dict[str, int]:
    """Dashboard counters. A missing status counts as pending."""
    stats = {"total": 0, "pending": 0, "completed": 0}
    for record in records:
        stats["total"] += 1
        status = _get(record, "status") or "Pending"
        if status == "Pending":
            stats["pending"] += 1
        elif status == "Completed":
            stats["completed"] += 1
    return stats


def unique_values(records: Iterable[Any], name: str) -> List[str]:
    """Sorted distinct non-empty values of one field (filter dropdowns)."""
    return sorted({str(v) for v in (_get(r, name) for r in records) if v})
