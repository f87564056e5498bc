"""
filedesk/lifecycle.py

Collection view-models over the live keyed store.

A CollectionView moves IDLE -> LOADING -> READY | ERROR:
- open() subscribes to the store path.
- Every snapshot replaces the whole local list (parse, filter, order).
  There is no incremental patching.
- Writes go straight to the store. The local list changes only when the
  store's notification for that write arrives.
- close() unsubscribes and clears the liveness flag, so a late callback
  never touches a closed view.

Each view owns its own list and its own subscription; two views on the same
path keep independent copies.

IMPORTANT (known weakness):
- RecordsView applies role visibility after receiving the FULL records
  snapshot. The store itself lets any signed-in caller read every record;
  the filter here is a display rule. Routes check the same predicate before
  serving or changing a single record.
"""

from __future__ import annotations

import enum
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .entities import (
    DIARY_ROOT,
    DOCUMENTS_ROOT,
    LOGBOOK_ROOT,
    RECORDS_ROOT,
    DiaryEntry,
    LogBookEntry,
    PersonalDocument,
    Record,
)
from .session import AppSession
from .store import KeyedStore, join_path

logger = logging.getLogger(__name__)


class ViewState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class CollectionView:
    entry_type: Any = None

    def __init__(
        self,
        store: KeyedStore,
        path: str,
        parse: Optional[Callable[[str, Any], Any]] = None,
        visible: Optional[Callable[[Any], bool]] = None,
    ):
        self.store = store
        self.path = path
        self.parse = parse or self.entry_type.from_snapshot
        self.visible = visible

        self.state = ViewState.IDLE
        self.error: Optional[str] = None
        self.snapshot: List[Any] = []
        self.items: List[Any] = []
        self.version = 0

        self._alive = False
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._lock = threading.Lock()
        self._listeners: List[Callable[[List[Any]], None]] = []

    # --- lifecycle ---
    def open(self) -> "CollectionView":
        if self._alive:
            return self
        self._alive = True
        self.state = ViewState.LOADING
        self._unsubscribe = self.store.subscribe(self.path, self._on_snapshot, self._on_error)
        return self

    def close(self) -> None:
        self._alive = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def alive(self) -> bool:
        return self._alive

    def __enter__(self) -> "CollectionView":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def on_change(self, callback: Callable[[List[Any]], None]) -> None:
        """Called with the visible items after each snapshot."""
        self._listeners.append(callback)

    # --- snapshots ---
    def order(self, items: List[Any]) -> List[Any]:
        return items

    def _on_snapshot(self, value: Any) -> None:
        if not self._alive:
            return
        children = value if isinstance(value, dict) else {}
        parsed = [self.parse(key, child) for key, child in sorted(children.items())]
        visible = [item for item in parsed if self.visible(item)] if self.visible else list(parsed)
        visible = self.order(visible)

        with self._lock:
            self.snapshot = parsed
            self.items = visible
            self.state = ViewState.READY
            self.error = None
            self.version += 1

        for callback in list(self._listeners):
            callback(visible)

    def _on_error(self, exc: Exception) -> None:
        if not self._alive:
            return
        logger.warning("Subscription to %s failed: %s", self.path, exc)
        with self._lock:
            self.state = ViewState.ERROR
            self.error = str(exc)

    def get(self, key: str) -> Optional[Any]:
        """A visible item by key (None when missing or hidden)."""
        for item in self.items:
            if item.key == key:
                return item
        return None

    # --- writes (never touch the local list) ---
    def create(self, entry) -> str:
        return self.store.push(self.path, entry.to_store())

    def replace(self, key: str, entry) -> None:
        self.store.write(join_path(self.path, key), entry.to_store())

    def update(self, key: str, partial: Dict[str, Any]) -> None:
        self.store.update(join_path(self.path, key), partial)

    def delete(self, key: str) -> None:
        self.store.remove(join_path(self.path, key))


class RecordsView(CollectionView):
    """All records, filtered client-side by the session's visibility rule."""

    entry_type = Record

    def __init__(self, store: KeyedStore, session: AppSession):
        self.session = session
        super().__init__(
            store,
            RECORDS_ROOT,
            visible=lambda record: session.can_see(record.uploaded_by, record.uploader_role),
        )

    def order(self, items: List[Any]) -> List[Any]:
        return sorted(items, key=lambda r: r.created_at, reverse=True)

    def inward_taken(self, inward_number: str, exclude_key: Optional[str] = None) -> bool:
        """Uniqueness is checked across every record, not just the visible ones."""
        needle = (inward_number or "").strip()
        if not needle:
            return False
        return any(r.inward_number.strip() == needle and r.key != exclude_key for r in self.snapshot)


class DiaryView(CollectionView):
    entry_type = DiaryEntry

    def __init__(self, store: KeyedStore, session: AppSession):
        self.session = session
        super().__init__(store, join_path(DIARY_ROOT, session.user_id))

    def order(self, items: List[Any]) -> List[Any]:
        return sorted(items, key=lambda e: e.date)


class LogBookView(CollectionView):
    entry_type = LogBookEntry

    def __init__(self, store: KeyedStore, session: AppSession):
        self.session = session
        super().__init__(store, join_path(LOGBOOK_ROOT, session.user_id))

    def order(self, items: List[Any]) -> List[Any]:
        return sorted(items, key=lambda e: e.date, reverse=True)


class DocumentsView(CollectionView):
    entry_type = PersonalDocument

    def __init__(self, store: KeyedStore, session: AppSession):
        self.session = session
        super().__init__(store, join_path(DOCUMENTS_ROOT, session.user_id))

    def order(self, items: List[Any]) -> List[Any]:
        return sorted(items, key=lambda d: d.uploaded_at, reverse=True)
