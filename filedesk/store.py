"""
filedesk/store.py

Live keyed store: a path-addressed JSON tree with push notifications.

Contract:
- subscribe(path, on_snapshot, on_error) -> unsubscribe
    on_snapshot receives the full current value of `path` immediately and
    again after every committed write that overlaps `path` (the written path
    is equal to, above or below the subscribed one).
- read_once(path) -> value | None
- write(path, value)       full overwrite; None deletes
- update(path, partial)    writes each child key of `partial` (multi-path set)
- push(path, value) -> key chronologically ordered 20-char key
- remove(path)

Paths are slash-delimited ("data/<key>", "dairy/<uid>/<key>"). Segments may
not be empty or contain . # $ [ ]

Persistence: each written path is one StoreNode row. Reads of a parent path
assemble child rows; writes below an existing row edit its JSON in place.

IMPORTANT:
- The store has no access control. Any caller can read every path;
  visibility rules are applied by the view-models after the snapshot.
- Notifications run synchronously in the writing thread after commit,
  serialised by one lock so every subscriber sees commit order.
"""

from __future__ import annotations

import copy
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from .errors import InvalidPathError, StoreError
from .extensions import db
from .models import StoreNode

logger = logging.getLogger(__name__)

FORBIDDEN_KEY_CHARS = frozenset(".#$[]")
PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"

SnapshotCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]


# ---------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------
def _check_segment(segment: str, path: str) -> str:
    if not segment or any(ch in FORBIDDEN_KEY_CHARS for ch in segment):
        raise InvalidPathError(f"Invalid store path: {path!r}")
    return segment


def split_path(path: Optional[str]) -> List[str]:
    """"data/abc" -> ["data", "abc"]. The root ("" or "/") is an empty list."""
    if path is None:
        raise InvalidPathError("Store path is required")
    raw = str(path).strip("/")
    if not raw:
        return []
    return [_check_segment(segment, path) for segment in raw.split("/")]


def join_path(*parts: str) -> str:
    return "/".join(str(part).strip("/") for part in parts if part not in (None, ""))


def _overlaps(a: Sequence[str], b: Sequence[str]) -> bool:
    n = min(len(a), len(b))
    return tuple(a[:n]) == tuple(b[:n])


# ---------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------
def _normalize(value: Any, path: str = "") -> Any:
    """Deep-copy a value into plain JSON types. Empty dicts and None collapse to None."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Mapping):
        out = {}
        for key, child in value.items():
            key = _check_segment(str(key), f"{path}/{key}")
            normalized = _normalize(child, f"{path}/{key}")
            if normalized is not None:
                out[key] = normalized
        return out or None
    if isinstance(value, (list, tuple)):
        return [_normalize(child, path) for child in value]
    raise StoreError(f"Unsupported value type at {path or '/'}: {type(value).__name__}")


def _descend(value: Any, rest: Sequence[str]) -> Any:
    for segment in rest:
        if not isinstance(value, dict) or segment not in value:
            return None
        value = value[segment]
    return value


def _set_in(doc: Any, rest: Sequence[str], value: Any) -> Any:
    """Set (or delete when value is None) a nested key; prune emptied parents. Returns None if doc empties."""
    root = copy.deepcopy(doc) if isinstance(doc, dict) else {}
    node = root
    parents: List[Tuple[dict, str]] = []
    for segment in rest[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        parents.append((node, segment))
        node = child

    if value is None:
        node.pop(rest[-1], None)
    else:
        node[rest[-1]] = value

    for parent, segment in reversed(parents):
        if not parent[segment]:
            del parent[segment]
    return root or None


# ---------------------------------------------------------------------
# Push keys
# ---------------------------------------------------------------------
class PushIdGenerator:
    """
    20-char keys: 8 chars of millisecond timestamp + 12 random chars.

    Keys sort lexicographically in creation order; within one millisecond the
    random part is incremented instead of re-drawn.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._last_time = 0
        self._last_rand = [0] * 12

    def __call__(self) -> str:
        with self._lock:
            now = int(time.time() * 1000)
            duplicate = now == self._last_time
            self._last_time = now

            stamp = []
            remaining = now
            for _ in range(8):
                stamp.append(PUSH_CHARS[remaining % 64])
                remaining //= 64

            if not duplicate:
                self._last_rand = [secrets.randbelow(64) for _ in range(12)]
            else:
                i = 11
                while i >= 0 and self._last_rand[i] == 63:
                    self._last_rand[i] = 0
                    i -= 1
                if i >= 0:
                    self._last_rand[i] += 1

            return "".join(reversed(stamp)) + "".join(PUSH_CHARS[i] for i in self._last_rand)


# ---------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------
@dataclass(eq=False)
class _Subscription:
    path: str
    segments: Tuple[str, ...]
    on_snapshot: SnapshotCallback
    on_error: Optional[ErrorCallback]
    active: bool = True


class KeyedStore:
    """Flask extension; requires an application context for every call."""

    def __init__(self, app=None):
        self._subscriptions: List[_Subscription] = []
        self._subs_lock = threading.Lock()
        self._write_lock = threading.RLock()
        self.push_id = PushIdGenerator()
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        app.extensions["keyed_store"] = self

    # --- reads ---
    def read_once(self, path: str) -> Any:
        segments = split_path(path)
        try:
            return self._read(segments)
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Store read failed for %s", path)
            raise StoreError("Failed to read from the store") from exc

    def _owner(self, segments: Sequence[str]) -> Tuple[Optional[StoreNode], List[str]]:
        """Find the row stored at `segments` or at one of its ancestors."""
        if not segments:
            return None, []
        candidates = ["/".join(segments[:i]) for i in range(1, len(segments) + 1)]
        rows = StoreNode.query.filter(StoreNode.path.in_(candidates)).all()
        if not rows:
            return None, list(segments)
        owner = min(rows, key=lambda row: len(row.path))
        depth = len(owner.path.split("/"))
        return owner, list(segments[depth:])

    def _read(self, segments: Sequence[str]) -> Any:
        owner, rest = self._owner(segments)
        if owner is not None:
            return copy.deepcopy(_descend(owner.value, rest))

        query = StoreNode.query
        if segments:
            prefix = "/".join(segments)
            query = query.filter(StoreNode.path.startswith(prefix + "/", autoescape=True))
        rows = query.all()
        if not rows:
            return None

        tree: dict = {}
        for row in rows:
            relative = row.path.split("/")[len(segments):]
            node = tree
            for segment in relative[:-1]:
                node = node.setdefault(segment, {})
            node[relative[-1]] = copy.deepcopy(row.value)
        return tree

    # --- writes ---
    def write(self, path: str, value: Any) -> None:
        segments = split_path(path)
        if not segments:
            raise InvalidPathError("Cannot overwrite the store root")
        normalized = _normalize(value, path)
        self._commit(segments, lambda: self._write(segments, normalized))

    def update(self, path: str, partial: Mapping[str, Any]) -> None:
        if not isinstance(partial, Mapping):
            raise StoreError("update() expects a mapping of child keys")
        segments = split_path(path)
        children = [(segments + split_path(key), _normalize(value, join_path(path, key))) for key, value in partial.items()]
        if any(not child for child, _ in children):
            raise InvalidPathError("Cannot overwrite the store root")

        def _apply():
            for child, value in children:
                self._write(child, value)

        self._commit(segments, _apply)

    def push(self, path: str, value: Any) -> str:
        key = self.push_id()
        self.write(join_path(path, key), value)
        return key

    def remove(self, path: str) -> None:
        self.write(path, None)

    def _write(self, segments: Sequence[str], value: Any) -> None:
        owner, rest = self._owner(segments)
        if owner is not None:
            if rest:
                doc = _set_in(owner.value, rest, value)
            else:
                doc = value
            if doc is None:
                db.session.delete(owner)
            else:
                owner.value = doc
            return

        prefix = "/".join(segments)
        StoreNode.query.filter(
            or_(StoreNode.path == prefix, StoreNode.path.startswith(prefix + "/", autoescape=True))
        ).delete(synchronize_session="fetch")
        if value is not None:
            db.session.add(StoreNode(path=prefix, value=value))

    def _commit(self, segments: Sequence[str], apply: Callable[[], None]) -> None:
        path = "/".join(segments)
        with self._write_lock:
            try:
                apply()
                db.session.commit()
            except SQLAlchemyError as exc:
                db.session.rollback()
                logger.exception("Store write failed for %s", path)
                raise StoreError("Failed to write to the store") from exc
            logger.debug("Store write committed: %s", path)
            self._notify(segments)

    # --- subscriptions ---
    def subscribe(
        self,
        path: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        """Register a live listener. Returns the unsubscribe function."""
        subscription = _Subscription(path, tuple(split_path(path)), on_snapshot, on_error)
        with self._subs_lock:
            self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            with self._subs_lock:
                subscription.active = False
                if subscription in self._subscriptions:
                    self._subscriptions.remove(subscription)

        self._deliver(subscription)
        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._subs_lock:
            return len(self._subscriptions)

    def _notify(self, segments: Sequence[str]) -> None:
        with self._subs_lock:
            targets = [s for s in self._subscriptions if s.active and _overlaps(s.segments, segments)]
        for subscription in targets:
            self._deliver(subscription)

    def _deliver(self, subscription: _Subscription) -> None:
        try:
            value = self._read(subscription.segments)
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Snapshot read failed for %s", subscription.path)
            if subscription.on_error is not None and subscription.active:
                subscription.on_error(StoreError("Failed to load data"))
            return

        if not subscription.active:
            return
        try:
            subscription.on_snapshot(value)
        except Exception:
            # A failing listener must not fail the writer that triggered it.
            logger.exception("Snapshot listener for %s raised", subscription.path)
