"""
filedesk/storage.py

Blob storage on the local filesystem.

Contract:
- upload(path, stream, metadata, total=None) -> iterator of UploadProgress
    percentage updates while the stream is copied, then a final item with
    done=True and the download URL.
- list(folder) -> [BlobItem]
- delete(path)
- open(path) -> binary file object; stat(path) -> BlobItem

Layout under UPLOAD_FOLDER:
    files/<uid>/<category>/<ms>_<uuid>.<ext>     record attachments
    personalFiles/<uid>/<ms>_<name>              personal documents
Every blob has a sidecar "<name>.meta.json" holding its metadata.

IMPORTANT:
- Paths are confined to UPLOAD_FOLDER; "..", absolute paths and empty
  segments raise StorageError before anything touches the disk.
- The size limit is enforced while copying, not trusted from the client.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Dict, Iterator, List, Optional
from urllib.parse import quote

from flask import current_app
from werkzeug.utils import secure_filename

from .errors import FileTooLargeError, StorageError
from .entities import now_iso

logger = logging.getLogger(__name__)

BLOB_URL_PREFIX = "/blobs/"
META_SUFFIX = ".meta.json"
PART_SUFFIX = ".part"
CHUNK_SIZE = 64 * 1024

RECORD_FILES_ROOT = "files"
PERSONAL_FILES_ROOT = "personalFiles"


@dataclass
class UploadProgress:
    percent: int
    done: bool = False
    url: Optional[str] = None
    path: str = ""
    size: int = 0


@dataclass
class BlobItem:
    path: str
    name: str
    size: int
    url: str
    content_type: str = "application/octet-stream"
    updated_at: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------
def _extension(filename: str) -> str:
    _, _, ext = (filename or "").rpartition(".")
    return ext.lower() if "." in (filename or "") else "bin"


def record_file_path(uid: str, category: str, filename: str, ms: int) -> str:
    """files/<uid>/<category>/<ms>_<uuid>.<ext>"""
    return f"{RECORD_FILES_ROOT}/{uid}/{category or 'other'}/{ms}_{uuid.uuid4().hex}.{_extension(filename)}"


def personal_file_path(uid: str, filename: str, ms: int) -> str:
    """personalFiles/<uid>/<ms>_<name>"""
    name = secure_filename(filename or "") or "file"
    return f"{PERSONAL_FILES_ROOT}/{uid}/{ms}_{name}"


def blob_url(path: str) -> str:
    return BLOB_URL_PREFIX + quote(path)


class BlobStorage:
    """Flask extension; the root folder is read from the current app's UPLOAD_FOLDER."""

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        Path(app.config["UPLOAD_FOLDER"]).mkdir(parents=True, exist_ok=True)
        app.extensions["blob_storage"] = self

    @property
    def root(self) -> Path:
        return Path(current_app.config["UPLOAD_FOLDER"]).resolve()

    def _resolve(self, path: str) -> Path:
        segments = (path or "").split("/")
        if not path or path.startswith("/") or any(s in ("", ".", "..") for s in segments):
            raise StorageError(f"Invalid storage path: {path!r}")
        root = self.root
        target = (root / path).resolve()
        if root not in target.parents:
            raise StorageError(f"Invalid storage path: {path!r}")
        return target

    @staticmethod
    def _meta_path(target: Path) -> Path:
        return target.with_name(target.name + META_SUFFIX)

    def _read_meta(self, target: Path) -> Dict[str, Any]:
        meta_path = self._meta_path(target)
        if not meta_path.exists():
            return {}
        try:
            return json.loads(meta_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Unreadable blob metadata: %s", meta_path)
            return {}

    # --- upload ---
    def upload(
        self,
        path: str,
        stream: IO[bytes],
        metadata: Optional[Dict[str, Any]] = None,
        *,
        total: Optional[int] = None,
    ) -> Iterator[UploadProgress]:
        """
        Copy `stream` to `path`. Returns an iterator of progress updates.

        The path is checked immediately; the copy happens as the iterator is consumed.
        """
        target = self._resolve(path)
        max_bytes = current_app.config["MAX_UPLOAD_BYTES"]
        return self._copy(path, target, stream, dict(metadata or {}), total, max_bytes)

    def _copy(self, path, target, stream, metadata, total, max_bytes) -> Iterator[UploadProgress]:
        partial = target.with_name(target.name + PART_SUFFIX)
        written = 0
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(partial, "wb") as fh:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > max_bytes:
                        raise FileTooLargeError(f"File size must be less than {max_bytes // (1024 * 1024)}MB")
                    fh.write(chunk)
                    if total:
                        yield UploadProgress(percent=min(99, written * 100 // total), path=path, size=written)
            os.replace(partial, target)

            metadata.update({"size": written, "updated_at": now_iso()})
            self._meta_path(target).write_text(json.dumps(metadata, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            logger.exception("Upload failed for %s", path)
            raise StorageError("Upload failed") from exc
        finally:
            if partial.exists():
                partial.unlink()

        logger.info("Stored blob %s (%s bytes)", path, written)
        yield UploadProgress(percent=100, done=True, url=blob_url(path), path=path, size=written)

    def upload_all(self, path: str, stream: IO[bytes], metadata=None, *, total=None) -> UploadProgress:
        """Drain upload() and return the final progress item."""
        last = None
        for progress in self.upload(path, stream, metadata, total=total):
            logger.debug("Upload %s: %s%%", path, progress.percent)
            last = progress
        return last

    # --- read ---
    def stat(self, path: str) -> BlobItem:
        target = self._resolve(path)
        if not target.is_file():
            raise StorageError("File not found")
        meta = self._read_meta(target)
        return BlobItem(
            path=path,
            name=meta.get("original_name") or target.name,
            size=int(meta.get("size") or target.stat().st_size),
            url=blob_url(path),
            content_type=meta.get("content_type") or "application/octet-stream",
            updated_at=meta.get("updated_at", ""),
            metadata=meta,
        )

    def open(self, path: str) -> IO[bytes]:
        target = self._resolve(path)
        try:
            return open(target, "rb")
        except OSError as exc:
            raise StorageError("File not found") from exc

    def list(self, folder: str) -> List[BlobItem]:
        directory = self._resolve(folder)
        if not directory.is_dir():
            return []
        items = []
        for entry in sorted(directory.iterdir()):
            if not entry.is_file() or entry.name.endswith((META_SUFFIX, PART_SUFFIX)):
                continue
            items.append(self.stat(f"{folder.rstrip('/')}/{entry.name}"))
        return items

    # --- delete ---
    def delete(self, path: str, *, missing_ok: bool = True) -> None:
        target = self._resolve(path)
        if not target.exists():
            if missing_ok:
                logger.warning("Blob already gone: %s", path)
                return
            raise StorageError("File not found")
        try:
            target.unlink()
            meta_path = self._meta_path(target)
            if meta_path.exists():
                meta_path.unlink()
        except OSError as exc:
            logger.exception("Delete failed for %s", path)
            raise StorageError("Failed to delete file") from exc
        logger.info("Deleted blob %s", path)
