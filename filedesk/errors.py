"""
filedesk/errors.py

Exception hierarchy shared by services and routes.

Routes translate these into user-facing messages:
- ValidationError -> inline field errors (never reaches the store)
- AuthError       -> top-level banner on the auth pages
- StoreError / StorageError -> transient flash ("toast"), not retried
"""

from __future__ import annotations

from typing import Dict, Optional


class FiledeskError(Exception):
    """Base class for every error raised by filedesk services."""


class ValidationError(FiledeskError):
    """Form input failed validation. `errors` maps field name -> message."""

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        super().__init__(message or "Please fix validation errors")


class AuthError(FiledeskError):
    """Sign-up / sign-in / password reset failure with a human-readable message."""


class StoreError(FiledeskError):
    """The live keyed store could not complete a read or write."""


class InvalidPathError(StoreError):
    """A store path is empty or contains a forbidden character."""


class StorageError(FiledeskError):
    """Blob storage failure (upload, listing, delete)."""


class FileTooLargeError(StorageError):
    """The uploaded file exceeds MAX_UPLOAD_BYTES."""
