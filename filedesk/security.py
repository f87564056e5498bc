"""
filedesk/security.py

Access control helpers.

Key rules:
- Admin: admin dashboard, user management, every record it uploaded plus
  every record uploaded by a subadmin.
- Subadmin: subadmin dashboard and only the records it uploaded.
- Diary, log-book and personal documents are per-user paths; everyone
  signed in has their own.

IMPORTANT:
- Decorators preserve wrapped function metadata (functools.wraps) to avoid
  Flask endpoint collisions.
- Decorators go BELOW @login_required so anonymous users are redirected to
  the login page rather than shown a 403.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Tuple

from flask import g, render_template

from .auth import auth_service
from .session import ADMIN, SUBADMIN


def _forbidden() -> Tuple[str, int]:
    """Render a consistent 403 page."""
    return render_template("errors/403.html"), 403


def current_session():
    """AppSession for the request (None when anonymous). Cached on flask.g by the auth service."""
    return auth_service.current_session()


def role_required(*roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator factory: the session role must be one of `roles`."""

    def decorator(view_func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view_func)
        def wrapper(*args: Any, **kwargs: Any):
            session = current_session()
            if session is None or session.role not in roles:
                return _forbidden()
            return view_func(*args, **kwargs)

        return wrapper

    return decorator


admin_required = role_required(ADMIN)
subadmin_required = role_required(SUBADMIN)


def can_access_record(record) -> bool:
    """Server-side check of the record visibility rule for one record."""
    session = current_session()
    return bool(session and session.can_see(record.uploaded_by, record.uploader_role))


def record_access_required(load_record: Callable[..., Any]) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator factory: the record must be visible to the current session.

    The loaded record is kept on flask.g.record for the view.

    Usage:
        @record_access_required(lambda key: load_record_or_404(key))
        def view(key): ...
    """

    def decorator(view_func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view_func)
        def wrapper(*args: Any, **kwargs: Any):
            record = load_record(**kwargs)
            if not can_access_record(record):
                return _forbidden()
            g.record = record
            return view_func(*args, **kwargs)

        return wrapper

    return decorator
