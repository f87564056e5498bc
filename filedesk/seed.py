"""
filedesk/seed.py

Bootstrap accounts.

Rules:
- Self sign-up only ever creates subadmins; admins come from here (CLI) or
  from the admin user-management screen.
- Safe to run multiple times: an existing admin email is promoted, not duplicated.
"""

from __future__ import annotations

from .auth import auth_service, normalize_email, profile_path
from .extensions import store
from .models import User
from .session import ADMIN


def create_admin(email: str, password: str, name: str = "") -> str:
    """Create (or promote) an admin account. Returns the uid."""
    existing = User.query.filter_by(email=normalize_email(email)).first()
    if existing is None:
        return auth_service.sign_up(email, password, name=name, role=ADMIN)

    updates = {"role": ADMIN, "email": existing.email}
    if name:
        updates["name"] = name
    store.update(profile_path(existing.uid), updates)
    return existing.uid
