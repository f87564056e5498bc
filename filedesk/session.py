"""
Explicit application session.

An AppSession is built from the signed-in user and their profile and passed
into every view-model. View-models never read Flask-Login's current_user;
only the route edge does (AuthService.current_session).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

ADMIN = "admin"
SUBADMIN = "subadmin"
ROLES = (ADMIN, SUBADMIN)

ROLE_LABELS = {
    ADMIN: "Admin",
    SUBADMIN: "Sub-admin",
}


@dataclass(frozen=True)
class AppSession:
    user_id: str
    email: str
    role: str = SUBADMIN
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN

    @property
    def display_name(self) -> str:
        return self.name or self.email

    def can_see(self, uploaded_by: Optional[str], uploader_role: Optional[str]) -> bool:
        """
        Record visibility: own records always; admins also see every subadmin record.

        This is a display rule applied after the full snapshot is loaded.
        """
        if uploaded_by and uploaded_by == self.user_id:
            return True
        return self.is_admin and uploader_role == SUBADMIN

    def dashboard_endpoint(self) -> str:
        return "records.dashboard" if self.is_admin else "records.subadmin_dashboard"
