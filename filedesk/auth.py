"""
filedesk/auth.py

Authentication service.

Credentials live in the SQL `users` table; the profile (name, email, mobile,
role, createdAt) lives in the keyed store at user/<uid>, where the rest of
the app reads it.

Operations:
- sign_up(email, password, *, name, mobile, role) -> uid
- sign_in(email, password) -> AppSession        (also starts the Flask-Login session)
- sign_out()
- current_session() -> AppSession | None
- on_session_change(callback) -> disconnect
- send_password_reset(email) -> token          (delivery is logged, not mailed)
- reset_password(token, new_password)

Every failure raises AuthError with a message fit for the login banner.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Callable, Optional

from flask import current_app, g
from flask_login import current_user, login_user, logout_user, user_logged_in, user_logged_out
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.exc import IntegrityError

from .entities import PROFILES_ROOT, UserProfile, now_iso
from .errors import AuthError
from .extensions import db, store
from .models import User
from .session import ROLES, SUBADMIN, AppSession
from .store import join_path

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6
RESET_SALT = "password-reset"

SessionCallback = Callable[[Optional[AppSession]], None]


def profile_path(uid: str) -> str:
    return join_path(PROFILES_ROOT, uid)


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class AuthService:
    # --- profiles ---
    def load_profile(self, uid: str) -> UserProfile:
        return UserProfile.from_snapshot(uid, store.read_once(profile_path(uid)))

    def session_for(self, user: User) -> AppSession:
        """Build (once per request) the AppSession for a User row."""
        cached = g.get("app_session")
        if cached is not None and cached.user_id == user.uid:
            return cached
        profile = self.load_profile(user.uid)
        session = AppSession(
            user_id=user.uid,
            email=user.email,
            role=profile.role if profile.role in ROLES else SUBADMIN,
            name=profile.name,
        )
        g.app_session = session
        return session

    def list_profiles(self) -> list[UserProfile]:
        tree = store.read_once(PROFILES_ROOT) or {}
        profiles = [UserProfile.from_snapshot(uid, value) for uid, value in tree.items()]
        return sorted(profiles, key=lambda p: p.created_at, reverse=True)

    # --- sign up / in / out ---
    def sign_up(
        self,
        email: str,
        password: str,
        *,
        name: str = "",
        mobile: str = "",
        role: str = SUBADMIN,
    ) -> str:
        email = normalize_email(email)
        if not EMAIL_RE.match(email):
            raise AuthError("Invalid email address")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")
        if role not in ROLES:
            raise AuthError("Invalid role")
        if User.query.filter_by(email=email).first():
            raise AuthError("Email already in use")

        user = User(email=email, is_active=True)
        user.set_password(password)
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise AuthError("Email already in use") from exc

        profile = UserProfile(
            key=user.uid,
            name=(name or "").strip(),
            email=email,
            mobile=(mobile or "").strip(),
            role=role,
            created_at=now_iso(),
        )
        store.write(profile_path(user.uid), profile.to_store())
        logger.info("Account created: %s (%s)", email, role)
        return user.uid

    def authenticate(self, email: str, password: str) -> User:
        user = User.query.filter_by(email=normalize_email(email)).first()
        if not user or not user.check_password(password or ""):
            raise AuthError("Invalid email or password")
        if not user.is_active:
            raise AuthError("This account has been disabled")
        return user

    def sign_in(self, email: str, password: str, *, remember: bool = False) -> AppSession:
        user = self.authenticate(email, password)
        user.last_login_at = datetime.utcnow()
        db.session.commit()
        g.pop("app_session", None)
        login_user(user, remember=remember)
        logger.info("Signed in: %s", user.email)
        return self.session_for(user)

    def sign_out(self) -> None:
        if current_user.is_authenticated:
            logger.info("Signed out: %s", current_user.email)
        logout_user()
        g.pop("app_session", None)

    def current_session(self) -> Optional[AppSession]:
        if not current_user.is_authenticated:
            return None
        return self.session_for(current_user._get_current_object())

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        """
        Call `callback(session)` on sign-in and `callback(None)` on sign-out.

        Returns a function that disconnects both handlers.
        """

        def _logged_in(sender, user, **extra):
            callback(self.session_for(user))

        def _logged_out(sender, user, **extra):
            callback(None)

        user_logged_in.connect(_logged_in, weak=False)
        user_logged_out.connect(_logged_out, weak=False)

        def disconnect() -> None:
            user_logged_in.disconnect(_logged_in)
            user_logged_out.disconnect(_logged_out)

        return disconnect

    # --- password reset ---
    def _serializer(self) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=RESET_SALT)

    def send_password_reset(self, email: str) -> str:
        """
        Issue a reset token for a known email.

        The email must exist in the profile tree (user/<uid>), as well as in
        the credentials table. There is no mail transport: the link is logged.
        """
        email = normalize_email(email)
        if not email:
            raise AuthError("Please enter your email address")

        profiles = store.read_once(PROFILES_ROOT) or {}
        known = any(normalize_email((p or {}).get("email")) == email for p in profiles.values())
        user = User.query.filter_by(email=email).first()
        if not known or user is None:
            raise AuthError("No account found with this email")

        token = self._serializer().dumps({"uid": user.uid, "h": user.password_hash[-12:]})
        logger.info("Password reset requested for %s; token issued", email)
        logger.debug("Password reset token for %s: %s", email, token)
        return token

    def reset_password(self, token: str, new_password: str) -> None:
        max_age = current_app.config["PASSWORD_RESET_MAX_AGE"]
        try:
            data = self._serializer().loads(token, max_age=max_age)
        except SignatureExpired as exc:
            raise AuthError("This reset link has expired") from exc
        except BadSignature as exc:
            raise AuthError("This reset link is invalid") from exc

        user = User.query.filter_by(uid=data.get("uid")).first()
        # A used link no longer matches the stored hash.
        if user is None or user.password_hash[-12:] != data.get("h"):
            raise AuthError("This reset link is invalid")
        if len(new_password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")

        user.set_password(new_password)
        db.session.commit()
        logger.info("Password reset for %s", user.email)


auth_service = AuthService()
