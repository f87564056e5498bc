"""
File Desk – SQL models

Three tables back the application:
- users        credentials owned by the auth service (profile + role live in the keyed store at user/<uid>)
- store_nodes  rows of the live keyed store: one JSON document per written path
- audit_logs   who changed which store entry, with before/after snapshots

IMPORTANT:
- Record/diary/log-book data is NOT modelled as tables; it is addressed by
  slash-delimited paths through filedesk.store.KeyedStore.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .extensions import db


def _new_uid() -> str:
    return uuid.uuid4().hex


class User(UserMixin, db.Model):
    """Login account. `uid` is the stable identity used in store paths."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    uid = db.Column(db.String(32), unique=True, nullable=False, index=True, default=_new_uid)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login_at = db.Column(db.DateTime, nullable=True)

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def __repr__(self):
        return f"<User {self.email}>"


class StoreNode(db.Model):
    """
    One document of the live keyed store.

    A row holds the full JSON value written at `path`. Reads of a parent path
    assemble child rows into a nested dict; reads/writes below a row's path
    operate inside its JSON value.
    """

    __tablename__ = "store_nodes"

    path = db.Column(db.String(512), primary_key=True)
    value = db.Column(db.JSON, nullable=False)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<StoreNode {self.path}>"


class AuditLog(db.Model):
    """Audit trail for store entry mutations."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    email_snapshot = db.Column(db.String(255), nullable=True)

    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_key = db.Column(db.String(128), nullable=False, index=True)

    action = db.Column(db.String(20), nullable=False, index=True)

    before_data = db.Column(db.Text, nullable=True)
    after_data = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
