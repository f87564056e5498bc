"""
filedesk/audit.py

Audit logging for store entry mutations.

Goals:
- Capture WHO did WHAT to WHICH entry, with BEFORE/AFTER snapshots.
- Store an email snapshot so identity survives later account changes.
- Store IP address for traceability.

IMPORTANT:
- log_action() ADDS an AuditLog row to the current SQLAlchemy session.
  The calling route controls the commit.
- Audit runs server-side after the store write succeeded.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from flask import has_request_context, request
from flask_login import current_user

from .extensions import db
from .models import AuditLog

logger = logging.getLogger(__name__)

CREATE = "CREATE"
UPDATE = "UPDATE"
DELETE = "DELETE"


def serialize_entry(entry: Any) -> Optional[Dict[str, Any]]:
    """Snapshot of a store entry dataclass (what to_store() writes, plus its key)."""
    if entry is None:
        return None
    data = entry.to_store()
    data["key"] = entry.key
    return data


def log_action(
    kind: str,
    key: str,
    action: str,
    *,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add an AuditLog entry to the current db session.

    kind:   entry KIND tag ("record", "diary", "logbook", "document")
    action: CREATE / UPDATE / DELETE
    """
    if not kind or not key or not action:
        raise ValueError("log_action requires kind, key and action")

    authenticated = current_user.is_authenticated if has_request_context() else False
    entry = AuditLog(
        user_id=current_user.id if authenticated else None,
        email_snapshot=current_user.email if authenticated else None,
        entity_type=kind,
        entity_key=key,
        action=action,
        before_data=json.dumps(before, ensure_ascii=False) if before else None,
        after_data=json.dumps(after, ensure_ascii=False) if after else None,
        ip_address=request.remote_addr if has_request_context() else None,
    )
    db.session.add(entry)
    logger.debug("Audit %s %s/%s", action, kind, key)
    return entry


def record_mutation(kind: str, key: str, action: str, *, before=None, after=None) -> None:
    """log_action + commit, for routes whose store write has already committed."""
    log_action(kind, key, action, before=serialize_entry(before), after=serialize_entry(after))
    db.session.commit()
