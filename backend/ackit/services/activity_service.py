# Overview: Append-only activity/audit log for lock, unlock, and account actions.

"""
Activity log emitter.

record() joins the caller's transaction so the entry commits (or rolls
back) with the mutation it describes. record_detached() commits on its
own and never raises: it is used for events that happen outside a
mutation (logins, failed logins, guard denials).

Client context (ip, user agent) is taken from the active request when
there is one.
"""

from __future__ import annotations

import logging

from flask import has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ActivityLog

logger = logging.getLogger(__name__)

# Action names
LOGIN = "LOGIN"
LOGIN_FAILED = "LOGIN_FAILED"
LOGOUT = "LOGOUT"
LOCK_SYSTEM = "LOCK_SYSTEM"
REMOTE_LOCK_SYSTEM = "REMOTE_LOCK_SYSTEM"
MANAGER_LOCK_SYSTEM = "MANAGER_LOCK_SYSTEM"
UNLOCK_SYSTEM = "UNLOCK_SYSTEM"
REMOTE_LOCK_ORGANIZATION = "REMOTE_LOCK_ORGANIZATION"
REMOTE_UNLOCK_ORGANIZATION = "REMOTE_UNLOCK_ORGANIZATION"
REMOTE_LOCK_VENUE = "REMOTE_LOCK_VENUE"
REMOTE_UNLOCK_VENUE = "REMOTE_UNLOCK_VENUE"
MANAGER_REMOTE_LOCK_ORGANIZATION = "MANAGER_REMOTE_LOCK_ORGANIZATION"
MANAGER_REMOTE_UNLOCK_ORGANIZATION = "MANAGER_REMOTE_UNLOCK_ORGANIZATION"
MANAGER_REMOTE_LOCK_VENUE = "MANAGER_REMOTE_LOCK_VENUE"
MANAGER_REMOTE_UNLOCK_VENUE = "MANAGER_REMOTE_UNLOCK_VENUE"
SET_TEMPERATURE = "SET_TEMPERATURE"
TEMPERATURE_CHANGE_DENIED = "TEMPERATURE_CHANGE_DENIED"
LOCK_MANAGER = "LOCK_MANAGER"
UNLOCK_MANAGER = "UNLOCK_MANAGER"
RESTRICTED_UNLOCK_MANAGER = "RESTRICTED_UNLOCK_MANAGER"
SUSPEND_ADMIN = "SUSPEND_ADMIN"
RESUME_ADMIN = "RESUME_ADMIN"


def _client_context() -> tuple[str | None, str | None]:
    if not has_request_context():
        return None, None
    return request.remote_addr, request.headers.get("User-Agent")


def _build(principal_role, principal_id, action, target_type, target_id, details, admin_id) -> ActivityLog:
    ip_address, user_agent = _client_context()
    return ActivityLog(
        principal_role=principal_role,
        principal_id=principal_id,
        admin_id=admin_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )


def record(
    principal_role: str,
    principal_id: int | None,
    action: str,
    target_type: str,
    target_id: int | None,
    details: dict | None = None,
    admin_id: int | None = None,
) -> ActivityLog:
    """Add an entry to the current transaction; the caller commits."""
    entry = _build(principal_role, principal_id, action, target_type, target_id, details, admin_id)
    db.session.add(entry)
    return entry


def record_detached(
    principal_role: str,
    principal_id: int | None,
    action: str,
    target_type: str,
    target_id: int | None,
    details: dict | None = None,
    admin_id: int | None = None,
) -> ActivityLog | None:
    """Write an entry in its own commit. Store failures are logged, not raised."""
    entry = _build(principal_role, principal_id, action, target_type, target_id, details, admin_id)
    try:
        db.session.add(entry)
        db.session.commit()
        return entry
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning("Could not write activity log entry %s", action, exc_info=True)
        return None


def list_for_admin(admin_id: int, limit: int = 50) -> list[ActivityLog]:
    limit = max(1, min(int(limit), 500))
    return (
        db.session.query(ActivityLog)
        .filter(ActivityLog.admin_id == admin_id)
        .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
        .limit(limit)
        .all()
    )
