# Overview: Admin suspension and resumption, with session invalidation cascade.

"""
Suspending an admin cuts off the admin and every manager it owns.

Tokens are revoked right after the commit. The authentication gate
re-checks the admin's status on every request anyway, so a manager whose
token somehow survives is still answered Forbidden.
"""

from __future__ import annotations

import logging

from ..errors import ConflictError, NotFound
from ..extensions import db
from ..models import Admin
from ..models.accounts import ADMIN_ACTIVE, ADMIN_SUSPENDED
from ..time_utils import to_utc_z, utcnow
from . import activity_service, session_service
from .concurrency import run_transaction

logger = logging.getLogger(__name__)


def _get_admin(admin_id: int) -> Admin:
    admin = db.session.get(Admin, admin_id)
    if admin is None:
        raise NotFound("Admin not found")
    return admin


def suspend_admin(admin_id: int, reason: str | None = None, superadmin_id: int | None = None) -> dict:
    admin = _get_admin(admin_id)
    if admin.status == ADMIN_SUSPENDED:
        raise ConflictError("Admin is already suspended")

    def _op():
        target = _get_admin(admin_id)
        target.status = ADMIN_SUSPENDED
        target.suspended_at = utcnow()
        target.suspended_by = superadmin_id
        target.suspension_reason = reason
        activity_service.record(
            "superadmin" if superadmin_id else "system", superadmin_id,
            activity_service.SUSPEND_ADMIN, "admin", admin_id,
            details={"reason": reason}, admin_id=admin_id,
        )
        db.session.commit()
        return target

    admin = run_transaction(_op, description="Admin suspension")

    admin_sessions = session_service.invalidate_admin_sessions(admin_id)
    cascade = session_service.invalidate_manager_sessions_for_admin(admin_id)
    logger.info(
        "Admin %s suspended; %d admin session(s) and %d manager session(s) invalidated",
        admin_id, admin_sessions, cascade["sessions_invalidated"],
    )
    return {
        "success": True,
        "admin_id": admin.id,
        "suspended_at": to_utc_z(admin.suspended_at),
        "reason": reason,
        "admin_sessions_invalidated": admin_sessions,
        **cascade,
    }


def resume_admin(admin_id: int, superadmin_id: int | None = None) -> Admin:
    admin = _get_admin(admin_id)
    if admin.status == ADMIN_ACTIVE:
        raise ConflictError("Admin is already active")

    def _op():
        target = _get_admin(admin_id)
        target.status = ADMIN_ACTIVE
        target.suspended_at = None
        target.suspended_by = None
        target.suspension_reason = None
        activity_service.record(
            "superadmin" if superadmin_id else "system", superadmin_id,
            activity_service.RESUME_ADMIN, "admin", admin_id, admin_id=admin_id,
        )
        db.session.commit()
        return target

    admin = run_transaction(_op, description="Admin resumption")
    logger.info("Admin %s resumed", admin_id)
    return admin
