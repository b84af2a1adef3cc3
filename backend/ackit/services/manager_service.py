# Overview: Manager account control by the owning admin (lock, unlock, restricted unlock).

"""
Manager account status is separate from system locks: it decides whether
a manager can log in (locked) or mutate anything (restricted). A full
system lock also sets managers to locked, and unlocking that system lock
restores whatever status this module had set before.
"""

from __future__ import annotations

import logging

from ..errors import ConflictError, NotFound
from ..extensions import db
from ..models import Manager
from ..models.accounts import MANAGER_LOCKED, MANAGER_RESTRICTED, MANAGER_UNLOCKED
from ..time_utils import utcnow
from . import activity_service
from .concurrency import lock_for_update, run_transaction

logger = logging.getLogger(__name__)


def get_admin_manager(admin_id: int, manager_id: int, for_update: bool = False) -> Manager:
    query = db.session.query(Manager).filter(Manager.id == manager_id, Manager.admin_id == admin_id)
    if for_update:
        query = lock_for_update(query)
    manager = query.first()
    if manager is None:
        raise NotFound("Manager not found or does not belong to this admin")
    return manager


def list_managers(admin_id: int) -> list[Manager]:
    return db.session.query(Manager).filter(Manager.admin_id == admin_id).order_by(Manager.id).all()


def _change_status(admin_id: int, manager_id: int, status: str, action: str,
                   already_message: str, reason: str | None = None) -> Manager:
    get_admin_manager(admin_id, manager_id)

    def _op():
        manager = get_admin_manager(admin_id, manager_id, for_update=True)
        if manager.status == status:
            raise ConflictError(already_message, status=status)
        previous = manager.status
        manager.status = status
        if status == MANAGER_LOCKED:
            manager.locked_at = utcnow()
            manager.lock_reason = reason or "Locked by admin"
            manager.locked_by_admin_id = admin_id
        else:
            manager.locked_at = None
            manager.lock_reason = None
            manager.locked_by_admin_id = None
        activity_service.record(
            "admin", admin_id, action, "manager", manager_id,
            details={"manager_name": manager.name, "from": previous, "to": status, "reason": reason},
            admin_id=admin_id,
        )
        db.session.commit()
        return manager

    manager = run_transaction(_op, description="Manager status change")
    logger.info("Admin %s set manager %s to %s", admin_id, manager_id, status)
    return manager


def lock_manager(admin_id: int, manager_id: int, reason: str | None = None) -> Manager:
    return _change_status(
        admin_id, manager_id, MANAGER_LOCKED, activity_service.LOCK_MANAGER,
        "Manager is already locked", reason=reason,
    )


def unlock_manager(admin_id: int, manager_id: int) -> Manager:
    return _change_status(
        admin_id, manager_id, MANAGER_UNLOCKED, activity_service.UNLOCK_MANAGER,
        "Manager is already unlocked",
    )


def restricted_unlock_manager(admin_id: int, manager_id: int) -> Manager:
    return _change_status(
        admin_id, manager_id, MANAGER_RESTRICTED, activity_service.RESTRICTED_UNLOCK_MANAGER,
        "Manager is already unlocked with restricted access",
    )
