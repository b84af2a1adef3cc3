# Overview: Temperature-change guard; decides whether an actor may change a device setpoint.

"""
Temperature-Change Guard

Active locks that matter for a device are those of its owning admin
(entity_type=admin) and of its assigned manager (entity_type=manager).

- The owning admin is always allowed. Admin-level locks on its fleet are
  its own, and manager-level locks never restrict it.
- The assigned manager is allowed unless an admin-level lock is active.
- Anyone else is denied while any of those locks is active.
- No active lock: allowed.

Pure read. The caller applies the change in a separate transaction, so a
lock placed between the check and the write is not seen (read-then-act).
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import Device, LockRecord
from ..models.locks import ENTITY_ADMIN, ENTITY_MANAGER
from . import hierarchy_service


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    reason: str

    def to_dict(self) -> dict:
        return {"allowed": self.allowed, "reason": self.reason}


def find_relevant_locks(admin_id: int, manager_id: int | None) -> list[LockRecord]:
    conditions = [
        db.and_(LockRecord.entity_type == ENTITY_ADMIN, LockRecord.admin_id == admin_id),
    ]
    if manager_id is not None:
        conditions.append(
            db.and_(LockRecord.entity_type == ENTITY_MANAGER, LockRecord.manager_id == manager_id)
        )
    return (
        db.session.query(LockRecord)
        .filter(LockRecord.is_active.is_(True), db.or_(*conditions))
        .order_by(LockRecord.locked_at.desc(), LockRecord.id.desc())
        .all()
    )


def can_change_temperature(device_id: int, actor_role: str, actor_id: int) -> GuardDecision:
    device = db.session.get(Device, device_id)
    if device is None:
        return GuardDecision(False, "Device not found")

    admin_id = hierarchy_service.get_owning_admin_id(device)
    manager_id = hierarchy_service.get_assigned_manager_id(device)
    locks = find_relevant_locks(admin_id, manager_id)

    if actor_role == "admin" and actor_id == admin_id:
        return GuardDecision(True, "Admin has permission")

    if actor_role == "manager" and manager_id is not None and actor_id == manager_id:
        if not any(lock.entity_type == ENTITY_ADMIN for lock in locks):
            return GuardDecision(True, "Manager has permission")

    if locks:
        return GuardDecision(False, f"Temperature locked by {locks[0].locked_by}")

    return GuardDecision(True, "No active locks")
