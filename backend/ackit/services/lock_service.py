# Overview: Lock state machine; system locks, unlock/restore, and organization/venue remote locks.

"""
Lock State Machine

Two orthogonal lock scopes, both recorded in the lock_records ledger:

- lock_from_admin (full system lock): every manager owned by the admin goes
  to status "locked" AND every device under the admin's organizations goes
  to current_state "locked".
- lock_from_remote (remote-only lock): devices only. Manager rows are never
  touched, so there is nothing to restore for them on unlock.

Each lock is one transaction: snapshot, ledger row, cascade, audit entry,
commit. Nothing of a failed lock is ever visible. Device commands are sent
after the commit and never affect the outcome.

Unlock restores every active record in the caller's scope, one transaction
per record. A record that fails to restore is rolled back on its own and
reported in failed_lock_ids; the others still go through.

Locks stack: a second lock on an already locked scope adds an independent
record unless LOCK_STRICT_MODE is on.

Organization/venue remote locks are lighter: they flip device state under
one organization or venue and write an audit entry, without a ledger row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ConflictError, NotFound, ValidationError
from ..extensions import db
from ..models import Admin, Device, LockRecord, Manager
from ..models.accounts import MANAGER_LOCKED, MANAGER_UNLOCKED
from ..models.facilities import DEVICE_LOCKED, DEVICE_UNLOCKED, MAX_TEMPERATURE, MIN_TEMPERATURE
from ..models.locks import (
    ACTION_LOCK,
    ENTITY_ADMIN,
    ENTITY_MANAGER,
    LOCK_FROM_ADMIN,
    LOCK_FROM_REMOTE,
    LOCK_TYPES,
)
from ..time_utils import parse_iso_datetime, utcnow
from . import activity_service, hierarchy_service
from .concurrency import lock_for_update, run_transaction, run_with_retry
from .device_channel import dispatch_lock_commands, dispatch_restore_commands

logger = logging.getLogger(__name__)

LOCKED_BY_ADMIN = "admin"
LOCKED_BY_REMOTE = "remote_lock"


@dataclass
class LockResult:
    lock_id: int
    lock_type: str
    locked_by: str | None
    reason: str | None
    managers_affected: int = 0
    devices_affected: int = 0
    dispatch: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "lock_id": self.lock_id,
            "lock_type": self.lock_type,
            "locked_by": self.locked_by,
            "reason": self.reason,
            "managers_affected": self.managers_affected,
            "devices_affected": self.devices_affected,
            "device_commands": self.dispatch,
        }


@dataclass
class UnlockResult:
    locks_removed: int
    unlocked_by: str | None = None
    message: str = "System unlocked successfully"
    lock_ids: list[int] = field(default_factory=list)
    failed_lock_ids: list[int] = field(default_factory=list)
    devices_restored: int = 0
    managers_restored: int = 0
    dispatch: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "message": self.message,
            "unlocked_by": self.unlocked_by,
            "locks_removed": self.locks_removed,
            "lock_ids": self.lock_ids,
            "failed_lock_ids": self.failed_lock_ids,
            "devices_restored": self.devices_restored,
            "managers_restored": self.managers_restored,
            "device_commands": self.dispatch,
        }


def _strict_mode() -> bool:
    return bool(current_app.config.get("LOCK_STRICT_MODE", False))


def _ensure_no_duplicate(entity_type: str, entity_id: int, lock_type: str) -> None:
    """Call inside the lock transaction, after the owning admin/manager row is locked."""
    if not _strict_mode():
        return
    existing = db.session.query(LockRecord.id).filter_by(
        entity_type=entity_type,
        entity_id=entity_id,
        lock_type=lock_type,
        is_active=True,
    ).first()
    if existing:
        raise ConflictError(
            "An identical lock is already active",
            lock_id=existing[0],
            lock_type=lock_type,
        )


def _snapshot_devices(devices: list[Device]) -> list[dict]:
    return [
        {"device_id": d.id, "temperature": d.temperature, "is_on": bool(d.is_on)}
        for d in devices
    ]


def _snapshot_managers(managers: list[Manager]) -> list[dict]:
    return [
        {
            "id": m.id,
            "status": m.status,
            "locked_at": m.locked_at.isoformat() if m.locked_at else None,
            "lock_reason": m.lock_reason,
            "locked_by_admin_id": m.locked_by_admin_id,
        }
        for m in managers
    ]


def _mark_devices_locked(devices: list[Device], locked_by: str, reason: str | None, now) -> None:
    for device in devices:
        device.current_state = DEVICE_LOCKED
        device.locked_at = now
        device.locked_by = locked_by
        device.lock_reason = reason or None


def _mark_device_unlocked(device: Device) -> None:
    device.current_state = DEVICE_UNLOCKED
    device.locked_at = None
    device.locked_by = None
    device.lock_reason = None


# ==================== SYSTEM LOCKS ====================

def lock_system(admin_id: int, lock_type: str, reason: str | None = None,
                locked_by: str | None = None) -> LockResult:
    """
    Lock an admin's whole fleet.

    lock_from_admin also locks every manager of the admin; lock_from_remote
    leaves managers alone. Raises NotFound, ValidationError, ConflictError
    (strict mode) or TransientStoreError.
    """
    if lock_type not in LOCK_TYPES:
        raise ValidationError(f"Invalid lock type: {lock_type!r}", allowed=list(LOCK_TYPES))

    admin = db.session.get(Admin, admin_id)
    if admin is None:
        raise NotFound(f"Admin with ID {admin_id} not found")

    full_lock = lock_type == LOCK_FROM_ADMIN
    reason = (reason or "").strip() or None
    locked_by = locked_by or admin.name

    def _op():
        lock_for_update(db.session.query(Admin).filter(Admin.id == admin_id)).first()
        _ensure_no_duplicate(ENTITY_ADMIN, admin_id, lock_type)
        now = utcnow()
        org_ids = hierarchy_service.get_admin_org_ids(admin_id)
        venue_ids = hierarchy_service.get_venue_ids_for_orgs(org_ids)
        devices = hierarchy_service.get_devices_in_venues(venue_ids, for_update=True)

        managers = []
        if full_lock:
            managers = (
                lock_for_update(db.session.query(Manager).filter(Manager.admin_id == admin_id))
                .order_by(Manager.id)
                .all()
            )

        record = LockRecord(
            admin_id=admin_id,
            entity_type=ENTITY_ADMIN,
            entity_id=admin_id,
            action_type=ACTION_LOCK,
            lock_type=lock_type,
            previous_state={
                "managers": _snapshot_managers(managers),
                "organizations": [{"id": org_id} for org_id in org_ids],
                "captured_at": now.isoformat(),
            },
            locked_temperatures=_snapshot_devices(devices),
            is_active=True,
            reason=reason,
            locked_by=locked_by,
            locked_at=now,
        )
        db.session.add(record)

        manager_reason = f"Admin locked system: {reason}" if reason else "Admin locked system"
        for manager in managers:
            manager.status = MANAGER_LOCKED
            manager.locked_at = now
            manager.lock_reason = manager_reason
            manager.locked_by_admin_id = admin_id

        _mark_devices_locked(devices, LOCKED_BY_ADMIN if full_lock else LOCKED_BY_REMOTE, reason, now)

        db.session.flush()
        activity_service.record(
            "admin", admin_id,
            activity_service.LOCK_SYSTEM if full_lock else activity_service.REMOTE_LOCK_SYSTEM,
            "system", admin_id,
            details={
                "lock_id": record.id,
                "lock_type": lock_type,
                "reason": reason,
                "managers_affected": len(managers),
                "devices_affected": len(devices),
            },
            admin_id=admin_id,
        )
        db.session.commit()
        return record.id, len(managers), devices

    lock_id, managers_affected, devices = run_transaction(_op, description="System lock")
    logger.info(
        "Admin %s placed %s lock %s (%d managers, %d devices)",
        admin_id, lock_type, lock_id, managers_affected, len(devices),
    )
    dispatch = dispatch_lock_commands(devices, locked=True)

    return LockResult(
        lock_id=lock_id,
        lock_type=lock_type,
        locked_by=locked_by,
        reason=reason,
        managers_affected=managers_affected,
        devices_affected=len(devices),
        dispatch=dispatch.to_dict(),
    )


def manager_lock_system(manager_id: int, reason: str | None = None,
                        locked_by: str | None = None) -> LockResult:
    """Remote-only lock over the devices a manager is assigned. Never touches manager rows."""
    manager = db.session.get(Manager, manager_id)
    if manager is None:
        raise NotFound("Manager not found")

    reason = (reason or "").strip() or None
    locked_by = locked_by or manager.name

    def _op():
        lock_for_update(db.session.query(Manager).filter(Manager.id == manager_id)).first()
        _ensure_no_duplicate(ENTITY_MANAGER, manager_id, LOCK_FROM_REMOTE)
        now = utcnow()
        venue_ids = hierarchy_service.get_manager_venue_ids(manager_id)
        devices = hierarchy_service.get_devices_in_venues(venue_ids, for_update=True)

        record = LockRecord(
            admin_id=manager.admin_id,
            manager_id=manager_id,
            entity_type=ENTITY_MANAGER,
            entity_id=manager_id,
            action_type=ACTION_LOCK,
            lock_type=LOCK_FROM_REMOTE,
            previous_state={"manager_id": manager_id, "locked_at": now.isoformat()},
            locked_temperatures=_snapshot_devices(devices),
            is_active=True,
            reason=reason,
            locked_by=locked_by,
            locked_at=now,
        )
        db.session.add(record)
        _mark_devices_locked(devices, LOCKED_BY_REMOTE, reason, now)

        db.session.flush()
        activity_service.record(
            "manager", manager_id, activity_service.MANAGER_LOCK_SYSTEM, "system", manager_id,
            details={
                "lock_id": record.id,
                "lock_type": LOCK_FROM_REMOTE,
                "reason": reason,
                "devices_affected": len(devices),
            },
            admin_id=manager.admin_id,
        )
        db.session.commit()
        return record.id, devices

    lock_id, devices = run_transaction(_op, description="Manager remote lock")
    logger.info("Manager %s placed remote lock %s (%d devices)", manager_id, lock_id, len(devices))
    dispatch = dispatch_lock_commands(devices, locked=True)

    return LockResult(
        lock_id=lock_id,
        lock_type=LOCK_FROM_REMOTE,
        locked_by=locked_by,
        reason=reason,
        devices_affected=len(devices),
        dispatch=dispatch.to_dict(),
    )


# ==================== UNLOCK ====================

def _restore_managers(snapshot: list[dict]) -> int:
    restored = 0
    for entry in snapshot:
        manager = db.session.get(Manager, int(entry["id"]))
        if manager is None:
            continue
        manager.status = entry.get("status") or MANAGER_UNLOCKED
        manager.locked_at = parse_iso_datetime(entry.get("locked_at"))
        manager.lock_reason = entry.get("lock_reason")
        manager.locked_by_admin_id = entry.get("locked_by_admin_id")
        restored += 1
    return restored


def _restore_devices(snapshot: list[dict]) -> list[Device]:
    restored = []
    for entry in snapshot:
        device_id = int(entry["device_id"])
        temperature = int(entry["temperature"])
        if not MIN_TEMPERATURE <= temperature <= MAX_TEMPERATURE:
            raise ValueError(f"Snapshot temperature {temperature} out of range for device {device_id}")
        device = lock_for_update(db.session.query(Device).filter(Device.id == device_id)).first()
        if device is None:
            # Device deleted while locked
            continue
        device.temperature = temperature
        device.is_on = bool(entry["is_on"])
        _mark_device_unlocked(device)
        restored.append(device)
    return restored


def _fallback_unlock(lock: LockRecord) -> list[Device]:
    if lock.entity_type == ENTITY_MANAGER:
        venue_ids = hierarchy_service.get_manager_venue_ids(lock.entity_id)
    else:
        venue_ids = hierarchy_service.get_admin_venue_ids(lock.admin_id)
    devices = hierarchy_service.get_devices_in_venues(venue_ids, for_update=True)
    for device in devices:
        _mark_device_unlocked(device)
    return devices


def restore_system_state(lock: LockRecord) -> tuple[list[Device], int]:
    """
    Undo the cascade of one lock record inside the caller's transaction.

    Admin records restore managers only when the snapshot lists some, so
    remote-only locks leave manager rows alone. Every record restores its
    snapshotted devices; a record without a device snapshot (None, not an
    empty list) unlocks by venue membership instead.

    Returns (devices touched, managers restored). Malformed snapshots raise
    KeyError/TypeError/ValueError.
    """
    managers_restored = 0
    if lock.entity_type == ENTITY_ADMIN:
        snapshot = (lock.previous_state or {}).get("managers") or []
        if snapshot:
            managers_restored = _restore_managers(snapshot)
    elif lock.entity_type != ENTITY_MANAGER:
        raise ValueError(f"Unknown lock entity type {lock.entity_type!r}")

    if lock.locked_temperatures is None:
        devices = _fallback_unlock(lock)
    else:
        devices = _restore_devices(lock.locked_temperatures)
    return devices, managers_restored


def unlock_system(actor_role: str, actor_id: int, unlocked_by: str | None = None,
                  admin_id: int | None = None) -> UnlockResult:
    """
    Release every active lock in the actor's scope.

    An admin releases the records it owns (admin and manager level). A
    manager releases every record under its admin, so admin_id is required.
    No active records is a successful no-op.

    Records are restored newest first, so with stacked locks the oldest
    snapshot (the state before any lock) is the one left in place.
    """
    if actor_role == "admin":
        scope_admin_id = actor_id
    elif actor_role == "manager":
        if admin_id is None:
            raise ValidationError("Admin ID is required for manager unlock")
        scope_admin_id = admin_id
    else:
        raise ValidationError(f"Unsupported role for unlock: {actor_role!r}")

    lock_ids = [
        row[0]
        for row in db.session.query(LockRecord.id)
        .filter(LockRecord.admin_id == scope_admin_id, LockRecord.is_active.is_(True))
        .order_by(LockRecord.locked_at.desc(), LockRecord.id.desc())
        .all()
    ]
    if not lock_ids:
        return UnlockResult(
            locks_removed=0,
            unlocked_by=unlocked_by,
            message="No active locks found. System is already unlocked.",
        )

    result = UnlockResult(locks_removed=0, unlocked_by=unlocked_by)
    restored_devices: dict[int, Device] = {}

    for lock_id in lock_ids:
        def _op(lock_id=lock_id):
            lock = lock_for_update(db.session.query(LockRecord).filter(LockRecord.id == lock_id)).first()
            if lock is None or not lock.is_active:
                return None
            devices, managers_restored = restore_system_state(lock)
            lock.is_active = False
            lock.unlocked_at = utcnow()
            lock.unlocked_by = unlocked_by
            db.session.commit()
            return devices, managers_restored

        try:
            outcome = run_with_retry(_op)
        except (SQLAlchemyError, KeyError, TypeError, ValueError):
            db.session.rollback()
            logger.exception("Failed to restore lock %s; continuing with remaining locks", lock_id)
            result.failed_lock_ids.append(lock_id)
            continue

        if outcome is None:
            # Released concurrently
            continue
        devices, managers_restored = outcome
        result.locks_removed += 1
        result.lock_ids.append(lock_id)
        result.managers_restored += managers_restored
        for device in devices:
            restored_devices[device.id] = device

    result.devices_restored = len(restored_devices)
    if result.failed_lock_ids:
        result.message = (
            f"System partially unlocked: {len(result.failed_lock_ids)} lock(s) could not be restored"
        )

    activity_service.record_detached(
        actor_role, actor_id, activity_service.UNLOCK_SYSTEM, "system", scope_admin_id,
        details={
            "lock_ids": result.lock_ids,
            "failed_lock_ids": result.failed_lock_ids,
            "devices_restored": result.devices_restored,
            "managers_restored": result.managers_restored,
        },
        admin_id=scope_admin_id,
    )
    logger.info(
        "%s %s released %d lock(s) under admin %s (%d failed)",
        actor_role, actor_id, result.locks_removed, scope_admin_id, len(result.failed_lock_ids),
    )

    result.dispatch = dispatch_restore_commands(list(restored_devices.values())).to_dict()
    return result


# ==================== ORGANIZATION / VENUE REMOTE LOCKS ====================

def _remote_scope_change(*, principal_role: str, principal_id: int, owning_admin_id: int,
                         action: str, target_type: str, target_id: int, venue_ids: list[int],
                         locked: bool, message: Callable[[int], str], reason: str | None) -> dict:
    def _op():
        now = utcnow()
        devices = hierarchy_service.get_devices_in_venues(venue_ids, for_update=True)
        if locked:
            _mark_devices_locked(devices, LOCKED_BY_REMOTE, reason, now)
        else:
            for device in devices:
                _mark_device_unlocked(device)
        details = {
            "message": message(len(devices)),
            "devices_affected": len(devices),
            "venues_affected": len(venue_ids),
        }
        if locked:
            details["reason"] = reason
        activity_service.record(
            principal_role, principal_id, action, target_type, target_id,
            details=details, admin_id=owning_admin_id,
        )
        db.session.commit()
        return devices

    devices = run_transaction(_op, description=action.replace("_", " ").capitalize())
    logger.info("%s %s: %s %s, %d device(s)", principal_role, principal_id, action, target_id, len(devices))
    dispatch = dispatch_lock_commands(devices, locked=locked)
    return {
        "success": True,
        "target_type": target_type,
        "target_id": target_id,
        "devices_affected": len(devices),
        "venues_affected": len(venue_ids),
        "device_commands": dispatch.to_dict(),
    }


def _reason_text(reason: str | None) -> str:
    return reason or "No reason provided"


def remote_lock_organization(admin_id: int, org_id: int, reason: str | None = None) -> dict:
    org = hierarchy_service.require_admin_organization(admin_id, org_id)
    result = _remote_scope_change(
        principal_role="admin", principal_id=admin_id, owning_admin_id=admin_id,
        action=activity_service.REMOTE_LOCK_ORGANIZATION,
        target_type="organization", target_id=org.id,
        venue_ids=hierarchy_service.get_venue_ids_for_orgs([org.id]),
        locked=True, reason=reason,
        message=lambda count: (
            f'Remote locked all devices in organization "{org.name}". '
            f"{count} device(s) locked. Reason: {_reason_text(reason)}"
        ),
    )
    result["organization_name"] = org.name
    return result


def remote_unlock_organization(admin_id: int, org_id: int) -> dict:
    org = hierarchy_service.require_admin_organization(admin_id, org_id)
    result = _remote_scope_change(
        principal_role="admin", principal_id=admin_id, owning_admin_id=admin_id,
        action=activity_service.REMOTE_UNLOCK_ORGANIZATION,
        target_type="organization", target_id=org.id,
        venue_ids=hierarchy_service.get_venue_ids_for_orgs([org.id]),
        locked=False, reason=None,
        message=lambda count: (
            f'Remote unlocked all devices in organization "{org.name}". '
            f"{count} device(s) unlocked."
        ),
    )
    result["organization_name"] = org.name
    return result


def remote_lock_venue(admin_id: int, venue_id: int, reason: str | None = None) -> dict:
    venue = hierarchy_service.require_admin_venue(admin_id, venue_id)
    result = _remote_scope_change(
        principal_role="admin", principal_id=admin_id, owning_admin_id=admin_id,
        action=activity_service.REMOTE_LOCK_VENUE,
        target_type="venue", target_id=venue.id,
        venue_ids=[venue.id],
        locked=True, reason=reason,
        message=lambda count: (
            f'Remote locked all devices in venue "{venue.name}". '
            f"{count} device(s) locked. Reason: {_reason_text(reason)}"
        ),
    )
    result["venue_name"] = venue.name
    return result


def remote_unlock_venue(admin_id: int, venue_id: int) -> dict:
    venue = hierarchy_service.require_admin_venue(admin_id, venue_id)
    result = _remote_scope_change(
        principal_role="admin", principal_id=admin_id, owning_admin_id=admin_id,
        action=activity_service.REMOTE_UNLOCK_VENUE,
        target_type="venue", target_id=venue.id,
        venue_ids=[venue.id],
        locked=False, reason=None,
        message=lambda count: (
            f'Remote unlocked all devices in venue "{venue.name}". '
            f"{count} device(s) unlocked."
        ),
    )
    result["venue_name"] = venue.name
    return result


def _require_manager(manager_id: int) -> Manager:
    manager = db.session.get(Manager, manager_id)
    if manager is None:
        raise NotFound("Manager not found")
    return manager


def manager_remote_lock_organization(manager_id: int, org_id: int, reason: str | None = None) -> dict:
    manager = _require_manager(manager_id)
    org = hierarchy_service.require_manager_organization(manager_id, org_id)
    result = _remote_scope_change(
        principal_role="manager", principal_id=manager_id, owning_admin_id=manager.admin_id,
        action=activity_service.MANAGER_REMOTE_LOCK_ORGANIZATION,
        target_type="organization", target_id=org.id,
        venue_ids=hierarchy_service.get_venue_ids_for_orgs([org.id]),
        locked=True, reason=reason,
        message=lambda count: (
            f'Manager "{manager.name}" remote locked all devices in organization "{org.name}". '
            f"{count} device(s) locked. Reason: {_reason_text(reason)}"
        ),
    )
    result["organization_name"] = org.name
    return result


def manager_remote_unlock_organization(manager_id: int, org_id: int) -> dict:
    manager = _require_manager(manager_id)
    org = hierarchy_service.require_manager_organization(manager_id, org_id)
    result = _remote_scope_change(
        principal_role="manager", principal_id=manager_id, owning_admin_id=manager.admin_id,
        action=activity_service.MANAGER_REMOTE_UNLOCK_ORGANIZATION,
        target_type="organization", target_id=org.id,
        venue_ids=hierarchy_service.get_venue_ids_for_orgs([org.id]),
        locked=False, reason=None,
        message=lambda count: (
            f'Manager "{manager.name}" remote unlocked all devices in organization "{org.name}". '
            f"{count} device(s) unlocked."
        ),
    )
    result["organization_name"] = org.name
    return result


def manager_remote_lock_venue(manager_id: int, venue_id: int, reason: str | None = None) -> dict:
    manager = _require_manager(manager_id)
    venue = hierarchy_service.require_manager_venue(manager_id, venue_id)
    result = _remote_scope_change(
        principal_role="manager", principal_id=manager_id, owning_admin_id=manager.admin_id,
        action=activity_service.MANAGER_REMOTE_LOCK_VENUE,
        target_type="venue", target_id=venue.id,
        venue_ids=[venue.id],
        locked=True, reason=reason,
        message=lambda count: (
            f'Manager "{manager.name}" remote locked all devices in venue "{venue.name}". '
            f"{count} device(s) locked. Reason: {_reason_text(reason)}"
        ),
    )
    result["venue_name"] = venue.name
    return result


def manager_remote_unlock_venue(manager_id: int, venue_id: int) -> dict:
    manager = _require_manager(manager_id)
    venue = hierarchy_service.require_manager_venue(manager_id, venue_id)
    result = _remote_scope_change(
        principal_role="manager", principal_id=manager_id, owning_admin_id=manager.admin_id,
        action=activity_service.MANAGER_REMOTE_UNLOCK_VENUE,
        target_type="venue", target_id=venue.id,
        venue_ids=[venue.id],
        locked=False, reason=None,
        message=lambda count: (
            f'Manager "{manager.name}" remote unlocked all devices in venue "{venue.name}". '
            f"{count} device(s) unlocked."
        ),
    )
    result["venue_name"] = venue.name
    return result


# ==================== STATUS / SNAPSHOT READS ====================

def get_active_locks(admin_id: int) -> list[LockRecord]:
    return (
        db.session.query(LockRecord)
        .filter(LockRecord.admin_id == admin_id, LockRecord.is_active.is_(True))
        .order_by(LockRecord.locked_at.desc(), LockRecord.id.desc())
        .all()
    )


def get_system_status(admin_id: int) -> dict:
    locks = get_active_locks(admin_id)
    return {
        "is_locked": bool(locks),
        "admin_locked": any(l.entity_type == ENTITY_ADMIN and l.lock_type == LOCK_FROM_ADMIN for l in locks),
        "remote_locked": any(l.lock_type == LOCK_FROM_REMOTE for l in locks),
        "active_locks": [l.to_dict() for l in locks],
    }


def get_locked_temperatures(manager_id: int) -> list[dict]:
    """Device snapshot of the manager's most recent active lock, or []."""
    lock = (
        db.session.query(LockRecord)
        .filter(LockRecord.manager_id == manager_id, LockRecord.is_active.is_(True))
        .order_by(LockRecord.locked_at.desc(), LockRecord.id.desc())
        .first()
    )
    if lock is None:
        return []
    return list(lock.locked_temperatures or [])


def restore_temperature(device_id: int) -> bool:
    """
    Write back the locked setpoint of a device from the newest active lock
    of its owning admin that snapshotted it. Returns False when no such
    snapshot exists.
    """
    device = db.session.get(Device, device_id)
    if device is None:
        return False
    admin_id = hierarchy_service.get_owning_admin_id(device)
    for lock in get_active_locks(admin_id):
        for entry in lock.locked_temperatures or []:
            if entry.get("device_id") != device_id:
                continue
            device.temperature = entry["temperature"]
            device.is_on = bool(entry["is_on"])
            db.session.commit()
            logger.info("Restored locked setpoint %s for device %s", device.temperature, device_id)
            return True
    return False
