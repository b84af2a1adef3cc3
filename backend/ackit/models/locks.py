from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

ENTITY_ADMIN = "admin"
ENTITY_MANAGER = "manager"

ACTION_LOCK = "lock"
ACTION_UNLOCK = "unlock"

LOCK_FROM_ADMIN = "lock_from_admin"
LOCK_FROM_REMOTE = "lock_from_remote"
LOCK_TYPES = (LOCK_FROM_ADMIN, LOCK_FROM_REMOTE)


class LockRecord(db.Model):
    """
    Ledger entry for a system lock.

    entity_type selects the restore logic on unlock. previous_state holds
    the manager snapshot (admin records) or {manager_id, locked_at}
    (manager records). locked_temperatures is a list of
    {device_id, temperature, is_on}; None means no snapshot was taken and
    unlock falls back to venue membership.

    IMMUTABLE HISTORY: rows are never deleted. Unlock flips is_active and
    stamps unlocked_at/unlocked_by.
    """
    __tablename__ = "lock_records"
    __table_args__ = (
        db.Index("ix_lock_records_admin_active", "admin_id", "is_active"),
        db.Index("ix_lock_records_manager_active", "manager_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("admins.id"), nullable=True, index=True)
    manager_id = db.Column(db.Integer, db.ForeignKey("managers.id"), nullable=True, index=True)

    entity_type = db.Column(db.String(16), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)
    action_type = db.Column(db.String(16), nullable=False, default=ACTION_LOCK)
    lock_type = db.Column(db.String(32), nullable=False)

    previous_state = db.Column(db.JSON(none_as_null=True), nullable=True)
    locked_temperatures = db.Column(db.JSON(none_as_null=True), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    reason = db.Column(db.Text, nullable=True)
    locked_by = db.Column(db.String(120), nullable=True)
    locked_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    unlocked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    unlocked_by = db.Column(db.String(120), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<LockRecord id={self.id} entity={self.entity_type}:{self.entity_id} "
            f"type={self.lock_type} active={self.is_active}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "admin_id": self.admin_id,
            "manager_id": self.manager_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action_type": self.action_type,
            "lock_type": self.lock_type,
            "is_active": self.is_active,
            "reason": self.reason,
            "locked_by": self.locked_by,
            "locked_at": to_utc_z(self.locked_at),
            "unlocked_at": to_utc_z(self.unlocked_at),
            "unlocked_by": self.unlocked_by,
            "devices_locked": len(self.locked_temperatures or []),
        }
