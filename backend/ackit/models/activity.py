from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class ActivityLog(db.Model):
    """
    Audit trail of lock, unlock, and account actions.

    admin_id is the owning admin of whatever was touched, so an admin's
    feed includes what its managers did.

    IMMUTABLE: append-only.
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("ix_activity_logs_admin_timestamp", "admin_id", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    principal_role = db.Column(db.String(16), nullable=False)  # admin, manager, superadmin, system
    principal_id = db.Column(db.Integer, nullable=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("admins.id"), nullable=True, index=True)

    action = db.Column(db.String(64), nullable=False, index=True)  # LOCK_SYSTEM, REMOTE_LOCK_VENUE, ...
    target_type = db.Column(db.String(32), nullable=False)
    target_id = db.Column(db.Integer, nullable=True)
    details = db.Column(db.JSON, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "principal_role": self.principal_role,
            "principal_id": self.principal_id,
            "admin_id": self.admin_id,
            "action": self.action,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "details": self.details,
            "ip_address": self.ip_address,
            "timestamp": to_utc_z(self.timestamp),
        }
