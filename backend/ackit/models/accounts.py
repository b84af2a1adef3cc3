from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

ADMIN_ACTIVE = "active"
ADMIN_SUSPENDED = "suspended"

MANAGER_UNLOCKED = "unlocked"
MANAGER_LOCKED = "locked"
MANAGER_RESTRICTED = "restricted"
MANAGER_STATUSES = (MANAGER_UNLOCKED, MANAGER_LOCKED, MANAGER_RESTRICTED)


class SuperAdmin(db.Model):
    """Platform operator. Suspends and resumes admins; never holds a device scope."""
    __tablename__ = "superadmins"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
        }


class Admin(db.Model):
    """
    Owner of a device fleet (organizations -> venues -> devices).

    A suspended admin cannot authenticate, and neither can any manager
    it owns.
    """
    __tablename__ = "admins"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=ADMIN_ACTIVE, index=True)
    suspended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    suspended_by = db.Column(db.Integer, db.ForeignKey("superadmins.id"), nullable=True)
    suspension_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_suspended(self) -> bool:
        return self.status == ADMIN_SUSPENDED

    def __repr__(self) -> str:
        return f"<Admin id={self.id} email={self.email!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "status": self.status,
            "suspended_at": to_utc_z(self.suspended_at),
            "suspension_reason": self.suspension_reason,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class Manager(db.Model):
    """
    Operator acting on behalf of one admin.

    status:
    - unlocked: full access to assigned organizations/venues
    - restricted: may log in and read, may not mutate
    - locked: may not authenticate
    """
    __tablename__ = "managers"
    __table_args__ = (
        db.Index("ix_managers_admin_status", "admin_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    admin_id = db.Column(db.Integer, db.ForeignKey("admins.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=MANAGER_UNLOCKED)
    locked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    lock_reason = db.Column(db.Text, nullable=True)
    locked_by_admin_id = db.Column(db.Integer, db.ForeignKey("admins.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    admin = db.relationship(
        "Admin",
        foreign_keys=[admin_id],
        backref=db.backref("managers", lazy=True),
    )

    @property
    def is_locked(self) -> bool:
        return self.status == MANAGER_LOCKED

    @property
    def is_restricted(self) -> bool:
        return self.status == MANAGER_RESTRICTED

    def __repr__(self) -> str:
        return f"<Manager id={self.id} admin_id={self.admin_id} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "admin_id": self.admin_id,
            "status": self.status,
            "locked_at": to_utc_z(self.locked_at),
            "lock_reason": self.lock_reason,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
