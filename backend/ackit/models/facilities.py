from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

DEVICE_LOCKED = "locked"
DEVICE_UNLOCKED = "unlocked"

MIN_TEMPERATURE = 16
MAX_TEMPERATURE = 30
DEFAULT_TEMPERATURE = 24


class Organization(db.Model):
    """
    Top of an admin's device hierarchy.

    An organization may be assigned to one manager; that manager then
    reaches every venue in it unless a venue names its own manager.
    """
    __tablename__ = "organizations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    batch_number = db.Column(db.String(64), nullable=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("admins.id"), nullable=False, index=True)
    manager_id = db.Column(db.Integer, db.ForeignKey("managers.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    admin = db.relationship("Admin", backref=db.backref("organizations", lazy=True))
    manager = db.relationship("Manager", backref=db.backref("organizations", lazy=True))

    def __repr__(self) -> str:
        return f"<Organization id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "batch_number": self.batch_number,
            "admin_id": self.admin_id,
            "manager_id": self.manager_id,
            "created_at": to_utc_z(self.created_at),
        }


class Venue(db.Model):
    __tablename__ = "venues"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    organization_id = db.Column(
        db.Integer,
        db.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    admin_id = db.Column(db.Integer, db.ForeignKey("admins.id"), nullable=False, index=True)
    manager_id = db.Column(db.Integer, db.ForeignKey("managers.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    organization = db.relationship(
        "Organization",
        backref=db.backref("venues", lazy=True, cascade="all, delete-orphan", passive_deletes=True),
    )
    manager = db.relationship("Manager", backref=db.backref("venues", lazy=True))

    @property
    def assigned_manager_id(self) -> int | None:
        if self.manager_id is not None:
            return self.manager_id
        return self.organization.manager_id if self.organization else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "organization_id": self.organization_id,
            "admin_id": self.admin_id,
            "manager_id": self.manager_id,
            "created_at": to_utc_z(self.created_at),
        }


class Device(db.Model):
    """
    One controllable AC unit.

    current_state is the persisted lock flag the hardware is resynchronised
    from; locked_by names who placed it ("admin", "remote_lock", "manager").
    """
    __tablename__ = "devices"
    __table_args__ = (
        db.CheckConstraint(
            f"temperature >= {MIN_TEMPERATURE} AND temperature <= {MAX_TEMPERATURE}",
            name="ck_devices_temperature_range",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    serial_number = db.Column(db.String(128), nullable=True, unique=True)
    venue_id = db.Column(
        db.Integer,
        db.ForeignKey("venues.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    temperature = db.Column(db.Integer, nullable=False, default=DEFAULT_TEMPERATURE)
    is_on = db.Column(db.Boolean, nullable=False, default=False)

    current_state = db.Column(db.String(16), nullable=False, default=DEVICE_UNLOCKED, index=True)
    locked_by = db.Column(db.String(64), nullable=True)
    locked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    lock_reason = db.Column(db.Text, nullable=True)

    changed_by = db.Column(db.String(64), nullable=True)
    last_temperature_change = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    venue = db.relationship(
        "Venue",
        backref=db.backref("devices", lazy=True, cascade="all, delete-orphan", passive_deletes=True),
    )

    @property
    def is_locked(self) -> bool:
        return self.current_state == DEVICE_LOCKED

    def __repr__(self) -> str:
        return f"<Device id={self.id} serial={self.serial_number!r} state={self.current_state}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "serial_number": self.serial_number,
            "venue_id": self.venue_id,
            "temperature": self.temperature,
            "is_on": self.is_on,
            "current_state": self.current_state,
            "locked_by": self.locked_by,
            "locked_at": to_utc_z(self.locked_at),
            "lock_reason": self.lock_reason,
            "changed_by": self.changed_by,
            "last_temperature_change": to_utc_z(self.last_temperature_change),
        }
