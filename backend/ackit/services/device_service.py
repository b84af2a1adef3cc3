# Overview: Device setpoint changes routed through the temperature-change guard.

from __future__ import annotations

import logging

from ..errors import NotFound, TemperatureLocked, ValidationError
from ..extensions import db
from ..models import Device
from ..models.facilities import MAX_TEMPERATURE, MIN_TEMPERATURE
from ..time_utils import utcnow
from . import activity_service, guard_service, hierarchy_service, lock_service
from .concurrency import lock_for_update, run_transaction
from .device_channel import notify_frontend, send_set_temperature

logger = logging.getLogger(__name__)


def validate_temperature(value) -> int:
    if isinstance(value, bool):
        raise ValidationError("Temperature must be a number")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError("Temperature must be a whole number")
    try:
        temperature = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Temperature must be a number") from None
    if not MIN_TEMPERATURE <= temperature <= MAX_TEMPERATURE:
        raise ValidationError(
            f"Temperature must be between {MIN_TEMPERATURE} and {MAX_TEMPERATURE}",
            min=MIN_TEMPERATURE,
            max=MAX_TEMPERATURE,
        )
    return temperature


def get_device_in_scope(actor_role: str, actor_id: int, device_id: int) -> Device:
    device = db.session.get(Device, device_id)
    if device is None:
        raise NotFound("Device not found")
    if actor_role == "admin":
        in_scope = hierarchy_service.device_in_admin_scope(device, actor_id)
    elif actor_role == "manager":
        in_scope = hierarchy_service.device_in_manager_scope(device, actor_id)
    else:
        in_scope = False
    if not in_scope:
        raise NotFound("Device not found")
    return device


def set_temperature(actor_role: str, actor_id: int, device_id: int, temperature) -> Device:
    """
    Change a device setpoint.

    Input is validated first, then scope, then the guard. A denied change
    writes the locked setpoint back and raises TemperatureLocked.
    """
    temperature = validate_temperature(temperature)
    device = get_device_in_scope(actor_role, actor_id, device_id)
    owning_admin_id = hierarchy_service.get_owning_admin_id(device)

    decision = guard_service.can_change_temperature(device_id, actor_role, actor_id)
    if not decision.allowed:
        restored = lock_service.restore_temperature(device_id)
        activity_service.record_detached(
            actor_role, actor_id, activity_service.TEMPERATURE_CHANGE_DENIED, "device", device_id,
            details={"requested": temperature, "reason": decision.reason, "restored": restored},
            admin_id=owning_admin_id,
        )
        raise TemperatureLocked(decision.reason, device_id=device_id)

    def _op():
        row = lock_for_update(db.session.query(Device).filter(Device.id == device_id)).one()
        previous = row.temperature
        row.temperature = temperature
        row.changed_by = actor_role
        row.last_temperature_change = utcnow()
        activity_service.record(
            actor_role, actor_id, activity_service.SET_TEMPERATURE, "device", device_id,
            details={"from": previous, "to": temperature},
            admin_id=owning_admin_id,
        )
        db.session.commit()
        return row

    device = run_transaction(_op, description="Temperature change")
    logger.info("%s %s set device %s to %s", actor_role, actor_id, device_id, temperature)

    send_set_temperature(device)
    notify_frontend({
        "type": "TEMPERATURE_UPDATE",
        "device_id": device.id,
        "temperature": device.temperature,
        "changed_by": actor_role,
    })
    return device
