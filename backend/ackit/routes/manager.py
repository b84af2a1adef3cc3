# Overview: Flask API routes for managers: remote system lock, scoped remote locks, devices.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_manager, require_unrestricted_manager
from ..services import device_service, guard_service, lock_service


manager_bp = Blueprint("manager", __name__, url_prefix="/api/manager")


def _json() -> dict:
    return request.get_json(silent=True) or {}


@manager_bp.post("/system/lock")
@require_unrestricted_manager
def lock_system():
    manager = g.current_manager
    result = lock_service.manager_lock_system(manager.id, reason=_json().get("reason"), locked_by=manager.name)
    return jsonify(result.to_dict()), 201


@manager_bp.post("/system/unlock")
@require_unrestricted_manager
def unlock_system():
    manager = g.current_manager
    result = lock_service.unlock_system(
        "manager", manager.id, unlocked_by=manager.name, admin_id=manager.admin_id,
    )
    return jsonify(result.to_dict()), 200


@manager_bp.get("/system/status")
@require_manager
def system_status():
    return jsonify({"success": True, **lock_service.get_system_status(g.current_manager.admin_id)}), 200


@manager_bp.get("/locked-temperatures")
@require_manager
def locked_temperatures():
    snapshot = lock_service.get_locked_temperatures(g.current_manager.id)
    return jsonify({"success": True, "locked_temperatures": snapshot}), 200


@manager_bp.post("/organizations/<int:org_id>/remote-lock")
@require_unrestricted_manager
def remote_lock_organization(org_id: int):
    result = lock_service.manager_remote_lock_organization(
        g.current_manager.id, org_id, reason=_json().get("reason"),
    )
    return jsonify(result), 200


@manager_bp.post("/organizations/<int:org_id>/remote-unlock")
@require_unrestricted_manager
def remote_unlock_organization(org_id: int):
    result = lock_service.manager_remote_unlock_organization(g.current_manager.id, org_id)
    return jsonify(result), 200


@manager_bp.post("/venues/<int:venue_id>/remote-lock")
@require_unrestricted_manager
def remote_lock_venue(venue_id: int):
    result = lock_service.manager_remote_lock_venue(
        g.current_manager.id, venue_id, reason=_json().get("reason"),
    )
    return jsonify(result), 200


@manager_bp.post("/venues/<int:venue_id>/remote-unlock")
@require_unrestricted_manager
def remote_unlock_venue(venue_id: int):
    result = lock_service.manager_remote_unlock_venue(g.current_manager.id, venue_id)
    return jsonify(result), 200


@manager_bp.put("/devices/<int:device_id>/temperature")
@require_unrestricted_manager
def set_device_temperature(device_id: int):
    device = device_service.set_temperature(
        "manager", g.current_manager.id, device_id, _json().get("temperature"),
    )
    return jsonify({"success": True, "device": device.to_dict()}), 200


@manager_bp.get("/devices/<int:device_id>/temperature-permission")
@require_manager
def temperature_permission(device_id: int):
    device_service.get_device_in_scope("manager", g.current_manager.id, device_id)
    decision = guard_service.can_change_temperature(device_id, "manager", g.current_manager.id)
    return jsonify({"success": True, **decision.to_dict()}), 200
