# Overview: Flask API routes for admin fleet control: system locks, remote locks, managers, devices.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_admin
from ..models.locks import LOCK_FROM_ADMIN
from ..services import (
    activity_service,
    device_service,
    guard_service,
    lock_service,
    manager_service,
    session_service,
)


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _json() -> dict:
    return request.get_json(silent=True) or {}


# ==================== SYSTEM LOCK ====================

@admin_bp.post("/system/lock")
@require_admin
def lock_system():
    data = _json()
    admin = g.current_admin
    result = lock_service.lock_system(
        admin.id,
        data.get("lock_type") or LOCK_FROM_ADMIN,
        reason=data.get("reason"),
        locked_by=admin.name,
    )
    return jsonify(result.to_dict()), 201


@admin_bp.post("/system/unlock")
@require_admin
def unlock_system():
    admin = g.current_admin
    result = lock_service.unlock_system("admin", admin.id, unlocked_by=admin.name)
    return jsonify(result.to_dict()), 200


@admin_bp.get("/system/status")
@require_admin
def system_status():
    return jsonify({"success": True, **lock_service.get_system_status(g.current_admin.id)}), 200


# ==================== ORGANIZATION / VENUE REMOTE LOCK ====================

@admin_bp.post("/organizations/<int:org_id>/remote-lock")
@require_admin
def remote_lock_organization(org_id: int):
    result = lock_service.remote_lock_organization(g.current_admin.id, org_id, reason=_json().get("reason"))
    return jsonify(result), 200


@admin_bp.post("/organizations/<int:org_id>/remote-unlock")
@require_admin
def remote_unlock_organization(org_id: int):
    result = lock_service.remote_unlock_organization(g.current_admin.id, org_id)
    return jsonify(result), 200


@admin_bp.post("/venues/<int:venue_id>/remote-lock")
@require_admin
def remote_lock_venue(venue_id: int):
    result = lock_service.remote_lock_venue(g.current_admin.id, venue_id, reason=_json().get("reason"))
    return jsonify(result), 200


@admin_bp.post("/venues/<int:venue_id>/remote-unlock")
@require_admin
def remote_unlock_venue(venue_id: int):
    result = lock_service.remote_unlock_venue(g.current_admin.id, venue_id)
    return jsonify(result), 200


# ==================== MANAGER ACCOUNTS ====================

@admin_bp.get("/managers")
@require_admin
def list_managers():
    managers = manager_service.list_managers(g.current_admin.id)
    return jsonify({"success": True, "managers": [m.to_dict() for m in managers]}), 200


@admin_bp.post("/managers/<int:manager_id>/lock")
@require_admin
def lock_manager(manager_id: int):
    manager = manager_service.lock_manager(g.current_admin.id, manager_id, reason=_json().get("reason"))
    return jsonify({"success": True, "manager": manager.to_dict()}), 200


@admin_bp.post("/managers/<int:manager_id>/unlock")
@require_admin
def unlock_manager(manager_id: int):
    manager = manager_service.unlock_manager(g.current_admin.id, manager_id)
    return jsonify({"success": True, "manager": manager.to_dict()}), 200


@admin_bp.post("/managers/<int:manager_id>/restricted-unlock")
@require_admin
def restricted_unlock_manager(manager_id: int):
    manager = manager_service.restricted_unlock_manager(g.current_admin.id, manager_id)
    return jsonify({"success": True, "manager": manager.to_dict()}), 200


@admin_bp.post("/managers/sessions/invalidate")
@require_admin
def invalidate_manager_sessions():
    result = session_service.invalidate_manager_sessions_for_admin(g.current_admin.id)
    return jsonify({"success": True, **result}), 200


# ==================== DEVICES ====================

@admin_bp.put("/devices/<int:device_id>/temperature")
@require_admin
def set_device_temperature(device_id: int):
    device = device_service.set_temperature("admin", g.current_admin.id, device_id, _json().get("temperature"))
    return jsonify({"success": True, "device": device.to_dict()}), 200


@admin_bp.get("/devices/<int:device_id>/temperature-permission")
@require_admin
def temperature_permission(device_id: int):
    device_service.get_device_in_scope("admin", g.current_admin.id, device_id)
    decision = guard_service.can_change_temperature(device_id, "admin", g.current_admin.id)
    return jsonify({"success": True, **decision.to_dict()}), 200


# ==================== ACTIVITY ====================

@admin_bp.get("/activity")
@require_admin
def activity():
    limit = request.args.get("limit", default=50, type=int)
    entries = activity_service.list_for_admin(g.current_admin.id, limit=limit)
    return jsonify({"success": True, "activity": [e.to_dict() for e in entries]}), 200
