# Overview: Flask API routes for admin and manager login, logout, and session introspection.

"""
Authentication API routes

Login sets the outer session cookie (handle + denormalized user); the
signed token stays server-side in the role's token store.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_admin, require_admin_or_manager, require_manager
from ..errors import ValidationError
from ..services import session_service
from ..services.token_service import ROLE_ADMIN, ROLE_MANAGER


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _credentials() -> tuple[str, str]:
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")
    if not email or not password:
        raise ValidationError("email and password required")
    return email, password


@auth_bp.post("/admin/login")
def admin_login():
    email, password = _credentials()
    admin = session_service.login_admin(
        email,
        password,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return jsonify({"success": True, "role": ROLE_ADMIN, "admin": admin.to_dict()}), 200


@auth_bp.post("/manager/login")
def manager_login():
    email, password = _credentials()
    manager = session_service.login_manager(
        email,
        password,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return jsonify({"success": True, "role": ROLE_MANAGER, "manager": manager.to_dict()}), 200


@auth_bp.post("/admin/logout")
def admin_logout():
    session_service.logout(ROLE_ADMIN)
    return jsonify({"success": True, "message": "Logged out"}), 200


@auth_bp.post("/manager/logout")
def manager_logout():
    session_service.logout(ROLE_MANAGER)
    return jsonify({"success": True, "message": "Logged out"}), 200


@auth_bp.get("/admin/me")
@require_admin
def admin_me():
    return jsonify({"success": True, "admin": g.current_admin.to_dict()}), 200


@auth_bp.get("/manager/me")
@require_manager
def manager_me():
    manager = g.current_manager
    return jsonify({
        "success": True,
        "manager": manager.to_dict(),
        "restricted": manager.is_restricted,
    }), 200


@auth_bp.get("/session")
@require_admin_or_manager
def current_session():
    auth = g.auth
    return jsonify({
        "success": True,
        "role": auth.role,
        "user": auth.principal.to_dict(),
    }), 200
