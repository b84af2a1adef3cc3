# Overview: Authentication gate; login/logout and per-request session verification for admins and managers.

"""
Session Management

Two layers:
- The outer session: Flask's signed session cookie. It carries the opaque
  session handle and a denormalized {id, role, name, email}. It is
  permanent (24h) and refreshed on every authenticated request.
- The token store (token_service): handle -> signed token, one store per
  role, rolling 24h expiry.

Per request (authenticate):
    Unauthenticated -> SessionFound -> TokenResolved -> PrincipalVerified -> Authorized

SECURITY NOTES:
- Cached claims are for display only. The principal is re-fetched from the
  database on every request.
- A suspended admin (or a manager whose admin is suspended) has its token
  revoked and its outer session cleared; the answer is Forbidden.
- A locked manager is answered Forbidden but keeps its session, so an
  unlock by the admin takes effect without a new login.
- When the token store lost the handle (restart, expiry) the gate re-mints
  a token under the same handle, but only after the principal passed the
  same status checks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from flask import g, session

from ..errors import Forbidden, Unauthorized
from ..extensions import db, token_stores
from ..models import Admin, Manager
from ..time_utils import utcnow
from . import activity_service, auth_service
from .token_service import ROLE_ADMIN, ROLE_MANAGER, TOKEN_ROLES

logger = logging.getLogger(__name__)

SESSION_HANDLE_KEY = "session_handle"
SESSION_USER_KEY = "user"


@dataclass
class AuthContext:
    """Identity attached to g.auth for the rest of the request."""
    role: str
    principal: Admin | Manager
    session_handle: str
    claims: dict = field(default_factory=dict)

    @property
    def principal_id(self) -> int:
        return self.principal.id


def _fetch_principal(role: str, principal_id: int):
    model = Admin if role == ROLE_ADMIN else Manager
    return db.session.get(model, principal_id)


def _revoke_and_clear(role: str, handle: str) -> None:
    token_stores.for_role(role).revoke(handle)
    session.clear()


def _start_session(handle: str, principal, role: str) -> None:
    session.clear()
    session.permanent = True
    session[SESSION_HANDLE_KEY] = handle
    session[SESSION_USER_KEY] = {
        "id": principal.id,
        "role": role,
        "name": principal.name,
        "email": principal.email,
    }


def _check_status(role: str, principal, handle: str | None) -> None:
    """Raise Forbidden for principals that may not act right now."""
    if role == ROLE_ADMIN:
        if principal.is_suspended:
            if handle:
                _revoke_and_clear(role, handle)
            raise Forbidden("Account suspended", reason=principal.suspension_reason)
        return

    admin = principal.admin
    if admin is None or admin.is_suspended:
        if handle:
            _revoke_and_clear(role, handle)
        raise Forbidden("Your admin account is suspended")
    if principal.is_locked:
        raise Forbidden("Manager account is locked", lock_reason=principal.lock_reason)


def verify_principal(role: str, principal_id: int, handle: str):
    """Re-fetch the principal and apply status checks."""
    principal = _fetch_principal(role, principal_id)
    if principal is None:
        _revoke_and_clear(role, handle)
        raise Unauthorized("Account no longer exists")
    _check_status(role, principal, handle)
    return principal


# ==================== LOGIN / LOGOUT ====================

def _login(role: str, principal, ip_address: str | None, user_agent: str | None):
    _check_status(role, principal, None)

    handle = token_stores.for_role(role).create(principal, ip_address=ip_address, user_agent=user_agent)
    _start_session(handle, principal, role)

    principal.last_login_at = utcnow()
    admin_id = principal.id if role == ROLE_ADMIN else principal.admin_id
    activity_service.record(role, principal.id, activity_service.LOGIN, "session", principal.id, admin_id=admin_id)
    db.session.commit()
    logger.info("%s %s logged in", role, principal.id)
    return principal


def login_admin(email: str, password: str, ip_address: str | None = None,
                user_agent: str | None = None) -> Admin:
    admin = auth_service.check_admin_credentials(email, password)
    if admin is None:
        activity_service.record_detached(
            ROLE_ADMIN, None, activity_service.LOGIN_FAILED, "session", None,
            details={"email": (email or "").strip().lower()},
        )
        raise Unauthorized("Invalid email or password")
    return _login(ROLE_ADMIN, admin, ip_address, user_agent)


def login_manager(email: str, password: str, ip_address: str | None = None,
                  user_agent: str | None = None) -> Manager:
    """Restricted managers may log in; locked ones and those of a suspended admin may not."""
    manager = auth_service.check_manager_credentials(email, password)
    if manager is None:
        activity_service.record_detached(
            ROLE_MANAGER, None, activity_service.LOGIN_FAILED, "session", None,
            details={"email": (email or "").strip().lower()},
        )
        raise Unauthorized("Invalid email or password")
    return _login(ROLE_MANAGER, manager, ip_address, user_agent)


def logout(role: str | None = None) -> bool:
    handle = session.get(SESSION_HANDLE_KEY)
    user = session.get(SESSION_USER_KEY) or {}
    role = role or user.get("role")
    revoked = False
    if handle and role in TOKEN_ROLES:
        revoked = token_stores.for_role(role).revoke(handle)
        activity_service.record_detached(role, user.get("id"), activity_service.LOGOUT, "session", user.get("id"))
    session.clear()
    return revoked


# ==================== GATE ====================

def authenticate(role: str) -> AuthContext:
    """
    Run the gate for one request and attach the principal to flask.g.

    Raises Unauthorized or Forbidden.
    """
    handle = session.get(SESSION_HANDLE_KEY)
    user = session.get(SESSION_USER_KEY)
    if not handle or not isinstance(user, dict) or user.get("id") is None:
        raise Unauthorized("Authentication required")
    if user.get("role") != role:
        raise Unauthorized(f"{role.capitalize()} authentication required")

    principal_id = user["id"]
    store = token_stores.for_role(role)

    token = store.resolve(
        handle,
        principal_id=principal_id,
        load_principal=lambda pid: verify_principal(role, pid, handle),
    )
    if token is None:
        raise Unauthorized("Session expired, please log in again")

    claims = store.verify(token)
    if claims is None:
        _revoke_and_clear(role, handle)
        raise Unauthorized("Invalid session token")
    if claims.get("sub") != str(principal_id) or claims.get("role") != role:
        logger.warning("Session %s names %s %s but token does not", handle, role, principal_id)
        _revoke_and_clear(role, handle)
        raise Unauthorized("Invalid session token")

    principal = verify_principal(role, principal_id, handle)

    context = AuthContext(role=role, principal=principal, session_handle=handle, claims=claims)
    g.auth = context
    if role == ROLE_ADMIN:
        g.current_admin = principal
    else:
        g.current_manager = principal

    try:
        store.touch(handle)
    except Exception:
        logger.warning("Could not extend %s session %s", role, handle, exc_info=True)
    session.modified = True
    return context


def current_role() -> str | None:
    user = session.get(SESSION_USER_KEY)
    return user.get("role") if isinstance(user, dict) else None


# ==================== FORCED INVALIDATION ====================

def invalidate_admin_sessions(admin_id: int) -> int:
    return token_stores.admin.revoke_all_for(admin_id)


def invalidate_manager_sessions(manager_id: int) -> int:
    return token_stores.manager.revoke_all_for(manager_id)


def invalidate_manager_sessions_for_admin(admin_id: int) -> dict:
    manager_ids = [row[0] for row in db.session.query(Manager.id).filter(Manager.admin_id == admin_id).all()]
    invalidated = token_stores.manager.revoke_all_for(manager_ids) if manager_ids else 0
    logger.info("Invalidated %d session(s) across %d manager(s) of admin %s", invalidated, len(manager_ids), admin_id)
    return {"managers_affected": len(manager_ids), "sessions_invalidated": invalidated}
