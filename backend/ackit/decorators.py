# Overview: Authentication and capability decorators for API routes.

from functools import wraps

from flask import g

from .errors import RestrictedAccess, Unauthorized
from .services import session_service
from .services.token_service import ROLE_ADMIN, ROLE_MANAGER


def require_admin(f):
    """
    Require an authenticated, active admin.

    Sets g.auth and g.current_admin. Unauthorized/Forbidden propagate to
    the app error handler.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        session_service.authenticate(ROLE_ADMIN)
        return f(*args, **kwargs)

    return decorated_function


def require_manager(f):
    """Require an authenticated manager (restricted managers pass; locked ones never get here)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        session_service.authenticate(ROLE_MANAGER)
        return f(*args, **kwargs)

    return decorated_function


def require_unrestricted_manager(f):
    """Require a manager allowed to mutate state."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        session_service.authenticate(ROLE_MANAGER)
        if g.current_manager.is_restricted:
            raise RestrictedAccess("Restricted managers cannot perform this action")
        return f(*args, **kwargs)

    return decorated_function


def require_admin_or_manager(f):
    """Authenticate with whichever role the outer session names."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        role = session_service.current_role()
        if role not in (ROLE_ADMIN, ROLE_MANAGER):
            raise Unauthorized("Authentication required")
        session_service.authenticate(role)
        return f(*args, **kwargs)

    return decorated_function
