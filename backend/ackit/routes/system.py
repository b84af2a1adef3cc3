# backend/ackit/routes/system.py
"""
System health endpoint.

Checks the database and reports token store occupancy.
"""

import time

from flask import Blueprint, current_app

from ..extensions import db, token_stores
from ..models import Admin, Device, LockRecord
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        admin_count = db.session.query(Admin).count()
        device_count = db.session.query(Device).count()
        active_locks = db.session.query(LockRecord).filter(LockRecord.is_active.is_(True)).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "admins": admin_count,
                "devices": device_count,
                "active_locks": active_locks,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_token_store_health() -> dict:
    return {
        "status": "healthy",
        "details": {role: len(store) for role, store in token_stores.stores.items()},
    }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: all checks healthy
    - 503: database unreachable
    """
    database_health = check_database_health()
    token_health = check_token_store_health()
    http_status = 503 if database_health["status"] == "unhealthy" else 200

    return {
        "status": "healthy" if http_status == 200 else "unhealthy",
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "database": database_health,
            "token_stores": token_health,
        },
    }, http_status
