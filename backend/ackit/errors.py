# Overview: Error taxonomy shared by services, the authentication gate, and routes.

"""
Every error raised on purpose by the service layer derives from AckitError.

Each class carries the HTTP status the API answers with and a stable
machine-readable code. Routes never build these responses by hand: the
handler registered in create_app() serialises them.

Taxonomy:
- Unauthorized (401)        no/invalid/expired session, regeneration failed
- Forbidden (403)           valid session but suspended, locked, or wrong role
  - RestrictedAccess (403)  restricted manager attempting a mutating action
  - TemperatureLocked (403) setpoint change denied by an active lock
- NotFound (404)            entity missing or outside the caller's scope
- ValidationError (400)     malformed input, nothing was mutated
- ConflictError (409)       business rule conflict (already locked, ...)
- TransientStoreError (503) persistence failure, fully rolled back, retryable
"""

from __future__ import annotations

from typing import Any


class AckitError(Exception):
    status_code = 500
    code = "ERROR"

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        payload = {"success": False, "error": self.message, "code": self.code}
        payload.update(self.extra)
        return payload


class Unauthorized(AckitError):
    status_code = 401
    code = "UNAUTHORIZED"


class Forbidden(AckitError):
    status_code = 403
    code = "FORBIDDEN"


class RestrictedAccess(Forbidden):
    code = "RESTRICTED_ACCESS"


class TemperatureLocked(Forbidden):
    code = "TEMPERATURE_LOCKED"


class NotFound(AckitError):
    status_code = 404
    code = "NOT_FOUND"


class ValidationError(AckitError, ValueError):
    """400-level input problem."""
    status_code = 400
    code = "VALIDATION_ERROR"


class ConflictError(AckitError, ValueError):
    """409-level business rule conflict (e.g., manager already locked)."""
    status_code = 409
    code = "CONFLICT"


class TransientStoreError(AckitError):
    """Persistence failure; the transaction was rolled back and may be retried."""
    status_code = 503
    code = "TRANSIENT_STORE_ERROR"
