# Overview: Per-role session token stores; signed tokens keyed by opaque session handles.

"""
Session Token Store

The outer session cookie only carries an opaque session handle plus a
denormalized {id, role} pair. The signed token itself never leaves the
server: it lives in a per-role token store, keyed by that handle.

STORE FEATURES:
- One RoleTokenStore per role (admin, manager); handle spaces are never shared
- Rolling expiry: every successful resolve pushes expires_at to now + TTL,
  and re-signs the token once its own exp is less than half a TTL away
- Regeneration: an expired or missing record is re-minted in place (same
  handle) when the caller names the principal and the loader still accepts it.
  This is what lets a process restart wipe the in-memory store without
  logging everybody out.
- Upsert semantics for regeneration so concurrent requests for the same
  handle converge on a single record
- Periodic sweep of expired, unrecovered records (TokenSweeper)

The backing TokenStore is injectable. InMemoryTokenStore is the
single-process implementation; a shared cache can implement the same
four primitives for multi-instance deployments.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable

from jose import JWTError, jwt

from ..time_utils import utcnow

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
TOKEN_ROLES = (ROLE_ADMIN, ROLE_MANAGER)

DEFAULT_TOKEN_TTL = timedelta(hours=24)
DEFAULT_SWEEP_INTERVAL = 300


@dataclass(frozen=True)
class TokenRecord:
    """One entry of a token store. Immutable: updates go through put()."""
    session_handle: str
    token: str
    principal_id: int
    role: str
    created_at: datetime
    expires_at: datetime
    last_used: datetime
    ip_address: str | None = None
    user_agent: str | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) > self.expires_at


def sign_token(principal, role: str, *, secret: str, algorithm: str = "HS256",
               ttl: timedelta = DEFAULT_TOKEN_TTL) -> str:
    """Sign an authentication token naming the principal and its role."""
    expire = datetime.now(timezone.utc) + ttl
    claims = {
        "sub": str(principal.id),
        "role": role,
        "email": getattr(principal, "email", None),
        "exp": expire,
    }
    return jwt.encode(claims, secret, algorithm=algorithm)


def verify_token(token: str, *, secret: str, algorithm: str = "HS256") -> dict | None:
    """Return the claims of a valid token, else None."""
    try:
        return jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        return None


def renew_token(token: str, *, secret: str, algorithm: str = "HS256",
                ttl: timedelta = DEFAULT_TOKEN_TTL) -> str:
    """
    Re-sign a token with a fresh exp once less than half its TTL remains.

    Expired tokens are renewed too; the store record, not exp, decides
    whether the session is still alive. A token whose signature does not
    verify is returned unchanged so the caller rejects it.
    """
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm], options={"verify_exp": False})
    except JWTError:
        return token

    now = datetime.now(timezone.utc)
    exp = claims.get("exp")
    if isinstance(exp, (int, float)) and exp - now.timestamp() >= ttl.total_seconds() / 2:
        return token

    claims["exp"] = now + ttl
    return jwt.encode(claims, secret, algorithm=algorithm)


class TokenStore:
    """Storage primitives used by RoleTokenStore."""

    def get(self, handle: str) -> TokenRecord | None:
        raise NotImplementedError

    def put(self, record: TokenRecord) -> None:
        """Insert or replace the record stored under record.session_handle."""
        raise NotImplementedError

    def delete(self, handle: str) -> bool:
        raise NotImplementedError

    def records(self) -> list[TokenRecord]:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class InMemoryTokenStore(TokenStore):
    """Thread-safe dict keyed by session handle."""

    def __init__(self):
        self._records: dict[str, TokenRecord] = {}
        self._lock = threading.Lock()

    def get(self, handle: str) -> TokenRecord | None:
        with self._lock:
            return self._records.get(handle)

    def put(self, record: TokenRecord) -> None:
        with self._lock:
            self._records[record.session_handle] = record

    def delete(self, handle: str) -> bool:
        with self._lock:
            return self._records.pop(handle, None) is not None

    def records(self) -> list[TokenRecord]:
        with self._lock:
            return list(self._records.values())

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class RoleTokenStore:
    """
    Token store for one role.

    load_principal callbacks passed to resolve() may raise; the exception
    propagates to the caller untouched. The authentication gate relies on
    this to reject suspended principals with Forbidden instead of
    silently re-minting their token.
    """

    def __init__(self, role: str, backend: TokenStore | None = None, *,
                 secret: str = "dev-jwt-secret-change-me", algorithm: str = "HS256",
                 ttl: timedelta = DEFAULT_TOKEN_TTL):
        self.role = role
        self.backend = backend or InMemoryTokenStore()
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def configure(self, *, secret: str, algorithm: str, ttl: timedelta) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def _sign(self, principal) -> str:
        return sign_token(principal, self.role, secret=self.secret,
                          algorithm=self.algorithm, ttl=self.ttl)

    def verify(self, token: str) -> dict | None:
        return verify_token(token, secret=self.secret, algorithm=self.algorithm)

    def create(self, principal, ip_address: str | None = None,
               user_agent: str | None = None) -> str:
        """Mint a token for the principal and return the new session handle."""
        now = utcnow()
        handle = str(uuid.uuid4())
        self.backend.put(TokenRecord(
            session_handle=handle,
            token=self._sign(principal),
            principal_id=principal.id,
            role=self.role,
            created_at=now,
            expires_at=now + self.ttl,
            last_used=now,
            ip_address=ip_address,
            user_agent=user_agent,
        ))
        logger.info("Created %s session for principal %s", self.role, principal.id)
        return handle

    def get(self, handle: str) -> TokenRecord | None:
        return self.backend.get(handle)

    def resolve(self, handle: str, principal_id: int | None = None,
                load_principal: Callable[[int], Any] | None = None) -> str | None:
        """
        Return the token stored under handle, or None.

        A live record gets its expiry rolled forward and, when its exp is
        getting close, a re-signed token. A missing or expired
        record is regenerated when principal_id and load_principal are given,
        the record (if any) names that same principal, and the loader returns
        a principal.
        """
        now = utcnow()
        record = self.backend.get(handle)

        if record is not None and not record.is_expired(now):
            token = renew_token(record.token, secret=self.secret, algorithm=self.algorithm, ttl=self.ttl)
            self.backend.put(replace(record, token=token, last_used=now, expires_at=now + self.ttl))
            return token

        if principal_id is None or load_principal is None:
            return None

        if record is not None and record.principal_id != principal_id:
            logger.warning(
                "%s session %s names principal %s but store holds %s; not regenerating",
                self.role, handle, principal_id, record.principal_id,
            )
            return None

        principal = load_principal(principal_id)
        if principal is None:
            if record is not None:
                self.backend.delete(handle)
            return None

        return self.regenerate(handle, principal, previous=record)

    def regenerate(self, handle: str, principal, previous: TokenRecord | None = None) -> str:
        """Replace (never append) the record under handle with a fresh token."""
        now = utcnow()
        token = self._sign(principal)
        self.backend.put(TokenRecord(
            session_handle=handle,
            token=token,
            principal_id=principal.id,
            role=self.role,
            created_at=previous.created_at if previous else now,
            expires_at=now + self.ttl,
            last_used=now,
            ip_address=previous.ip_address if previous else None,
            user_agent=previous.user_agent if previous else None,
        ))
        logger.info("Regenerated %s token for principal %s", self.role, principal.id)
        return token

    def touch(self, handle: str) -> bool:
        record = self.backend.get(handle)
        if record is None:
            return False
        now = utcnow()
        self.backend.put(replace(record, last_used=now, expires_at=now + self.ttl))
        return True

    def revoke(self, handle: str) -> bool:
        return self.backend.delete(handle)

    def revoke_all_for(self, principal_ids: int | Iterable[int]) -> int:
        if isinstance(principal_ids, int):
            principal_ids = {principal_ids}
        targets = set(principal_ids)
        count = 0
        for record in self.backend.records():
            if record.principal_id in targets and self.backend.delete(record.session_handle):
                count += 1
        return count

    def sweep_expired(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        count = 0
        for record in self.backend.records():
            if record.is_expired(now) and self.backend.delete(record.session_handle):
                count += 1
        return count

    def clear(self) -> None:
        self.backend.clear()

    def __len__(self) -> int:
        return len(self.backend.records())


class TokenStoreRegistry:
    """
    Flask extension holding one RoleTokenStore per role.

    The stores are process-wide; init_app only (re)configures signing
    parameters from the app config.
    """

    def __init__(self):
        self.stores = {role: RoleTokenStore(role) for role in TOKEN_ROLES}

    def init_app(self, app) -> None:
        ttl = timedelta(hours=app.config.get("TOKEN_TTL_HOURS", 24))
        for store in self.stores.values():
            store.configure(
                secret=app.config["JWT_SECRET"],
                algorithm=app.config.get("JWT_ALGORITHM", "HS256"),
                ttl=ttl,
            )
        app.extensions["ackit_token_stores"] = self

    def for_role(self, role: str) -> RoleTokenStore:
        try:
            return self.stores[role]
        except KeyError:
            raise ValueError(f"No token store for role {role!r}") from None

    @property
    def admin(self) -> RoleTokenStore:
        return self.stores[ROLE_ADMIN]

    @property
    def manager(self) -> RoleTokenStore:
        return self.stores[ROLE_MANAGER]

    def sweep_expired(self) -> int:
        return sum(store.sweep_expired() for store in self.stores.values())

    def clear(self) -> None:
        """Drop every record (what a process restart does to the in-memory store)."""
        for store in self.stores.values():
            store.clear()


class TokenSweeper:
    """Background thread deleting expired token records at a fixed interval."""

    def __init__(self, registry: TokenStoreRegistry, interval_seconds: int = DEFAULT_SWEEP_INTERVAL):
        self.registry = registry
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="ackit-token-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                removed = self.registry.sweep_expired()
            except Exception:
                logger.exception("Token sweep failed")
                continue
            if removed:
                logger.info("Token sweep removed %d expired record(s)", removed)
