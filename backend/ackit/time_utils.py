# Overview: UTC timestamp helpers for columns, lock snapshots, and API payloads.

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC now; every DateTime column and token record stores this form."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Render a stored timestamp as 'YYYY-MM-DDTHH:MM:SSZ' (naive means UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read a timestamp back out of a lock snapshot.

    Snapshots hold what to_utc_z() wrote, but older rows may carry an
    offset or no suffix at all. Empty values mean "never locked".
    """
    if not value:
        return None
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
