# backend/ackit/config.py
from __future__ import annotations
import os
from datetime import timedelta


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key. Signs the outer session cookie.
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Signs the per-session authentication tokens held in the token stores
    JWT_SECRET = os.environ.get("JWT_SECRET", "dev-jwt-secret-change-me")
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///ackit.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Token store: rolling 24h window, swept every 5 minutes
    TOKEN_TTL_HOURS = int(os.environ.get("TOKEN_TTL_HOURS", "24"))
    TOKEN_SWEEP_INTERVAL_SECONDS = int(os.environ.get("TOKEN_SWEEP_INTERVAL_SECONDS", "300"))
    TOKEN_SWEEP_ENABLED = _env_flag("TOKEN_SWEEP_ENABLED", "true")

    # Outer session cookie. Cross-site frontends need SameSite=None + Secure,
    # same-site/dev deployments use Lax over plain http.
    CROSS_SITE_COOKIES = _env_flag("CROSS_SITE_COOKIES")
    SESSION_COOKIE_NAME = "ackit.sid"
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "None" if CROSS_SITE_COOKIES else "Lax"
    SESSION_COOKIE_SECURE = CROSS_SITE_COOKIES
    PERMANENT_SESSION_LIFETIME = timedelta(hours=24)
    SESSION_REFRESH_EACH_REQUEST = True

    # Reject a new lock when an identical one is already active
    LOCK_STRICT_MODE = _env_flag("LOCK_STRICT_MODE")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
        ).split(",")
        if origin.strip()
    }
