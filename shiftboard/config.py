# shiftboard/config.py
# Environment settings (.env is loaded once here; modules read values from this module).

from __future__ import annotations

import os
import re
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    try:
        return int(v) if v else default
    except ValueError:
        raise RuntimeError(f"{name} must be an integer")


APP_ENV = (os.getenv("APP_ENV") or "production").strip().lower()
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL")

# --- session JWT ---
JWT_SECRET = os.getenv("JWT_SECRET") or ""
if len(JWT_SECRET) < 32:
    raise RuntimeError("JWT_SECRET is not set or shorter than 32 characters")
JWT_EXPIRES_HOURS = _env_int("JWT_EXPIRES_HOURS", 48)
JWT_ISSUER = "snow-school-scheduler"
JWT_AUDIENCE = "snow-school-users"

# --- LINE Login ---
LINE_CHANNEL_ID = (os.getenv("LINE_CHANNEL_ID") or "").strip()
LINE_CHANNEL_SECRET = (os.getenv("LINE_CHANNEL_SECRET") or "").strip()
APP_BASE_URL = (os.getenv("APP_BASE_URL") or "http://localhost:3000").rstrip("/")
LINE_CALLBACK_URL = f"{APP_BASE_URL}/api/auth/line/callback"
LINE_HTTP_TIMEOUT_SECONDS = _env_int("LINE_HTTP_TIMEOUT_SECONDS", 10)

# --- cookies ---
AUTH_SESSION_MAX_AGE_SECONDS = _env_int("AUTH_SESSION_MAX_AGE_SECONDS", 10 * 60)
COOKIE_SECURE = _env_bool("COOKIE_SECURE", APP_ENV not in {"development", "test"})

# --- CORS ---
CORS_ORIGINS: List[str] = [
    o.strip()
    for o in (os.getenv("CORS_ORIGINS") or "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]

# --- invitation cleanup job ---
INVITE_CLEANUP_ENABLED = os.getenv("INVITE_CLEANUP_ENABLED") == "1"
INVITE_CLEANUP_INTERVAL_SECONDS = _env_int("INVITE_CLEANUP_INTERVAL_SECONDS", 3600)


def validate_line_auth_config() -> List[str]:
    """
    Problems with the LINE Login settings; an empty list means the login flow can start.
    """
    errors: List[str] = []
    if not LINE_CHANNEL_ID:
        errors.append("LINE_CHANNEL_ID is not configured")
    elif not LINE_CHANNEL_ID.isdigit():
        errors.append("LINE_CHANNEL_ID must be numeric")

    if not LINE_CHANNEL_SECRET:
        errors.append("LINE_CHANNEL_SECRET is not configured")
    elif not re.fullmatch(r"[a-f0-9]{32}", LINE_CHANNEL_SECRET):
        errors.append("LINE_CHANNEL_SECRET must be 32 character hex string")

    if not LINE_CALLBACK_URL:
        errors.append("Callback URL is not configured")
    return errors
