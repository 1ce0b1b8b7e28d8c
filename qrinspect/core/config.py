# qrinspect/core/config.py
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv, find_dotenv

# ---------------------------
# Env loading (root .env first, then package .env as fallback)
# ---------------------------
load_dotenv(find_dotenv(usecwd=True))
load_dotenv(Path(__file__).resolve().parent.parent / ".env", override=False)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _flag_env(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


# --- Database ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./qrinspect.db")

# --- Auth / JWT ---
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = _int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 720)

# --- Inspections ---
# Days before due date that count as "due soon". Every dashboard uses this default.
INSPECTION_BUFFER_DAYS = _int_env("INSPECTION_BUFFER_DAYS", 3)
SCHEDULER_LOOKAHEAD_DAYS = _int_env("SCHEDULER_LOOKAHEAD_DAYS", 7)
SCHEDULER_LOCK_TTL_SECONDS = _int_env("SCHEDULER_LOCK_TTL_SECONDS", 900)

# --- Background scheduler ---
ENABLE_SCHEDULER = _flag_env("ENABLE_SCHEDULER", "1")
APP_TIMEZONE = os.getenv("APP_TIMEZONE")
APP_SCHEDULER_HOUR = _int_env("APP_SCHEDULER_HOUR", 6)
APP_SCHEDULER_MINUTE = _int_env("APP_SCHEDULER_MINUTE", 0)
APP_SCHEDULER_INTERVAL_MINUTES = _int_env("APP_SCHEDULER_INTERVAL_MINUTES", 0)

# Shared secret for the external cron trigger (empty → only SUPER_ADMIN may trigger)
CRON_SECRET = os.getenv("CRON_SECRET", "")

# Dev-only create_all at startup
ENABLE_CREATE_ALL = _flag_env("ENABLE_CREATE_ALL", "1")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --- HTTP server (qrinspect-server) ---
HOST = os.getenv("HOST", "0.0.0.0")
PORT = _int_env("PORT", 8000)
