# backend/vbms/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/vbms.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///vbms.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Where "today" starts for call numbering. Call IDs are unique across
    # businesses, so one zone applies to all of them.
    VBMS_DEFAULT_TIMEZONE = os.environ.get("VBMS_DEFAULT_TIMEZONE", "UTC")

    # How many times a create is retried after a generated ID collides.
    VBMS_ID_ALLOCATION_ATTEMPTS = int(os.environ.get("VBMS_ID_ALLOCATION_ATTEMPTS", "3"))

    VBMS_EXPIRING_SOON_DAYS = int(os.environ.get("VBMS_EXPIRING_SOON_DAYS", "7"))

    # Order numbers embed the year but count across all years unless enabled.
    VBMS_ORDER_ID_YEARLY_RESET = _env_bool("VBMS_ORDER_ID_YEARLY_RESET", False)

    CORS_ALLOWED_ORIGINS = [
        o.strip()
        for o in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5050",
        ).split(",")
        if o.strip()
    ]
