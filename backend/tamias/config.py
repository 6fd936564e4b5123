# backend/tamias/config.py
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

    # SQLite DB stored in backend/instance/tamias.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///tamias.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Transaction listing caps
    DEFAULT_LIST_LIMIT = int(os.environ.get("DEFAULT_LIST_LIMIT", "100"))
    MAX_LIST_LIMIT = int(os.environ.get("MAX_LIST_LIMIT", "1000"))

    # When true, checkout rejects totals that differ from subtotal + tax - discount.
    # When false the mismatch is only logged.
    STRICT_TOTALS = _env_bool("STRICT_TOTALS", False)

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
        ).split(",")
        if origin.strip()
    ]
