# backend/reportflow/config.py
from __future__ import annotations
import os


SCOPE_MATCH_NAME = "name"
SCOPE_MATCH_ID = "id"
SCOPE_MATCH_MODES = {SCOPE_MATCH_NAME, SCOPE_MATCH_ID}

# The one-in-flight partial unique index needs a backend with partial indexes
SUPPORTED_DATABASE_BACKENDS = {"sqlite", "postgresql"}


def _split_origins(raw: str) -> set[str]:
    return {origin.strip() for origin in raw.split(",") if origin.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/reportflow.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///reportflow.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # How an admin's assigned area is matched against a report's location:
    # "name" compares display names (legacy behaviour), "id" compares foreign keys.
    SCOPE_MATCH_MODE = os.environ.get("SCOPE_MATCH_MODE", "name")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # bcrypt cost factor for new password hashes
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    CORS_ALLOWED_ORIGINS = _split_origins(
        os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        )
    )
