# backend/evcore/config.py
from __future__ import annotations
import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # development | production | test
    # Production posture disables self-registration and mock-friendly defaults.
    APP_ENV = os.environ.get("APP_ENV", "development")

    # SQLite DB stored in backend/instance/evcore.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///evcore.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Access and refresh tokens are signed with different secrets.
    JWT_SECRET = os.environ.get("JWT_SECRET", "dev-jwt-secret-change-me")
    JWT_REFRESH_SECRET = os.environ.get("JWT_REFRESH_SECRET", "dev-jwt-refresh-secret-change-me")
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRE_MINUTES = _int_env("JWT_EXPIRE_MINUTES", 60)
    JWT_REFRESH_EXPIRE_DAYS = _int_env("JWT_REFRESH_EXPIRE_DAYS", 7)
    MAX_REFRESH_TOKENS = _int_env("MAX_REFRESH_TOKENS", 5)

    BCRYPT_ROUNDS = _int_env("BCRYPT_ROUNDS", 12)

    # Account lockout
    MAX_LOGIN_ATTEMPTS = _int_env("MAX_LOGIN_ATTEMPTS", 5)
    LOCK_DURATION_MINUTES = _int_env("LOCK_DURATION_MINUTES", 120)

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:8080",
        ).split(",")
        if origin.strip()
    ]


def is_production(config) -> bool:
    return str(config.get("APP_ENV", "development")).lower() == "production"
