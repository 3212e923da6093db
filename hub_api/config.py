"""
Startup Hub API gateway configuration: all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os


class Settings:
    """Application settings from environment variables."""

    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # Token store backend: "postgres" or "memory"
    TOKEN_STORE: str = os.environ.get("TOKEN_STORE", "postgres").lower()

    # Session auth (web dashboard)
    JWT_SECRET: str = os.environ.get("JWT_SECRET", "")
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_HOURS: int = int(os.environ.get("JWT_EXPIRY_HOURS", "24"))

    # API tokens
    TOKEN_PREFIX: str = "sh_live_"
    TOKEN_SECRET_LENGTH: int = 32
    TOKEN_LOOKUP_LENGTH: int = 8
    BCRYPT_ROUNDS: int = int(os.environ.get("BCRYPT_ROUNDS", "12"))
    MAX_ACTIVE_TOKENS: int = int(os.environ.get("MAX_ACTIVE_TOKENS", "10"))

    # Rate Limits
    API_RATE_LIMIT: int = int(os.environ.get("API_RATE_LIMIT", "100"))  # per token
    API_RATE_WINDOW_SECONDS: int = int(os.environ.get("API_RATE_WINDOW_SECONDS", "60"))
    RATE_LIMIT_ENTRY_TTL_MINUTES: int = int(os.environ.get("RATE_LIMIT_ENTRY_TTL_MINUTES", "10"))
    LOGIN_MAX_ATTEMPTS: int = int(os.environ.get("LOGIN_MAX_ATTEMPTS", "5"))
    LOGIN_LOCKOUT_MINUTES: int = int(os.environ.get("LOGIN_LOCKOUT_MINUTES", "15"))

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")


# Singleton instance
settings = Settings()

if settings.TOKEN_STORE not in ("postgres", "memory"):
    raise RuntimeError(f"TOKEN_STORE must be 'postgres' or 'memory', got {settings.TOKEN_STORE!r}")
if settings.TOKEN_STORE == "postgres" and not settings.DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is required")
if not settings.JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is required")
