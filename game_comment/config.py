from __future__ import annotations

import re
import sys
from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_DEFAULT_JWT_SECRET = "change-me-in-production-use-long-random-string"
TENANT_PREFIX_RE = re.compile(r"^[a-z][a-z0-9_]{0,39}$")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="GAME_COMMENT_")

    # Database
    database_url: str = "sqlite:///./game_comment.db"
    log_sql: bool = False

    # Server
    environment: str = "development"
    log_level: str = "info"
    log_format: str = "json"
    host: str = "0.0.0.0"
    port: int = 3000
    allow_cors_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "https://game-comment.vercel.app",
    ]

    # Tenancy: known_tenants must be declared before project_prefix so the
    # prefix validator can see it.
    known_tenants: List[str] = ["game_comment"]
    project_prefix: str = "game_comment"

    # Auth
    jwt_secret: str = _DEFAULT_JWT_SECRET
    jwt_expire_minutes: int = 1440  # 24 hours
    admin_password: str = "admin123"

    # Rate limiting (requests per window, per client address and page)
    rate_limit_enabled: bool = True
    rate_limit_window_seconds: int = 60
    comment_max_requests: int = 1
    rating_max_requests: int = 1
    read_max_requests: int = 60
    login_max_requests: int = 5

    # Per-value cap for admin rating-count replacement
    max_rating_count: int = 100_000

    @field_validator("known_tenants")
    @classmethod
    def validate_known_tenants(cls, v: List[str]) -> List[str]:
        bad = [t for t in v if not TENANT_PREFIX_RE.match(t)]
        if bad:
            raise ValueError(f"Invalid tenant prefix(es): {', '.join(bad)}")
        return v

    @field_validator("project_prefix")
    @classmethod
    def validate_project_prefix(cls, v: str, info) -> str:
        """Only prefixes from the known tenant list may name tables."""
        known = info.data.get("known_tenants") or []
        if not TENANT_PREFIX_RE.match(v):
            raise ValueError(f"Project prefix {v!r} is not a valid table prefix.")
        if v not in known:
            raise ValueError(
                f"Unknown project prefix {v!r}. Add it to GAME_COMMENT_KNOWN_TENANTS "
                f"(currently: {', '.join(known) or 'empty'})."
            )
        return v

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v: str, info) -> str:
        """Refuse to start in production with the default JWT secret."""
        env = info.data.get("environment", "development")
        if env != "development" and v == _DEFAULT_JWT_SECRET:
            print(
                "\nFATAL: GAME_COMMENT_JWT_SECRET is set to the default value.\n"
                "   Set GAME_COMMENT_JWT_SECRET to a strong random string before "
                "running in production.\n",
                file=sys.stderr,
            )
            raise ValueError(
                "JWT secret must be changed from default in non-development environments. "
                "Set GAME_COMMENT_JWT_SECRET env var."
            )
        return v

    @field_validator("rate_limit_window_seconds", "comment_max_requests",
                     "rating_max_requests", "read_max_requests", "login_max_requests",
                     "max_rating_count")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Limit values must be at least 1.")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()


# Module-level singleton for convenience
settings = get_settings()
