"""
Centralized configuration for tenantvault.

All configuration is loaded from environment variables with sensible defaults.

Usage:
    from tenantvault.config import get_config
    cfg = get_config()
    print(cfg.db.name)              # "tenantvault"
    print(cfg.auth.jwt_expire_hours)  # 24
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    """PostgreSQL connection parameters."""

    host: str = ""  # empty = Unix socket (peer auth); set to 127.0.0.1 for TCP
    port: int = 5432
    name: str = "tenantvault"
    user: str = "tenantvault"
    password: str = ""
    statement_timeout_ms: int = 5000
    pool_min: int = 2
    pool_max: int = 20

    @property
    def dict(self) -> dict[str, str | int]:
        """Return a psycopg2.connect() kwargs dict."""
        d: dict[str, str | int] = {
            "dbname": self.name,
            "port": self.port,
            "connect_timeout": 5,
        }
        if self.host:
            d["host"] = self.host
        if self.user:
            d["user"] = self.user
        if self.password:
            d["password"] = self.password
        if self.statement_timeout_ms > 0:
            d["options"] = f"-c statement_timeout={self.statement_timeout_ms}"
        return d


@dataclass(frozen=True)
class AuthConfig:
    """Token signing and password hashing parameters."""

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24
    password_rounds: int = 29000  # pbkdf2_sha256 iterations
    min_password_length: int = 8


@dataclass(frozen=True)
class ApiConfig:
    """HTTP server parameters."""

    host: str = "127.0.0.1"
    port: int = 8080
    cors_origins: tuple[str, ...] = ("*",)


@dataclass(frozen=True)
class Config:
    """Top-level tenantvault configuration."""

    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    log_level: str = "INFO"


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _load_from_env() -> Config:
    """Load configuration from environment variables."""
    db = DatabaseConfig(
        host=os.environ.get("TENANTVAULT_DB_HOST", ""),
        port=int(os.environ.get("TENANTVAULT_DB_PORT", "5432")),
        name=os.environ.get("TENANTVAULT_DB_NAME", "tenantvault"),
        user=os.environ.get("TENANTVAULT_DB_USER", os.environ.get("USER", "tenantvault")),
        password=os.environ.get("TENANTVAULT_DB_PASSWORD", ""),
        statement_timeout_ms=int(os.environ.get("TENANTVAULT_DB_STATEMENT_TIMEOUT_MS", "5000")),
        pool_min=int(os.environ.get("TENANTVAULT_DB_POOL_MIN", "2")),
        pool_max=int(os.environ.get("TENANTVAULT_DB_POOL_MAX", "20")),
    )

    auth = AuthConfig(
        jwt_secret=os.environ.get("TENANTVAULT_JWT_SECRET", "change-me"),
        jwt_algorithm=os.environ.get("TENANTVAULT_JWT_ALGORITHM", "HS256"),
        jwt_expire_hours=int(os.environ.get("TENANTVAULT_JWT_EXPIRE_HOURS", "24")),
        password_rounds=int(os.environ.get("TENANTVAULT_PASSWORD_ROUNDS", "29000")),
        min_password_length=int(os.environ.get("TENANTVAULT_MIN_PASSWORD_LENGTH", "8")),
    )

    origins = os.environ.get("TENANTVAULT_API_CORS_ORIGINS", "*")
    api = ApiConfig(
        host=os.environ.get("TENANTVAULT_API_HOST", "127.0.0.1"),
        port=int(os.environ.get("TENANTVAULT_API_PORT", "8080")),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
    )

    return Config(
        db=db,
        auth=auth,
        api=api,
        log_level=os.environ.get("TENANTVAULT_LOG_LEVEL", "INFO").upper(),
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
