from __future__ import annotations

import os
import secrets
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/todos.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - JWT_SECRET: HS256 signing secret (random per process when unset)
    - JWT_ALGORITHM: only 'HS256' is supported
    - ACCESS_TOKEN_TTL_MINUTES: access token lifetime (default: 60)
    - NONCE_TTL_SECONDS: lifetime of an unconsumed sign-in nonce (default: 300)
    - SEED_USERNAME / SEED_PASSWORD: user created at start-up when both are set
    - LOG_LEVEL: root log level (default: INFO)
    """

    persistence_backend: str
    sqlite_db_path: str
    cors_allow_origins: List[str]
    jwt_secret: str
    jwt_algorithm: str
    access_token_ttl_minutes: int
    nonce_ttl_seconds: int
    seed_username: Optional[str]
    seed_password: Optional[str]
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        backend = "memory"

    algorithm = _get_env("JWT_ALGORITHM", "HS256").strip().upper()
    if algorithm != "HS256":
        raise ValueError("JWT_ALGORITHM must be HS256")

    seed_user = os.getenv("SEED_USERNAME") or None
    seed_pass = os.getenv("SEED_PASSWORD") or None

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/todos.db").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        jwt_secret=os.getenv("JWT_SECRET") or secrets.token_urlsafe(32),
        jwt_algorithm=algorithm,
        access_token_ttl_minutes=_parse_int(_get_env("ACCESS_TOKEN_TTL_MINUTES", "60"), 60),
        nonce_ttl_seconds=_parse_int(_get_env("NONCE_TTL_SECONDS", "300"), 300),
        seed_username=seed_user if seed_pass else None,
        seed_password=seed_pass if seed_user else None,
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
