from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from .errors import ConfigError

BACKENDS = {"mongo", "memory"}


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - MONGO_URI: MongoDB connection string (required for the 'mongo' backend)
    - MONGO_DATABASE: database name. Default 'demo_todo'
    - MONGO_COLLECTION: collection name. Default 'todo'
    - STORE_BACKEND: 'mongo' (default) or 'memory'
    - STORE_TIMEOUT_SECONDS: per-operation store timeout. Default 5
    - SHUTDOWN_TIMEOUT_SECONDS: graceful shutdown bound. Default 5
    - HOST / PORT: listen address. Default localhost:9010
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: logging level name. Default 'INFO'
    """

    mongo_uri: Optional[str]
    mongo_database: str = "demo_todo"
    mongo_collection: str = "todo"
    store_backend: str = "mongo"
    store_timeout_seconds: float = 5.0
    shutdown_timeout_seconds: float = 5.0
    host: str = "localhost"
    port: int = 9010
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _parse_number(name: str, default: str, kind: type):
    raw = _get_env(name, default)
    try:
        value = kind(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def _parse_origins(origins_value: str) -> List[str]:
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings(load_env_file: bool = True) -> Settings:
    """
    Return application settings loaded from the environment.

    A '.env' file in the working directory is read first when present; real
    environment variables take precedence over it.

    Raises:
        ConfigError: if MONGO_URI is missing for the mongo backend, or a value
            cannot be parsed.
    """
    if load_env_file:
        load_dotenv()

    backend = _get_env("STORE_BACKEND", "mongo").lower()
    if backend not in BACKENDS:
        raise ConfigError(f"STORE_BACKEND must be one of {sorted(BACKENDS)}, got {backend!r}")

    mongo_uri = os.getenv("MONGO_URI", "").strip() or None
    if backend == "mongo" and mongo_uri is None:
        raise ConfigError("MONGO_URI environment variable is not set")

    return Settings(
        mongo_uri=mongo_uri,
        mongo_database=_get_env("MONGO_DATABASE", "demo_todo"),
        mongo_collection=_get_env("MONGO_COLLECTION", "todo"),
        store_backend=backend,
        store_timeout_seconds=_parse_number("STORE_TIMEOUT_SECONDS", "5", float),
        shutdown_timeout_seconds=_parse_number("SHUTDOWN_TIMEOUT_SECONDS", "5", float),
        host=_get_env("HOST", "localhost"),
        port=_parse_number("PORT", "9010", int),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").upper(),
    )
