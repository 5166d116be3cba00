"""Configuration helpers for backend runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class BackendSettings:
    server_salt: str
    database_url: str | None
    host: str
    port: int
    log_level: str
    dev_oracle: bool


def load_settings() -> BackendSettings:
    port_raw = os.getenv("CATCHGAME_PORT", "8000")
    return BackendSettings(
        server_salt=os.getenv("CATCHGAME_SERVER_SALT", "dev-salt"),
        database_url=os.getenv("CATCHGAME_DATABASE_URL"),
        host=os.getenv("CATCHGAME_HOST", "127.0.0.1"),
        port=int(port_raw),
        log_level=os.getenv("CATCHGAME_LOG_LEVEL", "INFO").upper(),
        dev_oracle=_env_flag("CATCHGAME_DEV_ORACLE"),
    )
