"""Configuration helpers for backend runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class BackendSettings:
    server_salt: str
    database_url: str | None
    host: str
    port: int
    log_level: str


def load_settings() -> BackendSettings:
    port_raw = os.getenv("BINGOPARTY_PORT", "8000")
    return BackendSettings(
        server_salt=os.getenv("BINGOPARTY_SERVER_SALT", "dev-salt"),
        database_url=os.getenv("BINGOPARTY_DATABASE_URL"),
        host=os.getenv("BINGOPARTY_HOST", "127.0.0.1"),
        port=int(port_raw),
        log_level=os.getenv("BINGOPARTY_LOG_LEVEL", "INFO").upper(),
    )
