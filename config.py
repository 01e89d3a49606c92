"""Settings loaded from environment variables (+ optional .env).

Every variable carries the ``TASKS_`` prefix, e.g. ``TASKS_DATABASE_PATH``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

ENV_PREFIX = "TASKS"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


@dataclass(frozen=True)
class Settings:
    # ---- server ----
    database_path: Path
    api_prefix: str
    environment: str
    log_level: str
    cors_origins: List[str]
    host: str
    port: int

    # ---- client ----
    api_url: str
    client_timeout: Optional[float]

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @staticmethod
    def from_env() -> "Settings":
        prefix = _env(_k("API_PREFIX"), "/api").rstrip("/")
        if prefix and not prefix.startswith("/"):
            prefix = "/" + prefix

        return Settings(
            database_path=Path(_env(_k("DATABASE_PATH"), "todo.db")).expanduser(),
            api_prefix=prefix,
            environment=_env(_k("ENVIRONMENT"), "production"),
            log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
            cors_origins=_env_list(_k("CORS_ORIGINS"), ["*"]),
            host=_env(_k("HOST"), "127.0.0.1"),
            port=_env_int(_k("PORT"), 3001),
            api_url=_env(_k("API_URL"), "http://localhost:3001/api").rstrip("/"),
            client_timeout=_env_float(_k("CLIENT_TIMEOUT"), None),
        )


def get_settings() -> Settings:
    return Settings.from_env()
