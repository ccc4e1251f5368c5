# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Runtime configuration.

Values come from the environment (optionally a ``.env`` file). The database
connection is chosen per environment name from ``database.yml`` unless
``DATABASE_URL`` is set.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

# Anchor to the project root so the app does not depend on the working directory.
BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_DB_CONFIG_PATH = BASE_DIR / "database.yml"
DEFAULT_DATABASE_URL = "sqlite:///./wikimaps.db"
DEFAULT_SESSION_MAX_AGE = 28800  # 8 hours

_TRUTHY = {"1", "true", "yes", "y", "on"}


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    echo: bool = False


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    environment: str
    database: DatabaseConfig
    googlemaps_api_key: str
    session_max_age: int
    cookie_secure: bool
    log_level: str


def read_database_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return raw if isinstance(raw, dict) else {}


def resolve_database(environment: str, *, path: Path) -> DatabaseConfig:
    """Pick the connection parameters for ``environment``.

    ``DATABASE_URL`` wins over the file; an unknown environment or a missing
    file falls back to a local SQLite database.
    """
    block = read_database_file(path).get(environment) or {}
    if not isinstance(block, dict):
        block = {}

    url = os.getenv("DATABASE_URL") or str(block.get("url") or "") or DEFAULT_DATABASE_URL
    if "DATABASE_ECHO" in os.environ:
        echo = _env_flag("DATABASE_ECHO")
    else:
        echo = bool(block.get("echo", False))
    return DatabaseConfig(url=url, echo=echo)


def load_settings() -> Settings:
    load_dotenv()
    environment = os.getenv("ENV", "development").strip() or "development"
    db_path = Path(os.getenv("WIKIMAPS_DB_CONFIG", str(DEFAULT_DB_CONFIG_PATH))).resolve()
    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        environment=environment,
        database=resolve_database(environment, path=db_path),
        googlemaps_api_key=os.getenv("GOOGLEMAPS_APIKEY", ""),
        session_max_age=int(os.getenv("WIKIMAPS_SESSION_MAX_AGE", str(DEFAULT_SESSION_MAX_AGE))),
        cookie_secure=_env_flag("WIKIMAPS_COOKIE_SECURE"),
        log_level=os.getenv("WIKIMAPS_LOG_LEVEL", "INFO"),
    )
