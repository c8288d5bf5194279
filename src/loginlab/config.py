# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import quote_plus

_TRUE = {"1", "true", "yes", "y"}

BASE_DIR = Path(__file__).resolve().parent


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUE


def _first_env(*names: str) -> Optional[str]:
    for n in names:
        v = os.getenv(n)
        if v:
            return v
    return None


def _database_url() -> str:
    """DATABASE_URL wins; otherwise MYSQL_* (as deployed originally); otherwise a local SQLite file."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    host = os.getenv("MYSQL_HOST")
    if host:
        user = quote_plus(os.getenv("MYSQL_USER", ""))
        password = quote_plus(os.getenv("MYSQL_PASSWORD", ""))
        database = os.getenv("MYSQL_DATABASE", "")
        return f"mysql+pymysql://{user}:{password}@{host}/{database}"
    return "sqlite:///" + str(Path(os.getenv("LOGINLAB_DATA_DIR", "data")).resolve() / "loginlab.db")


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False
    variant: str = "safe"
    database_url: str = "sqlite:///loginlab.db"
    db_pool_size: int = 10
    session_secret: str = ""
    session_store: str = "sql"
    session_store_secret: str = ""
    session_max_age: int = 60 * 60  # 1 hour
    session_prune_every: int = 100
    cookie_secure: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        secret = _first_env("SESSION_SECRET", "NODE_SESSION_SECRET")
        if not secret:
            raise RuntimeError("Falta SESSION_SECRET (o NODE_SESSION_SECRET) en entorno")
        store_secret = _first_env("SESSION_STORE_SECRET", "MONGODB_SESSION_SECRET") or secret
        return cls(
            host=os.getenv("LOGINLAB_HOST", "0.0.0.0"),
            port=int(_first_env("LOGINLAB_PORT", "PORT") or "3000"),
            reload=_flag("LOGINLAB_RELOAD"),
            variant=os.getenv("LOGINLAB_VARIANT", "safe").strip().lower(),
            database_url=_database_url(),
            db_pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
            session_secret=secret,
            session_store=os.getenv("SESSION_STORE", "sql").strip().lower(),
            session_store_secret=store_secret,
            session_max_age=int(os.getenv("SESSION_MAX_AGE", str(60 * 60))),
            session_prune_every=int(os.getenv("SESSION_PRUNE_EVERY", "100")),
            cookie_secure=_flag("LOGINLAB_COOKIE_SECURE"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def cookie_settings(self) -> dict:
        return {"httponly": True, "samesite": "lax", "secure": self.cookie_secure}
