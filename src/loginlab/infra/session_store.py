# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Keyed session document stores.

Documents are plain dicts ({"authenticated": ..., "username": ...}); the
store owns expiry: an expired document is never returned.
"""

from __future__ import annotations

import base64
import hashlib
import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from cryptography.fernet import Fernet, InvalidToken
from loguru import logger
from sqlalchemy import delete, insert, select
from sqlalchemy.engine import Engine

from loginlab.infra.db import session_table


def utcnow() -> datetime:
    """Naive UTC timestamp (what SQL DATETIME columns hand back)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class StoredSession:
    data: Dict[str, Any]
    expires_at: datetime


class SessionStore(ABC):
    @abstractmethod
    def get(self, sid: str) -> Optional[StoredSession]:
        ...

    @abstractmethod
    def set(self, sid: str, data: Dict[str, Any], expires_at: datetime) -> None:
        ...

    @abstractmethod
    def destroy(self, sid: str) -> None:
        ...

    @abstractmethod
    def prune(self) -> int:
        """Drop expired documents; return how many were removed."""


class MemorySessionStore(SessionStore):
    """Process-local store. Fine for tests and single-process dev runs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: Dict[str, Tuple[Dict[str, Any], datetime]] = {}
        self.writes = 0

    def get(self, sid: str) -> Optional[StoredSession]:
        with self._lock:
            item = self._items.get(sid)
        if not item:
            return None
        data, expires_at = item
        if expires_at <= utcnow():
            return None
        return StoredSession(data=dict(data), expires_at=expires_at)

    def set(self, sid: str, data: Dict[str, Any], expires_at: datetime) -> None:
        with self._lock:
            self._items[sid] = (dict(data), expires_at)
            self.writes += 1

    def destroy(self, sid: str) -> None:
        with self._lock:
            self._items.pop(sid, None)

    def prune(self) -> int:
        now = utcnow()
        with self._lock:
            dead = [k for k, (_, exp) in self._items.items() if exp <= now]
            for k in dead:
                del self._items[k]
        return len(dead)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


def _fernet_for(secret: str) -> Fernet:
    if not secret:
        raise RuntimeError("Falta SESSION_STORE_SECRET para cifrar sesiones")
    key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())
    return Fernet(key)


class SqlSessionStore(SessionStore):
    """Sessions in the ``sessions`` table, documents encrypted at rest."""

    def __init__(self, engine: Engine, secret: str) -> None:
        self._engine = engine
        self._fernet = _fernet_for(secret)

    def _encode(self, data: Dict[str, Any]) -> str:
        raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
        return self._fernet.encrypt(raw).decode("ascii")

    def _decode(self, blob: str) -> Optional[Dict[str, Any]]:
        try:
            raw = self._fernet.decrypt(blob.encode("ascii"))
        except InvalidToken:
            return None
        data = json.loads(raw)
        return data if isinstance(data, dict) else None

    def get(self, sid: str) -> Optional[StoredSession]:
        stmt = select(session_table.c.data, session_table.c.expires).where(
            session_table.c.sid == sid, session_table.c.expires > utcnow()
        )
        with self._engine.connect() as conn:
            row = conn.execute(stmt).first()
        if row is None:
            return None
        data = self._decode(row.data)
        if data is None:
            logger.warning(f"session store: undecryptable document for sid={sid[:8]}..., ignoring")
            return None
        return StoredSession(data=data, expires_at=row.expires)

    def set(self, sid: str, data: Dict[str, Any], expires_at: datetime) -> None:
        blob = self._encode(data)
        with self._engine.begin() as conn:
            conn.execute(delete(session_table).where(session_table.c.sid == sid))
            conn.execute(insert(session_table).values(sid=sid, data=blob, expires=expires_at))

    def destroy(self, sid: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(delete(session_table).where(session_table.c.sid == sid))

    def prune(self) -> int:
        with self._engine.begin() as conn:
            res = conn.execute(delete(session_table).where(session_table.c.expires <= utcnow()))
        n = int(res.rowcount or 0)
        if n:
            logger.debug(f"session store: pruned {n} expired sessions")
        return n
