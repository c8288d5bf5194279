# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from fastapi import Request
from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer
from loguru import logger
from starlette.responses import Response

from loginlab.infra.session_store import SessionStore, utcnow

COOKIE_NAME = os.getenv("LOGINLAB_COOKIE_NAME", "loginlab.sid")
DEFAULT_MAX_AGE_SECONDS = 60 * 60  # 1 hour


@dataclass(frozen=True)
class SessionPolicy:
    """How long a session lives and when it is written back to the store.

    absolute_expiry: the expiry is fixed the first time the session is
        persisted and never moves afterwards. When False, the expiry is
        (re)assigned each time ``SessionManager.authenticate`` runs.
    resave: write the session back on every request that carries one,
        whether or not it changed.
    """

    max_age: int = DEFAULT_MAX_AGE_SECONDS
    resave: bool = False
    absolute_expiry: bool = True


class Session:
    """Per-request view of one session document."""

    def __init__(
        self,
        sid: str,
        data: Optional[Dict[str, Any]] = None,
        expires_at: Optional[datetime] = None,
        *,
        is_new: bool,
    ) -> None:
        self.sid = sid
        self._data: Dict[str, Any] = dict(data or {})
        self.expires_at = expires_at
        self.is_new = is_new
        self.modified = False
        self.expiry_changed = False
        self.destroyed = False

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.modified = True

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def clear(self) -> None:
        self._data.clear()
        self.modified = True

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    def set_expiry(self, expires_at: datetime) -> None:
        self.expires_at = expires_at
        self.expiry_changed = True

    @property
    def authenticated(self) -> bool:
        return bool(self._data.get("authenticated"))

    @property
    def username(self) -> str:
        return str(self._data.get("username") or "")


class SessionManager:
    """Loads, authenticates, destroys and persists sessions.

    The cookie only carries the signed session id; the document lives in
    the ``SessionStore``.
    """

    def __init__(
        self,
        store: SessionStore,
        secret: str,
        policy: SessionPolicy,
        *,
        cookie_settings: Optional[dict] = None,
        prune_every: int = 0,
    ) -> None:
        if not secret:
            raise RuntimeError("Falta SESSION_SECRET en entorno")
        self.store = store
        self.policy = policy
        # Sweep expired documents once every N commits (0 = only when prune() is called).
        self.prune_every = prune_every
        self._commits = 0
        self._lock = threading.Lock()
        self._serializer = URLSafeTimedSerializer(secret_key=secret, salt="loginlab.session.v1")
        self._cookie_settings = cookie_settings or {"httponly": True, "samesite": "lax", "secure": False}

    # -- cookie signing --

    def sign_sid(self, sid: str) -> str:
        return self._serializer.dumps(sid)

    def unsign_sid(self, token: str) -> Optional[str]:
        if not token:
            return None
        try:
            sid = self._serializer.loads(token, max_age=self.policy.max_age)
        except (BadSignature, BadTimeSignature):
            return None
        sid = str(sid or "").strip()
        return sid or None

    # -- lifecycle --

    def load(self, request: Request) -> Session:
        sid = self.unsign_sid(request.cookies.get(COOKIE_NAME, ""))
        if sid:
            stored = self.store.get(sid)
            if stored is not None:
                return Session(sid, stored.data, stored.expires_at, is_new=False)
        return Session(secrets.token_urlsafe(24), is_new=True)

    def authenticate(self, session: Session, username: str) -> None:
        session["authenticated"] = True
        session["username"] = username
        if not self.policy.absolute_expiry:
            session.set_expiry(utcnow() + timedelta(seconds=self.policy.max_age))

    def destroy(self, session: Session) -> None:
        """Drop the session. Store failures are logged and otherwise ignored."""
        session.destroyed = True
        session.clear()
        try:
            self.store.destroy(session.sid)
        except Exception as e:
            logger.opt(exception=e).error(f"Logout error: {e}")

    def prune(self) -> int:
        n = self.store.prune()
        if n:
            logger.info(f"sessions: pruned {n} expired")
        return n

    def _maybe_prune(self) -> None:
        if self.prune_every <= 0:
            return
        with self._lock:
            self._commits += 1
            due = self._commits % self.prune_every == 0
        if due:
            self.prune()

    def commit(self, session: Session, response: Response) -> None:
        self._maybe_prune()
        if session.destroyed:
            response.delete_cookie(COOKIE_NAME)
            return
        if session.is_new and not session.modified:
            # Uninitialised sessions are never stored.
            return
        if not session.modified and not self.policy.resave:
            return

        if session.expires_at is None:
            session.set_expiry(utcnow() + timedelta(seconds=self.policy.max_age))
        self.store.set(session.sid, session.to_dict(), session.expires_at)

        if session.is_new or session.expiry_changed:
            remaining = int((session.expires_at - utcnow()).total_seconds())
            response.set_cookie(
                COOKIE_NAME,
                self.sign_sid(session.sid),
                max_age=max(remaining, 0),
                **self._cookie_settings,
            )
