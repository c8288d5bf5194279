# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from fastapi import HTTPException, Request

from loginlab.auth.session import Session


def current_session(request: Request) -> Session:
    return request.state.session


def require_authenticated(request: Request) -> Session:
    """Route guard: anonymous visitors are sent home, no detail given."""
    sess = current_session(request)
    if sess.authenticated:
        return sess
    raise HTTPException(status_code=303, headers={"Location": "/"})
