# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import dataclasses
import random
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from loguru import logger
from markupsafe import Markup
from sqlalchemy.engine import Engine
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from loginlab.auth.gateway import CredentialGateway, CredentialStoreError
from loginlab.auth.session import Session, SessionManager
from loginlab.auth.validation import CredentialValidationError, validate_credentials
from loginlab.config import BASE_DIR, Settings
from loginlab.infra.db import create_db_engine, init_schema
from loginlab.infra.session_store import MemorySessionStore, SessionStore, SqlSessionStore
from loginlab.permissions import current_session, require_authenticated
from loginlab.variants import Variant, get_variant

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

MEMBER_IMAGES = ["cat1.svg", "cat2.svg", "cat3.svg"]

SIGNUP_ERRORS = {
    "username": "Please provide a username.",
    "password": "Please provide a password.",
}
LOGIN_ERRORS = {
    "invalid": "Username and password not found.",
    **SIGNUP_ERRORS,
}


def _render(request: Request, template_name: str, ctx: dict, status_code: int = 200):
    """TemplateResponse wrapper injecting the current session."""
    base_ctx = {
        "request": request,
        "session": getattr(request.state, "session", None),
    }
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _build_store(settings: Settings, engine: Engine) -> SessionStore:
    if settings.session_store == "memory":
        return MemorySessionStore()
    if settings.session_store == "sql":
        return SqlSessionStore(engine, settings.session_store_secret)
    raise ValueError(f"Unknown SESSION_STORE '{settings.session_store}' (expected sql or memory)")


def create_app(
    settings: Optional[Settings] = None,
    *,
    variant: Optional[Variant] = None,
    engine: Optional[Engine] = None,
    session_store: Optional[SessionStore] = None,
    gateway: Optional[CredentialGateway] = None,
) -> FastAPI:
    """Build the application. Every collaborator can be passed in; the rest comes from ``settings``."""
    settings = settings or Settings.from_env()
    variant = variant or get_variant(settings.variant)
    if engine is None:
        engine = create_db_engine(settings.database_url, pool_size=settings.db_pool_size)
    init_schema(engine)
    gateway = gateway or variant.build_gateway(engine)
    store = session_store if session_store is not None else _build_store(settings, engine)
    sessions = SessionManager(
        store,
        settings.session_secret,
        dataclasses.replace(variant.session_policy, max_age=settings.session_max_age),
        cookie_settings=settings.cookie_settings(),
        prune_every=settings.session_prune_every,
    )

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        await run_in_threadpool(sessions.prune)
        yield

    app = FastAPI(title=f"loginlab ({variant.name})", lifespan=_lifespan)
    app.state.settings = settings
    app.state.variant = variant
    app.state.engine = engine
    app.state.gateway = gateway
    app.state.sessions = sessions

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

    @app.middleware("http")
    async def _session_middleware(request: Request, call_next):
        request.state.session = await run_in_threadpool(sessions.load, request)
        response = await call_next(request)
        await run_in_threadpool(sessions.commit, request.state.session, response)
        return response

    # Any unmatched request, wrong method included, gets the 404 page.
    @app.exception_handler(404)
    @app.exception_handler(405)
    async def _not_found(request: Request, exc: StarletteHTTPException):
        return _render(request, "404.html", {}, status_code=404)

    # ------------------ Routes ------------------

    @app.get("/", response_class=HTMLResponse)
    def home(request: Request, session: Session = Depends(current_session)):
        if session.authenticated:
            ctx = {
                "heading": f"Hello, {session.username}!",
                "links": [("Go to Members Area", "/members"), ("Logout", "/logout")],
            }
        else:
            ctx = {"heading": "", "links": [("Sign Up", "/signup"), ("Log In", "/login")]}
        return _render(request, "index.html", ctx)

    @app.get("/signup", response_class=HTMLResponse)
    def signup_get(request: Request, error: str = ""):
        return _render(request, "signup.html", {"error": SIGNUP_ERRORS.get(error, "")})

    @app.post("/signupSubmit")
    def signup_post(
        request: Request,
        username: str = Form(""),
        password: str = Form(""),
        session: Session = Depends(current_session),
    ):
        try:
            validate_credentials(username, password)
        except CredentialValidationError as e:
            return _redirect(f"/signup?error={e.field}")

        try:
            gateway.signup(username, password)
        except CredentialStoreError as e:
            logger.opt(exception=e).error("Signup error")
            return _redirect("/signup")

        sessions.authenticate(session, username)
        return _redirect("/members")

    @app.get("/login", response_class=HTMLResponse)
    def login_get(request: Request, error: str = ""):
        return _render(request, "login.html", {"error": LOGIN_ERRORS.get(error, "")})

    @app.post("/loginSubmit")
    def login_post(
        request: Request,
        username: str = Form(""),
        password: str = Form(""),
        session: Session = Depends(current_session),
    ):
        try:
            validate_credentials(username, password)
        except CredentialValidationError as e:
            return _redirect(f"/login?error={e.field}")

        try:
            user = gateway.login(username, password)
        except CredentialStoreError as e:
            logger.opt(exception=e).error("Login error")
            return _redirect("/login?error=invalid")

        # Unknown user and wrong password look the same from outside.
        if user is None:
            return _redirect("/login?error=invalid")

        sessions.authenticate(session, user.username)
        return _redirect("/members")

    @app.get("/members", response_class=HTMLResponse)
    def members(request: Request, session: Session = Depends(require_authenticated)):
        name = session.username
        return _render(
            request,
            "members.html",
            {
                "username": name if variant.escape_member_name else Markup(name),
                "image": random.choice(MEMBER_IMAGES),
            },
        )

    @app.get("/logout")
    def logout(request: Request, session: Session = Depends(current_session)):
        sessions.destroy(session)
        return _redirect("/")

    return app
