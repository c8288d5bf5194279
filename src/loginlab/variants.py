# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""The two application variants, as interchangeable capability sets.

Routes and session handling are shared; a variant only decides which
credential gateway is used, how sessions are persisted and whether the
members page escapes the username.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict

from sqlalchemy.engine import Engine

from loginlab.auth.gateway import CredentialGateway, SafeCredentialGateway, UnsafeCredentialGateway
from loginlab.auth.session import DEFAULT_MAX_AGE_SECONDS, SessionPolicy


@dataclass(frozen=True)
class Variant:
    name: str
    gateway_factory: Callable[[Engine], CredentialGateway]
    session_policy: SessionPolicy
    escape_member_name: bool

    def build_gateway(self, engine: Engine) -> CredentialGateway:
        return self.gateway_factory(engine)


UNSAFE = Variant(
    name="unsafe",
    gateway_factory=UnsafeCredentialGateway,
    # Rewrites the store on every request; expiry assigned at login time.
    session_policy=SessionPolicy(max_age=DEFAULT_MAX_AGE_SECONDS, resave=True, absolute_expiry=False),
    escape_member_name=False,
)

SAFE = Variant(
    name="safe",
    gateway_factory=SafeCredentialGateway,
    session_policy=SessionPolicy(max_age=DEFAULT_MAX_AGE_SECONDS, resave=False, absolute_expiry=True),
    escape_member_name=True,
)

VARIANTS: Dict[str, Variant] = {v.name: v for v in (UNSAFE, SAFE)}


def get_variant(name: str) -> Variant:
    key = (name or "").strip().lower()
    try:
        return VARIANTS[key]
    except KeyError:
        raise ValueError(f"Unknown variant '{name}' (expected one of: {', '.join(sorted(VARIANTS))})") from None
