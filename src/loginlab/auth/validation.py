# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional


class CredentialValidationError(ValueError):
    """Raised when a form field is missing or blank. ``field`` doubles as the redirect reason code."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Missing {field}")
        self.field = field


def _blank(value: Optional[str]) -> bool:
    return value is None or value.strip() == ""


def validate_credentials(username: Optional[str], password: Optional[str]) -> None:
    # Username first: a form with both fields empty reports "username".
    if _blank(username):
        raise CredentialValidationError("username")
    if _blank(password):
        raise CredentialValidationError("password")
