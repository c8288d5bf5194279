# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Credential store gateways.

Both gateways talk to the same ``user(username, password)`` table and expose
the same two operations. They differ only in how user input reaches the SQL
statement and in what counts as a successful login:

- ``UnsafeCredentialGateway`` pastes the raw input into the statement text,
  and logs in whoever the SELECT returns first, password unchecked.
  Kept that way on purpose: it is the vulnerable half of the demo.
- ``SafeCredentialGateway`` binds ``:username``/``:password`` as parameters
  and only authenticates on an argon2 hash match.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from loguru import logger
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from loginlab.auth.passwords import hash_password, verify_password


class CredentialStoreError(RuntimeError):
    """The database rejected or failed the operation (connection, syntax, duplicate key...)."""


@dataclass(frozen=True)
class UserRecord:
    username: str
    password_hash: str


class CredentialGateway(ABC):
    name: str = ""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @abstractmethod
    def signup(self, username: str, password: str) -> None:
        """Hash ``password`` and insert a new user. Raises CredentialStoreError."""

    @abstractmethod
    def login(self, username: str, password: str) -> Optional[UserRecord]:
        """Return the authenticated user, or None. Raises CredentialStoreError."""


class UnsafeCredentialGateway(CredentialGateway):
    name = "unsafe"

    def _run(self, query: str):
        logger.info("Executing query: " + query)
        # no_parameters: the statement text reaches the driver untouched.
        with self._engine.begin() as conn:
            result = conn.execution_options(no_parameters=True).exec_driver_sql(query)
            return result.mappings().all() if result.returns_rows else []

    def signup(self, username: str, password: str) -> None:
        hashed = hash_password(password)
        query = f"INSERT INTO user (username, password) VALUES ('{username}', '{hashed}')"
        try:
            self._run(query)
        except SQLAlchemyError as e:
            raise CredentialStoreError(str(e)) from e

    def login(self, username: str, password: str) -> Optional[UserRecord]:
        query = f"SELECT * FROM user WHERE username = '{username}'"
        try:
            rows = self._run(query)
        except SQLAlchemyError as e:
            raise CredentialStoreError(str(e)) from e
        # Any row at all logs the caller in as the first one.
        if not rows:
            return None
        first = rows[0]
        return UserRecord(username=str(first["username"]), password_hash=str(first["password"] or ""))


_INSERT_USER = text("INSERT INTO user (username, password) VALUES (:username, :password)")
_SELECT_USER = text("SELECT username, password FROM user WHERE username = :username")


class SafeCredentialGateway(CredentialGateway):
    name = "safe"

    def signup(self, username: str, password: str) -> None:
        hashed = hash_password(password)
        try:
            with self._engine.begin() as conn:
                conn.execute(_INSERT_USER, {"username": username, "password": hashed})
        except SQLAlchemyError as e:
            raise CredentialStoreError(str(e)) from e

    def login(self, username: str, password: str) -> Optional[UserRecord]:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(_SELECT_USER, {"username": username}).mappings().first()
        except SQLAlchemyError as e:
            raise CredentialStoreError(str(e)) from e
        if row is None:
            return None
        if not verify_password(row["password"], password):
            return None
        return UserRecord(username=row["username"], password_hash=row["password"])
