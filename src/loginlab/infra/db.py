# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from pathlib import Path

from loguru import logger
from sqlalchemy import Column, DateTime, MetaData, String, Table, Text, create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import QueuePool

metadata = MetaData()

# Table and column names match the original deployment's MySQL schema.
user_table = Table(
    "user",
    metadata,
    Column("username", String(255), primary_key=True),
    Column("password", String(255), nullable=False),
)

session_table = Table(
    "sessions",
    metadata,
    Column("sid", String(64), primary_key=True),
    Column("data", Text, nullable=False),
    Column("expires", DateTime, nullable=False, index=True),
)


def create_db_engine(url: str, *, pool_size: int = 10) -> Engine:
    """Engine with a fixed-size connection pool.

    Callers block on an exhausted pool until a connection is returned
    (no overflow connections).
    """
    connect_args: dict = {}
    u = make_url(url)
    if u.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if u.database and u.database != ":memory:":
            Path(u.database).resolve().parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=0,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    logger.debug(f"db: engine ready backend={u.get_backend_name()} pool_size={pool_size}")
    return engine


def init_schema(engine: Engine) -> None:
    metadata.create_all(engine)
    logger.info("db: schema ensured (user, sessions)")
