# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Database connection management for the ``database`` store backend.

PostgreSQL (asyncpg) is the production target; SQLite (aiosqlite) serves
single-node installs and tests. Plain ``postgres://`` and ``sqlite://`` URLs
are rewritten to their async drivers.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from .error_mapping import ConfigurationError

logger = logging.getLogger(__name__)

ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


class Base(DeclarativeBase):
    """Base class for the console tables."""


def async_database_url(url: str) -> str:
    for prefix, replacement in ASYNC_DRIVERS.items():
        if url.startswith(prefix):
            return replacement + url[len(prefix) :]
    return url


def _url_from_environment() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    host = os.getenv("DB_HOST", "localhost")
    port = os.getenv("DB_PORT", "5432")
    name = os.getenv("DB_NAME", "fleet_console")
    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASSWORD", "")
    if not password:
        logger.warning("No database password configured, connecting without one")
    return f"postgresql://{user}:{password}@{host}:{port}/{name}"


@dataclass
class DatabaseConfig:
    """Connection settings. ``database_url`` defaults to ``DATABASE_URL`` or the ``DB_*`` parts."""

    database_url: str | None = None
    pool_size: int = 10
    max_overflow: int = 20
    pool_recycle_seconds: int = 3600
    echo: bool = False

    def __post_init__(self):
        self.database_url = async_database_url(self.database_url or _url_from_environment())
        if self.pool_size < 1:
            raise ConfigurationError("pool_size must be at least 1")

    @classmethod
    def from_environment(cls) -> DatabaseConfig:
        return cls(
            pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
            max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "20")),
            pool_recycle_seconds=int(os.getenv("DB_POOL_RECYCLE", "3600")),
            echo=os.getenv("DB_QUERY_LOGGING", "false").lower() == "true",
        )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def engine_options(self) -> dict[str, Any]:
        # aiosqlite connections are not shareable across tasks
        if self.is_sqlite:
            return {"echo": self.echo, "poolclass": NullPool}
        return {
            "echo": self.echo,
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_recycle": self.pool_recycle_seconds,
            "pool_pre_ping": True,
            "connect_args": {"server_settings": {"application_name": "fleet_console"}},
        }


class DatabaseManager:
    """Owns the engine and session factory for the console tables."""

    def __init__(self, config: DatabaseConfig | None = None):
        self.config = config or DatabaseConfig.from_environment()
        self.engine: AsyncEngine | None = None
        self.session_factory: async_sessionmaker[AsyncSession] | None = None

    async def initialize(self) -> None:
        if self.engine is not None:
            return
        self.engine = create_async_engine(self.config.database_url, **self.config.engine_options())
        self.session_factory = async_sessionmaker(bind=self.engine, expire_on_commit=False)
        backend = "sqlite" if self.config.is_sqlite else "postgresql"
        logger.info(f"Database engine ready ({backend})")

    async def create_schema(self) -> None:
        """Create the console tables that do not exist yet."""
        # Registers the mapped classes on Base.metadata
        from .models import database as _models  # noqa: F401

        await self.initialize()
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Console schema ensured ({len(Base.metadata.tables)} tables)")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        await self.initialize()
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def health_check(self) -> bool:
        try:
            await self.initialize()
            async with self.engine.connect() as conn:
                return (await conn.execute(text("SELECT 1"))).scalar() == 1
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database connections closed")
        self.engine = None
        self.session_factory = None


_db_manager: DatabaseManager | None = None


def get_database_manager() -> DatabaseManager:
    """Process-wide manager used by repositories built without one."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def init_database(manager: DatabaseManager | None = None) -> DatabaseManager:
    """Connect, verify and create the schema on startup."""
    manager = manager or get_database_manager()
    if not await manager.health_check():
        location = manager.config.database_url.split("@")[-1]
        raise ConfigurationError(f"Cannot reach console database at {location}")
    await manager.create_schema()
    return manager


async def close_database(manager: DatabaseManager | None = None) -> None:
    await (manager or get_database_manager()).close()
