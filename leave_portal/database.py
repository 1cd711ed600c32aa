"""Async SQLAlchemy engine, pooled data-access gateway, and declarative base.

The engine (and its connection pool) is created lazily on first use and
reused for the life of the process. Route handlers never touch the engine
directly; they receive a :class:`Gateway` through ``Depends(get_gateway)``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Optional, Union

from sqlalchemy import Executable, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from leave_portal.common.exceptions import DatabaseUnavailableError, QueryExecutionError
from leave_portal.config import settings

logger = logging.getLogger(__name__)

Statement = Union[str, Executable]

_engine: Optional[AsyncEngine] = None
_gateway: Optional["Gateway"] = None


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# ── Engine lifecycle ────────────────────────────────────────────────

def _engine_options() -> dict[str, Any]:
    options: dict[str, Any] = {
        "echo": settings.ENVIRONMENT == "development" and settings.LOG_LEVEL == "debug",
        "connect_args": settings.database_connect_args,
    }
    if not settings.database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_pre_ping=True,
        )
    return options


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(settings.database_url, **_engine_options())
        logger.info("Database engine created for %s", _engine.url.render_as_string())
    return _engine


async def dispose_engine() -> None:
    """Close every pooled connection (application shutdown)."""
    global _engine, _gateway
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database engine disposed")
    _engine = None
    _gateway = None


# ── Gateway ─────────────────────────────────────────────────────────

def _as_clause(statement: Statement) -> Executable:
    return text(statement) if isinstance(statement, str) else statement


class Gateway:
    """Parameter-bound query / command execution over a pooled engine.

    Without an explicit engine the process-wide one is created on the
    first connection attempt, so a bad URL or a missing driver surfaces as
    :class:`DatabaseUnavailableError` rather than while resolving the
    dependency.
    """

    def __init__(self, engine: Optional[AsyncEngine] = None) -> None:
        self._engine = engine

    @property
    def engine(self) -> AsyncEngine:
        return self._engine if self._engine is not None else get_engine()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[AsyncConnection]:
        """Yield a pooled connection inside a transaction.

        Commits when the block exits cleanly, rolls back otherwise, and
        always returns the connection to the pool.
        """
        try:
            conn = await self.engine.connect()
        except (SQLAlchemyError, OSError, ImportError) as exc:
            raise DatabaseUnavailableError("Could not obtain a database connection.") from exc
        try:
            async with conn.begin():
                yield conn
        finally:
            await conn.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """Several statements in one transaction.

        Statement and commit failures surface as :class:`QueryExecutionError`.
        """
        try:
            async with self.acquire() as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise QueryExecutionError(type(exc).__name__) from exc

    async def query(
        self,
        statement: Statement,
        params: Optional[Mapping[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        """Run *statement* and return its rows as plain dicts."""
        async with self.transaction() as conn:
            result = await conn.execute(_as_clause(statement), dict(params or {}))
            return [dict(row) for row in result.mappings().all()]

    async def execute(
        self,
        statement: Statement,
        params: Optional[Mapping[str, Any]] = None,
    ) -> int:
        """Run a command and return the number of affected rows."""
        async with self.transaction() as conn:
            result = await conn.execute(_as_clause(statement), dict(params or {}))
            return result.rowcount


def get_gateway() -> Gateway:
    """FastAPI dependency: the shared gateway over the process-wide pool."""
    global _gateway
    if _gateway is None:
        _gateway = Gateway()
    return _gateway
