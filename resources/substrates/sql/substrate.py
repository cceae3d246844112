"""Shared SQL substrate contract and implementation."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, ConfigDict
from sqlalchemy import Engine, MetaData
from sqlalchemy.orm import Session, sessionmaker

from resources.substrates.sql.config import SqlSettings
from resources.substrates.sql.engine import create_sql_engine
from resources.substrates.sql.health import ping
from resources.substrates.sql.session import create_session_factory


class SqlHealthStatus(BaseModel):
    """SQL substrate readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    detail: str


class SqlSubstrate(Protocol):
    """Protocol for shared SQL substrate operations."""

    @property
    def engine(self) -> Engine:
        """Return underlying SQLAlchemy engine."""

    @property
    def session_factory(self) -> sessionmaker[Session]:
        """Return the shared session factory."""

    def create_schema(self, metadata: MetaData) -> None:
        """Create any missing tables declared on ``metadata``."""

    def health(self) -> SqlHealthStatus:
        """Probe SQL substrate readiness."""


class SharedSqlSubstrate(SqlSubstrate):
    """Concrete shared SQL substrate with schema bootstrap and readiness probe."""

    def __init__(self, *, settings: SqlSettings, engine: Engine | None = None) -> None:
        self._settings = settings
        self._engine = create_sql_engine(settings) if engine is None else engine
        self._session_factory = create_session_factory(self._engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        return self._session_factory

    def create_schema(self, metadata: MetaData) -> None:
        metadata.create_all(self._engine, checkfirst=True)

    def health(self) -> SqlHealthStatus:
        """Return readiness from a trivial query."""
        ready = ping(self._engine)
        return SqlHealthStatus(ready=ready, detail="ok" if ready else "sql ping failed")

    def dispose(self) -> None:
        """Release pooled connections."""
        self._engine.dispose()
