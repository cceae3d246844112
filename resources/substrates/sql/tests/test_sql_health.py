"""Tests for SQL substrate health and error normalization."""

from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, Table, insert, select
from sqlalchemy.exc import IntegrityError, OperationalError

from packages.protrack_shared.errors import ErrorCategory, codes
from resources.substrates.sql import (
    SharedSqlSubstrate,
    SqlSettings,
    normalize_sql_error,
    transactional_session,
)


def test_in_memory_substrate_reports_ready() -> None:
    """A fresh in-memory substrate should answer its ping."""
    substrate = SharedSqlSubstrate(settings=SqlSettings())
    status = substrate.health()
    assert status.ready is True
    assert status.detail == "ok"


def test_create_schema_and_transactional_session_share_one_database() -> None:
    """Sessions should see tables created through the substrate."""
    substrate = SharedSqlSubstrate(settings=SqlSettings())
    metadata = MetaData()
    table = Table("numbers", metadata, Column("value", Integer, primary_key=True))
    substrate.create_schema(metadata)

    with transactional_session(substrate.session_factory) as session:
        session.execute(insert(table).values(value=7))

    with transactional_session(substrate.session_factory) as session:
        assert session.execute(select(table.c.value)).scalar_one() == 7


def test_transactional_session_rolls_back_on_error() -> None:
    """Failures inside the block should leave no partial writes."""
    substrate = SharedSqlSubstrate(settings=SqlSettings())
    metadata = MetaData()
    table = Table("numbers", metadata, Column("value", Integer, primary_key=True))
    substrate.create_schema(metadata)

    try:
        with transactional_session(substrate.session_factory) as session:
            session.execute(insert(table).values(value=1))
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    with transactional_session(substrate.session_factory) as session:
        assert session.execute(select(table.c.value)).all() == []


def test_normalize_sql_error_maps_integrity_to_conflict() -> None:
    error = normalize_sql_error(IntegrityError("insert", {}, Exception("dup")))
    assert error.category == ErrorCategory.CONFLICT
    assert error.code == codes.ALREADY_EXISTS


def test_normalize_sql_error_maps_operational_to_retryable_dependency() -> None:
    error = normalize_sql_error(OperationalError("select", {}, Exception("down")))
    assert error.category == ErrorCategory.DEPENDENCY
    assert error.retryable is True
