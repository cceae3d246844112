"""SQLAlchemy table definitions owned by the Provenance Store."""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKeyConstraint,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    UniqueConstraint,
)

from packages.protrack_shared.ids import ulid_column, ulid_primary_key_column

metadata = MetaData()

units = Table(
    "units",
    metadata,
    ulid_primary_key_column("unit_id"),
    Column("idempotency_key", String(128), nullable=False),
    Column("name", String(256), nullable=False, server_default=""),
    Column("sku", String(128), nullable=False, server_default=""),
    Column("batch_id", String(128), nullable=False, server_default=""),
    Column("manufacturer", String(256), nullable=False, server_default=""),
    Column("category", String(128), nullable=False, server_default=""),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("expiry_at", DateTime(timezone=True), nullable=True),
    Column("location", String(512), nullable=False, server_default=""),
    Column("value", String(64), nullable=True),
    Column("mint_proof_ref", String(64), nullable=False),
    UniqueConstraint("idempotency_key", name="uq_units_idempotency_key"),
)

provenance_events = Table(
    "provenance_events",
    metadata,
    ulid_column("unit_id"),
    Column("sequence", Integer, nullable=False),
    Column("kind", String(64), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("location", String(512), nullable=False, server_default=""),
    Column("payload", JSON, nullable=False),
    Column("actor", String(256), nullable=False),
    Column("occurred_at", DateTime(timezone=True), nullable=False),
    Column("proof_ref", String(64), nullable=False),
    PrimaryKeyConstraint("unit_id", "sequence", name="pk_provenance_events"),
    ForeignKeyConstraint(
        ["unit_id"], ["units.unit_id"], name="fk_provenance_events_unit"
    ),
)
