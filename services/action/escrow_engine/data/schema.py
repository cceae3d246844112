"""SQLAlchemy table definitions owned by the Escrow Engine."""

from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Index, MetaData, String, Table

from packages.protrack_shared.ids import ulid_column, ulid_primary_key_column

metadata = MetaData()

# Amounts are stored as decimal strings to keep exact values on SQLite.
escrows = Table(
    "escrows",
    metadata,
    ulid_primary_key_column("escrow_id"),
    ulid_column("unit_id", index=True),
    Column("payer", String(128), nullable=False),
    Column("payee", String(128), nullable=False),
    Column("amount", String(64), nullable=False),
    Column("conditions", JSON, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("expected_delivery_by", DateTime(timezone=True), nullable=False),
    Column("shipment_id", String(128), nullable=False),
    Column("device_ids", JSON, nullable=False),
    Column("deposit_ref", String(64), nullable=False),
    Column("state", String(16), nullable=False),
    Column("payout_plan", JSON(none_as_null=True), nullable=True),
    Column("settlement", JSON, nullable=True),
    Index("ix_escrows_state_due", "state", "expected_delivery_by"),
)
