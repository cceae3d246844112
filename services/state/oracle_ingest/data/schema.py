"""SQLAlchemy table definitions owned by OracleIngest."""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    UniqueConstraint,
)

from packages.protrack_shared.ids import ulid_primary_key_column

metadata = MetaData()

oracle_samples = Table(
    "oracle_samples",
    metadata,
    ulid_primary_key_column("sample_id"),
    Column("source_key", String(160), nullable=False),
    Column("kind", String(16), nullable=False),
    Column("observed_at", BigInteger, nullable=False),
    Column("body", JSON, nullable=False),
    Column("status", String(16), nullable=False),
    Column("submitted_at", DateTime(timezone=True), nullable=False),
    Column("proof_ref", String(64), nullable=True),
    UniqueConstraint(
        "source_key", "observed_at", name="uq_oracle_samples_source_observed"
    ),
    Index("ix_oracle_samples_status", "status"),
)
