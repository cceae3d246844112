"""Persistence layer for the Provenance Store."""

from services.state.provenance_store.data.repository import (
    InMemoryProvenanceRepository,
    SqlProvenanceRepository,
)
from services.state.provenance_store.data.schema import metadata

__all__ = ["InMemoryProvenanceRepository", "SqlProvenanceRepository", "metadata"]
