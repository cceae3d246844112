"""Persistence layer for OracleIngest."""

from services.state.oracle_ingest.data.repository import (
    InMemorySampleRepository,
    SqlSampleRepository,
)
from services.state.oracle_ingest.data.schema import metadata

__all__ = ["InMemorySampleRepository", "SqlSampleRepository", "metadata"]
