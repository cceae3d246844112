"""Persistence layer for the Escrow Engine."""

from services.action.escrow_engine.data.repository import (
    InMemoryEscrowRepository,
    SqlEscrowRepository,
)
from services.action.escrow_engine.data.schema import metadata

__all__ = ["InMemoryEscrowRepository", "SqlEscrowRepository", "metadata"]
