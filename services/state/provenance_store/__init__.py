"""Provenance Store native package exports."""

from services.state.provenance_store.component import MANIFEST
from services.state.provenance_store.config import ProvenanceStoreSettings
from services.state.provenance_store.domain import (
    RECEIVED,
    SHIPPED,
    AppendReceipt,
    EventDraft,
    HealthStatus,
    MintReceipt,
    ProvenanceEvent,
    ProvenanceRecord,
    UnitDescriptor,
    UnitSnapshot,
)
from services.state.provenance_store.implementation import DefaultProvenanceStoreService
from services.state.provenance_store.service import (
    ProvenanceStoreService,
    build_provenance_store_service,
)

__all__ = [
    "MANIFEST",
    "RECEIVED",
    "SHIPPED",
    "AppendReceipt",
    "DefaultProvenanceStoreService",
    "EventDraft",
    "HealthStatus",
    "MintReceipt",
    "ProvenanceEvent",
    "ProvenanceRecord",
    "ProvenanceStoreService",
    "ProvenanceStoreSettings",
    "UnitDescriptor",
    "UnitSnapshot",
    "build_provenance_store_service",
]
