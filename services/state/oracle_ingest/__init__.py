"""OracleIngest native package exports."""

from services.state.oracle_ingest.component import MANIFEST
from services.state.oracle_ingest.config import OracleIngestSettings
from services.state.oracle_ingest.domain import (
    CANONICAL_UNITS,
    PHYSICAL_RANGES,
    HealthStatus,
    LocationSample,
    OracleSample,
    SampleStatus,
    SensorSample,
    SensorType,
    StoredSample,
    SubmitReceipt,
    VerificationOutcome,
)
from services.state.oracle_ingest.implementation import DefaultOracleIngestService
from services.state.oracle_ingest.service import (
    OracleIngestService,
    build_oracle_ingest_service,
)

__all__ = [
    "CANONICAL_UNITS",
    "MANIFEST",
    "PHYSICAL_RANGES",
    "DefaultOracleIngestService",
    "HealthStatus",
    "LocationSample",
    "OracleIngestService",
    "OracleIngestSettings",
    "OracleSample",
    "SampleStatus",
    "SensorSample",
    "SensorType",
    "StoredSample",
    "SubmitReceipt",
    "VerificationOutcome",
    "build_oracle_ingest_service",
]
