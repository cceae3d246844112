"""Request validation models for the OracleIngest public API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from services.state.oracle_ingest.domain import OracleSample


class SubmitSampleRequest(BaseModel):
    """Validate one submitted sample's structure; admission rules run later."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sample: OracleSample


class SampleLookupRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    sample_id: str = Field(min_length=1, max_length=64)


class VerifiedWindowRequest(BaseModel):
    """Validate a verified-window query across device and shipment sources."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    device_ids: tuple[str, ...] = ()
    shipment_id: str | None = None
    since: int | None = None
    until: int | None = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "VerifiedWindowRequest":
        if any(not item for item in self.device_ids):
            raise ValueError("device_ids must not contain blank ids")
        if self.since is not None and self.until is not None and self.since > self.until:
            raise ValueError("since must not be after until")
        return self


class ExpirePendingRequest(BaseModel):
    """Sweep requests carry no payload; only metadata is validated."""

    model_config = ConfigDict(frozen=True, extra="forbid")
