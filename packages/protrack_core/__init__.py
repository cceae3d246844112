"""ProTrack composition root."""

from packages.protrack_core.errors import (
    ProTrackConflictError,
    ProTrackDependencyError,
    ProTrackDomainError,
    ProTrackError,
    ProTrackInternalError,
    ProTrackNotFoundError,
    ProTrackPolicyError,
    ProTrackValidationError,
    raise_for_errors,
    unwrap,
)
from packages.protrack_core.health import ComponentHealthResult, CoreHealthResult
from packages.protrack_core.runtime import ProTrackRuntime

__all__ = [
    "ComponentHealthResult",
    "CoreHealthResult",
    "ProTrackConflictError",
    "ProTrackDependencyError",
    "ProTrackDomainError",
    "ProTrackError",
    "ProTrackInternalError",
    "ProTrackNotFoundError",
    "ProTrackPolicyError",
    "ProTrackRuntime",
    "ProTrackValidationError",
    "raise_for_errors",
    "unwrap",
]
