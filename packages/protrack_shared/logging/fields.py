"""Structured log keys emitted by ProTrack processes."""

# Record envelope.
TIMESTAMP = "ts"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "msg"
EXCEPTION = "exc"
EVENT = "event"

# Correlation copied from envelope metadata.
TRACE_ID = "trace_id"
ENVELOPE_ID = "envelope_id"
PRINCIPAL = "principal"

# Process identity bound once at startup.
SERVICE = "service"
ENVIRONMENT = "environment"

# Public API instrumentation.
COMPONENT_ID = "component_id"
API_NAME = "api_name"
OUTCOME = "outcome"
DURATION_MS = "duration_ms"
ERRORS = "errors"
ERROR_CATEGORY = "error_category"
STAGE = "stage"
CONCERN = "concern"

INVOCATION_EVENT = "public_api_invocation"
COMPLETION_EVENT = "public_api_completion"
CONCERN_FAILURE_EVENT = "public_api_concern_failure"

OUTCOME_SUCCESS = "success"
OUTCOME_FAILURE = "failure"
