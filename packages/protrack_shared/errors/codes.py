"""Stable machine-readable error codes.

The supply-chain codes at the bottom are what operators see from the CLI;
the generic codes above them cover validation and infrastructure faults.
"""

VALIDATION_ERROR = "VALIDATION_ERROR"
INVALID_ARGUMENT = "INVALID_ARGUMENT"
NOT_FOUND = "NOT_FOUND"
CONFLICT = "CONFLICT"
ALREADY_EXISTS = "ALREADY_EXISTS"
POLICY_VIOLATION = "POLICY_VIOLATION"
PERMISSION_DENIED = "PERMISSION_DENIED"
DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"
DEPENDENCY_TIMEOUT = "DEPENDENCY_TIMEOUT"
DEPENDENCY_UNAVAILABLE = "DEPENDENCY_UNAVAILABLE"
INTERNAL_ERROR = "INTERNAL_ERROR"
UNEXPECTED_EXCEPTION = "UNEXPECTED_EXCEPTION"

UNKNOWN_UNIT = "UNKNOWN_UNIT"
UNKNOWN_ESCROW = "UNKNOWN_ESCROW"
UNKNOWN_SAMPLE = "UNKNOWN_SAMPLE"
STALE_ACTOR = "STALE_ACTOR"
SAMPLE_REJECTED = "SAMPLE_REJECTED"
DUPLICATE_SKU_BATCH = "DUPLICATE_SKU_BATCH"
NOT_OPEN = "NOT_OPEN"
LEDGER_UNAVAILABLE = "LEDGER_UNAVAILABLE"
