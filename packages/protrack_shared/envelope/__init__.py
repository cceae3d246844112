"""Request metadata and response envelopes shared by every service."""

from .meta import EnvelopeKind, EnvelopeMeta, child_meta, new_meta, validate_meta
from .model import Envelope, empty, failure, success

__all__ = [
    "Envelope",
    "EnvelopeKind",
    "EnvelopeMeta",
    "child_meta",
    "empty",
    "failure",
    "new_meta",
    "success",
    "validate_meta",
]
