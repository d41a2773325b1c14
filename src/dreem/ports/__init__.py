"""Ports - interfaces/protocols for external dependencies."""

from .record_store import RecordStore, StorageWriteError
from .interpreter import (
    InterpretationService,
    InterpretationError,
    RateLimitError,
    MissingCredentialError,
)
from .credential_store import CredentialStore

__all__ = [
    "RecordStore",
    "StorageWriteError",
    "InterpretationService",
    "InterpretationError",
    "RateLimitError",
    "MissingCredentialError",
    "CredentialStore",
]
