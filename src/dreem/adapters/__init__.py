"""Adapters - I/O implementations of ports."""

from .file_store import FileRecordStore
from .openai_api import OpenAIInterpreter
from .stored_credentials import StoredCredential

__all__ = [
    "FileRecordStore",
    "OpenAIInterpreter",
    "StoredCredential",
]
