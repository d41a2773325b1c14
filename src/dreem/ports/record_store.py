"""Record store interface."""

from typing import Protocol


class StorageWriteError(Exception):
    """Raised when a namespace could not be written."""

    pass


class RecordStore(Protocol):
    """Interface for whole-namespace key-value persistence."""

    def get_item(self, namespace: str) -> str | None:
        """Raw value stored under a namespace. Returns None if absent."""
        ...

    def set_item(self, namespace: str, value: str) -> None:
        """Write/overwrite the raw value of a namespace."""
        ...

    def remove_item(self, namespace: str) -> None:
        """Remove a namespace. No-op if absent."""
        ...

    def load(self, namespace: str) -> list[dict]:
        """Records stored under a namespace. Empty if absent or corrupt."""
        ...

    def replace_all(self, namespace: str, records: list[dict]) -> None:
        """Replace the whole collection stored under a namespace."""
        ...
