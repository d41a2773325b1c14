"""File-based record store adapter."""

import json
import logging
import os
from pathlib import Path

from dreem.ports.record_store import StorageWriteError

logger = logging.getLogger(__name__)


class FileRecordStore:
    """
    File-based namespace storage.

    Implements RecordStore protocol. Each namespace gets a file; every write
    replaces the whole file atomically.
    """

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir).expanduser()
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, namespace: str) -> Path:
        """Get the file path for a namespace."""
        return self.data_dir / f"{namespace}.json"

    def get_item(self, namespace: str) -> str | None:
        """Raw value stored under a namespace. Returns None if absent."""
        path = self._path_for(namespace)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, namespace: str, value: str) -> None:
        """
        Write/overwrite the raw value of a namespace.

        Writes a temp file in the same directory, fsyncs it, then renames it
        over the target. Readers see the old or the new value, never a mix.
        """
        path = self._path_for(namespace)
        tmp = path.with_name(path.name + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError as e:
            logger.error(f"Failed to write {namespace}: {e}")
            raise StorageWriteError(f"Could not write {namespace}: {e}") from e

        try:
            os.chmod(path, 0o600)
        except OSError:
            pass

    def remove_item(self, namespace: str) -> None:
        """Remove a namespace. No-op if absent."""
        try:
            self._path_for(namespace).unlink(missing_ok=True)
        except OSError as e:
            raise StorageWriteError(f"Could not remove {namespace}: {e}") from e

    def load(self, namespace: str) -> list[dict]:
        """Records stored under a namespace. Empty if absent or corrupt."""
        raw = self.get_item(namespace)
        if not raw or not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt data in {namespace}, treating as empty: {e}")
            return []
        if not isinstance(data, list):
            logger.warning(f"Unexpected {type(data).__name__} in {namespace}, treating as empty")
            return []
        records = [r for r in data if isinstance(r, dict)]
        if len(records) != len(data):
            logger.warning(f"Dropped {len(data) - len(records)} malformed record(s) in {namespace}")
        return records

    def replace_all(self, namespace: str, records: list[dict]) -> None:
        """Replace the whole collection stored under a namespace."""
        self.set_item(namespace, json.dumps(records, ensure_ascii=False))
