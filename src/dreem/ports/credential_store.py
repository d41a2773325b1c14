"""Credential storage interface."""

from typing import Protocol


class CredentialStore(Protocol):
    """Interface for the AI service secret."""

    def get(self) -> str | None:
        """Stored secret. Returns None if not set."""
        ...

    def set(self, secret: str) -> None:
        """Store/overwrite the secret."""
        ...
