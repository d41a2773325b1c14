"""Dream interpretation service interface."""

from datetime import date
from typing import Protocol

from dreem.core.records import Message


class InterpretationError(Exception):
    """Raised when the interpretation service fails. Message is user-facing."""

    pass


class RateLimitError(InterpretationError):
    """Raised when the service rejects a call for rate limiting."""

    pass


class MissingCredentialError(InterpretationError):
    """Raised when no credential is stored for the service."""

    pass


class InterpretationService(Protocol):
    """Interface for AI interpretation of journal entries."""

    def interpret(self, text: str, target_date: date, moon_phase: str) -> str:
        """Interpret an entry. Returns the interpretation text."""
        ...

    def converse(self, messages: list[Message]) -> str:
        """Reply to a chat history. Returns the assistant's answer."""
        ...

    def verify_credential(self) -> bool:
        """Check that the stored credential is accepted by the service."""
        ...
