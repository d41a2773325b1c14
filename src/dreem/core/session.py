"""Edit-session state shared between the editor and navigation."""

import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryData:
    """Live editor content for one day."""

    date_key: str
    text: str = ""
    ai_result: str = ""

    @property
    def is_blank(self) -> bool:
        return not self.text.strip() and not self.ai_result.strip()


@dataclass(frozen=True)
class EditSession:
    """Whether the open editor has unsaved work, and what that work is."""

    has_unsaved_changes: bool = False
    entry_data: EntryData | None = None


@dataclass(frozen=True)
class EditBaseline:
    """Last-persisted text and AI result for the open dateKey."""

    text: str = ""
    ai_result: str = ""

    def with_ai_result(self, ai_result: str) -> "EditBaseline":
        return EditBaseline(text=self.text, ai_result=ai_result)


def is_dirty(baseline: EditBaseline, text: str, ai_result: str) -> bool:
    """True when either field differs from what was last persisted."""
    return text != baseline.text or ai_result != baseline.ai_result


class EditSessionGuard:
    """
    Process-wide holder of the current EditSession.

    Any number of readers; one editor writes at a time. The owner dateKey
    lets an editor tell whether the session still belongs to it.
    """

    def __init__(self):
        self._session = EditSession()
        self._owner: str | None = None
        self._observers: list[Callable[[EditSession], None]] = []

    @property
    def session(self) -> EditSession:
        return self._session

    @property
    def has_unsaved_changes(self) -> bool:
        return self._session.has_unsaved_changes

    @property
    def entry_data(self) -> EntryData | None:
        return self._session.entry_data

    @property
    def owner(self) -> str | None:
        return self._owner

    def claim(self, date_key: str) -> None:
        """Mark the editor for date_key as the active writer."""
        if self._owner is not None and self._owner != date_key:
            logger.debug(f"Edit session handed over from {self._owner} to {date_key}")
        self._owner = date_key

    def release(self, date_key: str) -> None:
        """Drop ownership if date_key still holds it."""
        if self._owner == date_key:
            self._owner = None

    def update(self, has_changes: bool, data: EntryData | None) -> None:
        self._set(EditSession(has_unsaved_changes=has_changes, entry_data=data))

    def clear(self) -> None:
        self._set(EditSession())

    def subscribe(self, callback: Callable[[EditSession], None]) -> Callable[[], None]:
        """Call callback on every change. Returns an unsubscribe function."""
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _set(self, session: EditSession) -> None:
        self._session = session
        for callback in list(self._observers):
            callback(session)
