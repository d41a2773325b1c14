"""Shared workflow layer between the CLI and the repositories.

Owns the operations that span more than one repository (commit an entry,
delete an entry) and the editor and navigation logic that decides when
they run.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from .adapters.file_store import FileRecordStore
from .adapters.openai_api import OpenAIInterpreter
from .adapters.stored_credentials import StoredCredential
from .config import Config
from .core.moon import moon_phase_for
from .core.navigation import (
    AllowNavigation,
    ClearSession,
    Effect,
    Event,
    InterceptorState,
    NavPhase,
    PersistDraft,
    transition,
)
from .core.records import (
    Chat,
    DisplayItem,
    Draft,
    Entry,
    Message,
    Role,
    date_iso_for,
    format_timestamp,
    utc_now,
)
from .core.reconcile import reconcile
from .core.session import EditBaseline, EditSessionGuard, EntryData, is_dirty
from .ports.interpreter import InterpretationService
from .ports.record_store import RecordStore, StorageWriteError
from .repositories import ChatRepository, DraftRepository, EntryRepository, SettingsRepository

logger = logging.getLogger(__name__)


class EmptyEntryError(Exception):
    """Raised when asking for an interpretation of a blank entry."""

    pass


@dataclass
class Services:
    """Repositories and collaborators wired to one data directory."""

    store: RecordStore
    entries: EntryRepository
    drafts: DraftRepository
    chats: ChatRepository
    settings: SettingsRepository
    credentials: StoredCredential
    interpreter: InterpretationService
    guard: EditSessionGuard = field(default_factory=EditSessionGuard)


def build_services(config: Config) -> Services:
    """Resolve data directory from config and wire everything to it."""
    store = FileRecordStore(config.resolve_data_dir())
    credentials = StoredCredential(store)
    return Services(
        store=store,
        entries=EntryRepository(store),
        drafts=DraftRepository(store),
        chats=ChatRepository(store),
        settings=SettingsRepository(store),
        credentials=credentials,
        interpreter=OpenAIInterpreter(credentials, config),
    )


# ============== Entry / Draft Protocol ==============


@dataclass
class CommitResult:
    """Outcome of a two-step commit. residual_draft means cleanup failed."""

    entry: Entry | None = None
    residual_draft: bool = False


def commit_final(entries: EntryRepository, drafts: DraftRepository, entry: Entry) -> CommitResult:
    """
    Save an entry, then drop any draft for the same day.

    The entry write must succeed first; its errors propagate. A failed draft
    delete is not fatal: the list view hides a draft shadowed by an entry.
    """
    saved = entries.upsert(entry)
    try:
        drafts.delete_by_key(entry.date_key)
    except StorageWriteError as e:
        logger.warning(f"Entry {entry.date_key} saved but its draft could not be removed: {e}")
        return CommitResult(entry=saved, residual_draft=True)
    return CommitResult(entry=saved)


def commit_delete(entries: EntryRepository, drafts: DraftRepository, date_key: str) -> CommitResult:
    """Delete an entry, then its draft, so no draft revives a deleted day."""
    entries.delete_by_key(date_key)
    try:
        drafts.delete_by_key(date_key)
    except StorageWriteError as e:
        logger.warning(f"Entry {date_key} deleted but its draft could not be removed: {e}")
        return CommitResult(residual_draft=True)
    return CommitResult()


def save_draft(drafts: DraftRepository, data: EntryData) -> Draft:
    """Persist editor content as a draft stamped now."""
    draft = Draft(
        date_key=data.date_key,
        text=data.text,
        ai_result=data.ai_result,
        saved_at=format_timestamp(utc_now()),
    )
    return drafts.upsert(draft)


def journal_list(entries: EntryRepository, drafts: DraftRepository) -> list[DisplayItem]:
    """Entries and unshadowed drafts, newest first."""
    return reconcile(entries.find_all(), drafts.find_all())


# ============== Editor ==============


class EntryEditor:
    """
    Editing session for one day.

    Keeps the live text and AI result, the last-persisted baseline, and
    pushes dirtiness into the shared guard on every change.
    """

    def __init__(
        self,
        date_key: str,
        entries: EntryRepository,
        drafts: DraftRepository,
        guard: EditSessionGuard,
        interpreter: InterpretationService | None = None,
    ):
        self.date_key = date_key
        self.target_date = date.fromisoformat(date_key)
        self.moon = moon_phase_for(self.target_date)
        self.entries = entries
        self.drafts = drafts
        self.guard = guard
        self.interpreter = interpreter
        self.text = ""
        self.ai_result = ""
        self.baseline = EditBaseline()
        self.from_draft = False
        self.closed = False

    @property
    def entry_data(self) -> EntryData:
        return EntryData(date_key=self.date_key, text=self.text, ai_result=self.ai_result)

    @property
    def has_unsaved_changes(self) -> bool:
        return is_dirty(self.baseline, self.text, self.ai_result)

    def open(self) -> "EntryEditor":
        """
        Load the day's entry, with any draft's content on top of it.

        The entry (or nothing) is the baseline. A draft is not final, so its
        content counts as unsaved and leaving prompts again.
        """
        self.guard.claim(self.date_key)
        self.closed = False

        existing = self.entries.find_by_key(self.date_key)
        if existing:
            self.baseline = EditBaseline(existing.text, existing.ai_analysis or "")
        else:
            self.baseline = EditBaseline()

        draft = self.drafts.find_by_key(self.date_key)
        self.from_draft = draft is not None
        if draft:
            self.text = draft.text
            self.ai_result = draft.ai_result
        else:
            self.text = self.baseline.text
            self.ai_result = self.baseline.ai_result

        self._publish()
        return self

    def close(self) -> None:
        """End the session. Unsaved work not handled by now is dropped."""
        self.closed = True
        if self.guard.owner == self.date_key:
            self.guard.clear()
            self.guard.release(self.date_key)

    def set_text(self, text: str) -> bool:
        self.text = text
        return self._publish()

    def set_ai_result(self, ai_result: str) -> bool:
        self.ai_result = ai_result
        return self._publish()

    def _publish(self) -> bool:
        dirty = self.has_unsaved_changes
        if self.guard.owner == self.date_key:
            self.guard.update(dirty, self.entry_data)
        return dirty

    def save(self) -> CommitResult:
        """Commit the live content as the day's entry."""
        entry = Entry(
            date_key=self.date_key,
            date_iso=date_iso_for(self.date_key),
            text=self.text,
            moon_phase=self.moon.phase,
            moon_phase_emoji=self.moon.emoji,
            ai_analysis=self.ai_result,
        )
        result = commit_final(self.entries, self.drafts, entry)
        self.baseline = EditBaseline(self.text, self.ai_result)
        self.from_draft = False
        self._publish()
        return result

    def delete(self) -> CommitResult:
        """Delete the day's entry and draft, and reset the editor."""
        result = commit_delete(self.entries, self.drafts, self.date_key)
        self.text = ""
        self.ai_result = ""
        self.baseline = EditBaseline()
        self.from_draft = False
        self._publish()
        return result

    def ask_ai(self) -> str | None:
        """
        Interpretation for the live text.

        An existing result is returned without calling the service. A fresh
        one is stored on the entry and becomes the AI baseline. Returns None
        when the answer arrived after this editor lost the session.
        """
        if not self.text.strip():
            raise EmptyEntryError("Please write your dream first.")
        if self.ai_result.strip():
            return self.ai_result
        if self.interpreter is None:
            raise RuntimeError("No interpretation service configured")

        issued_for = self.date_key
        answer = self.interpreter.interpret(self.text, self.target_date, self.moon.phase)

        if self.closed or self.guard.owner != issued_for:
            logger.info(f"Discarding interpretation for {issued_for}: editor no longer active")
            return None

        update = {"dateKey": self.date_key, "aiAnalysis": answer}
        if self.entries.find_by_key(self.date_key) is None:
            update.update(
                dateIso=date_iso_for(self.date_key),
                moonPhase=self.moon.phase,
                moonPhaseEmoji=self.moon.emoji,
            )
        self.entries.upsert(update)
        self.ai_result = answer
        self.baseline = self.baseline.with_ai_result(answer)
        self._publish()
        return answer


# ============== Navigation ==============


class NavigationInterceptor:
    """
    Runs the navigation state machine and carries out its effects.

    Drafts are persisted, the guard cleared and navigate(target) called
    here; PromptUser effects are handed back for the caller to ask.
    """

    def __init__(
        self,
        guard: EditSessionGuard,
        drafts: DraftRepository,
        navigate: Callable[[str], None],
    ):
        self.guard = guard
        self.drafts = drafts
        self.navigate = navigate
        self.state = InterceptorState(NavPhase.DIRTY if guard.has_unsaved_changes else NavPhase.CLEAN)

    @property
    def phase(self) -> NavPhase:
        return self.state.phase

    def dispatch(self, event: Event) -> list[Effect]:
        """Apply event, execute effects, return them all."""
        self.state, effects = transition(self.state, event)
        for effect in effects:
            match effect:
                case PersistDraft(entry_data=data):
                    try:
                        save_draft(self.drafts, data)
                    except StorageWriteError:
                        # Guard untouched; the next attempt prompts again
                        self.state = InterceptorState(NavPhase.DIRTY)
                        raise
                    logger.info(f"Saved draft for {data.date_key}")
                case ClearSession():
                    self.guard.clear()
                case AllowNavigation(target=target):
                    self.navigate(target)
        return effects


# ============== Chat ==============


def send_chat_message(
    chats: ChatRepository,
    chat_id: str,
    content: str,
    responder: InterpretationService | None = None,
) -> Chat | None:
    """
    Append a user message and, with a responder, the assistant's reply.

    Returns None if the chat does not exist. A responder failure leaves the
    user message in place and propagates.
    """
    content = content.strip()
    if not content:
        raise ValueError("Message is empty")

    chat = chats.append_message(chat_id, Message.create(Role.USER, content))
    if chat is None or responder is None:
        return chat

    reply = responder.converse(chat.messages)
    return chats.append_message(chat_id, Message.create(Role.ASSISTANT, reply))
