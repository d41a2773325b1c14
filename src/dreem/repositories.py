"""Entry, draft, chat and settings repositories over a RecordStore.

Every write is a whole-namespace read-modify-write run through
with_namespace(). Repositories know nothing about each other; keeping
entries and drafts consistent is the job of the workflows layer.
"""

import logging
import threading
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Callable, Generic, TypeVar

from .config import CHATS_NAMESPACE, DRAFTS_NAMESPACE, ENTRIES_NAMESPACE, THEME_NAMESPACE
from .core.records import (
    NEW_CHAT_TITLE,
    Chat,
    Draft,
    Entry,
    Message,
    Role,
    format_timestamp,
    new_id,
    parse_timestamp,
    title_from_message,
    utc_now,
)
from .ports.record_store import RecordStore

logger = logging.getLogger(__name__)

THEME_CHOICES = ("light", "dark", "system")
_OLDEST = datetime.min.replace(tzinfo=timezone.utc)

_locks_guard = threading.Lock()
_namespace_locks: dict[str, threading.RLock] = {}


def _lock_for(namespace: str) -> threading.RLock:
    with _locks_guard:
        return _namespace_locks.setdefault(namespace, threading.RLock())


def with_namespace(
    store: RecordStore,
    namespace: str,
    fn: Callable[[list[dict]], list[dict] | None],
) -> list[dict]:
    """
    Load a namespace, apply fn, and write the result back.

    fn returns the new collection, or None to leave the namespace untouched.
    The whole cycle holds a per-namespace lock, so writers in this process
    never interleave. Returns the collection as it stands afterwards.
    """
    with _lock_for(namespace):
        records = store.load(namespace)
        updated = fn(records)
        if updated is None:
            return records
        store.replace_all(namespace, updated)
        return updated


T = TypeVar("T", Entry, Draft)


class _DateKeyedRepository(Generic[T]):
    """CRUD over records unique by dateKey."""

    namespace: str
    record_type: type[T]

    def __init__(self, store: RecordStore):
        self.store = store

    def _parse(self, data: dict) -> T | None:
        try:
            return self.record_type.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed record in {self.namespace}: {e}")
            return None

    def find_all(self) -> list[T]:
        records = (self._parse(r) for r in self.store.load(self.namespace))
        return [r for r in records if r is not None]

    def find_by_key(self, date_key: str) -> T | None:
        for data in self.store.load(self.namespace):
            if data.get("dateKey") == date_key:
                return self._parse(data)
        return None

    def upsert(self, record: T | Mapping) -> T:
        """
        Merge record into the stored one with the same dateKey, or append it.

        Fields missing from a partial mapping keep their stored values.
        """
        incoming = dict(record) if isinstance(record, Mapping) else record.to_dict()
        date_key = incoming.get("dateKey")
        if not date_key:
            raise ValueError("Record has no dateKey")

        merged: dict = {}

        def merge(records: list[dict]) -> list[dict]:
            nonlocal merged
            for idx, existing in enumerate(records):
                if existing.get("dateKey") == date_key:
                    merged = {**existing, **incoming}
                    records[idx] = merged
                    return records
            merged = incoming
            records.append(merged)
            return records

        with_namespace(self.store, self.namespace, merge)
        return self.record_type.from_dict(merged)

    def delete_by_key(self, date_key: str) -> bool:
        """Remove the record for date_key. Returns whether one existed."""
        removed = False

        def drop(records: list[dict]) -> list[dict] | None:
            nonlocal removed
            remaining = [r for r in records if r.get("dateKey") != date_key]
            if len(remaining) == len(records):
                return None
            removed = True
            return remaining

        with_namespace(self.store, self.namespace, drop)
        return removed


class EntryRepository(_DateKeyedRepository[Entry]):
    """Final journal entries."""

    namespace = ENTRIES_NAMESPACE
    record_type = Entry


class DraftRepository(_DateKeyedRepository[Draft]):
    """Interim editor saves, kept apart from entries."""

    namespace = DRAFTS_NAMESPACE
    record_type = Draft


class ChatRepository:
    """Chats with append-only message lists."""

    namespace = CHATS_NAMESPACE

    def __init__(self, store: RecordStore):
        self.store = store

    def find_all(self) -> list[Chat]:
        chats = []
        for data in self.store.load(self.namespace):
            try:
                chats.append(Chat.from_dict(data))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed chat: {e}")
        return chats

    def find_by_id(self, chat_id: str) -> Chat | None:
        for data in self.store.load(self.namespace):
            if str(data.get("id")) == chat_id:
                return Chat.from_dict(data)
        return None

    def create(self) -> Chat:
        now = format_timestamp(utc_now())
        chat = Chat(id=new_id(), title=NEW_CHAT_TITLE, created_at=now, updated_at=now)

        def add(records: list[dict]) -> list[dict]:
            records.append(chat.to_dict())
            return records

        with_namespace(self.store, self.namespace, add)
        return chat

    def append_message(self, chat_id: str, message: Message) -> Chat | None:
        """
        Append message to the end of a chat.

        The first user message replaces the "New Chat" title. Returns the
        updated chat, or None if no chat has chat_id.
        """
        updated: Chat | None = None

        def append(records: list[dict]) -> list[dict] | None:
            nonlocal updated
            for idx, data in enumerate(records):
                if str(data.get("id")) != chat_id:
                    continue
                chat = Chat.from_dict(data)
                chat.messages.append(message)
                chat.updated_at = format_timestamp(utc_now())
                if chat.title == NEW_CHAT_TITLE and message.role == Role.USER:
                    chat.title = title_from_message(message.content)
                records[idx] = {**data, **chat.to_dict()}
                updated = chat
                return records
            return None

        with_namespace(self.store, self.namespace, append)
        if updated is None:
            logger.debug(f"No chat {chat_id} to append to")
        return updated

    def remove(self, chat_id: str) -> None:
        def drop(records: list[dict]) -> list[dict] | None:
            remaining = [r for r in records if str(r.get("id")) != chat_id]
            return remaining if len(remaining) != len(records) else None

        with_namespace(self.store, self.namespace, drop)


def list_chats_by_recency(chats: list[Chat]) -> list[Chat]:
    """Most recently updated first."""
    return sorted(chats, key=lambda c: parse_timestamp(c.updated_at) or _OLDEST, reverse=True)


class SettingsRepository:
    """Scalar preferences stored under their own namespaces."""

    def __init__(self, store: RecordStore):
        self.store = store

    def get_theme(self) -> str:
        """Theme preference: light, dark or system (the fallback)."""
        value = self.store.get_item(THEME_NAMESPACE)
        if value in THEME_CHOICES:
            return value
        return "system"

    def set_theme(self, preference: str) -> None:
        if preference not in THEME_CHOICES:
            raise ValueError(f"Theme must be one of {', '.join(THEME_CHOICES)}")
        self.store.set_item(THEME_NAMESPACE, preference)
