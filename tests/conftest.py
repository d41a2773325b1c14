"""Shared fixtures: repositories over a temporary data directory."""

import pytest

from dreem.adapters.file_store import FileRecordStore
from dreem.core.session import EditSessionGuard
from dreem.repositories import ChatRepository, DraftRepository, EntryRepository, SettingsRepository


@pytest.fixture
def store(tmp_path):
    return FileRecordStore(tmp_path / "data")


@pytest.fixture
def entries(store):
    return EntryRepository(store)


@pytest.fixture
def drafts(store):
    return DraftRepository(store)


@pytest.fixture
def chats(store):
    return ChatRepository(store)


@pytest.fixture
def settings(store):
    return SettingsRepository(store)


@pytest.fixture
def guard():
    return EditSessionGuard()
