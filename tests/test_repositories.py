"""Tests for entry, draft, chat and settings repositories."""

import threading

import pytest

from dreem.core.records import NEW_CHAT_TITLE, Draft, Entry, Message, Role, new_id
from dreem.repositories import list_chats_by_recency, with_namespace


class TestWithNamespace:
    def test_applies_and_writes(self, store):
        result = with_namespace(store, "NS", lambda records: records + [{"id": 1}])
        assert result == [{"id": 1}]
        assert store.load("NS") == [{"id": 1}]

    def test_none_skips_write(self, store):
        store.replace_all("NS", [{"id": 1}])
        calls = []
        original = store.replace_all
        store.replace_all = lambda ns, records: calls.append(ns) or original(ns, records)

        result = with_namespace(store, "NS", lambda records: None)

        assert result == [{"id": 1}]
        assert calls == []

    def test_concurrent_writers_do_not_lose_updates(self, store):
        def add(i):
            with_namespace(store, "NS", lambda records: records + [{"id": i}])

        threads = [threading.Thread(target=add, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(r["id"] for r in store.load("NS")) == list(range(20))


class TestEntryRepository:
    def test_find_all_empty(self, entries):
        assert entries.find_all() == []

    def test_upsert_appends_new(self, entries):
        entries.upsert(Entry(date_key="2024-03-01", text="T1"))
        assert entries.find_by_key("2024-03-01").text == "T1"

    def test_upsert_replaces_same_key(self, entries):
        entries.upsert(Entry(date_key="2024-03-01", text="T1"))
        entries.upsert(Entry(date_key="2024-03-01", text="T2"))
        found = entries.find_all()
        assert len(found) == 1
        assert found[0].text == "T2"

    def test_date_keys_stay_unique(self, entries):
        keys = ["2024-03-01", "2024-03-02", "2024-03-01", "2024-03-03", "2024-03-02", "2024-03-01"]
        for i, key in enumerate(keys):
            entries.upsert(Entry(date_key=key, text=str(i)))

        found = [e.date_key for e in entries.find_all()]
        assert sorted(found) == ["2024-03-01", "2024-03-02", "2024-03-03"]

    def test_partial_upsert_preserves_text(self, entries):
        entries.upsert({"dateKey": "2024-03-01", "text": "t", "aiAnalysis": ""})
        merged = entries.upsert({"dateKey": "2024-03-01", "aiAnalysis": "x"})

        assert merged.text == "t"
        assert merged.ai_analysis == "x"
        stored = entries.store.load(entries.namespace)
        assert stored == [{"dateKey": "2024-03-01", "text": "t", "aiAnalysis": "x"}]

    def test_dataclass_upsert_without_analysis_keeps_it(self, entries):
        entries.upsert({"dateKey": "2024-03-01", "text": "t", "aiAnalysis": "r"})
        entries.upsert(Entry(date_key="2024-03-01", text="t2"))
        assert entries.find_by_key("2024-03-01").ai_analysis == "r"

    def test_upsert_without_key_rejected(self, entries):
        with pytest.raises(ValueError):
            entries.upsert({"text": "no key"})

    def test_delete_by_key(self, entries):
        entries.upsert(Entry(date_key="2024-03-01"))
        entries.upsert(Entry(date_key="2024-03-02"))

        assert entries.delete_by_key("2024-03-01") is True
        assert entries.find_by_key("2024-03-01") is None
        assert entries.find_by_key("2024-03-02") is not None

    def test_delete_missing_is_noop(self, entries):
        assert entries.delete_by_key("2024-03-01") is False

    def test_unknown_fields_survive_rewrites(self, entries, store):
        store.replace_all(entries.namespace, [{"dateKey": "2024-03-01", "text": "t", "mood": "calm"}])
        entries.upsert({"dateKey": "2024-03-01", "text": "t2"})
        assert store.load(entries.namespace)[0]["mood"] == "calm"

    def test_malformed_record_skipped(self, entries, store):
        store.replace_all(entries.namespace, [{"text": "no key"}, {"dateKey": "2024-03-01"}])
        assert [e.date_key for e in entries.find_all()] == ["2024-03-01"]


class TestDraftRepository:
    def test_isolated_from_entries(self, entries, drafts):
        drafts.upsert(Draft(date_key="2024-03-01", text="draft"))
        assert entries.find_by_key("2024-03-01") is None
        assert drafts.find_by_key("2024-03-01").text == "draft"

    def test_round_trips_fields(self, drafts):
        drafts.upsert(Draft(date_key="2024-03-02", text="hello", ai_result="", saved_at="2024-03-02T08:00:00.000Z"))
        draft = drafts.find_by_key("2024-03-02")
        assert draft == Draft(date_key="2024-03-02", text="hello", ai_result="", saved_at="2024-03-02T08:00:00.000Z")


class TestChatRepository:
    def test_create_persists_new_chat(self, chats):
        chat = chats.create()
        assert chat.title == NEW_CHAT_TITLE
        assert chat.messages == []
        assert chats.find_by_id(chat.id) == chat

    def test_ids_are_unique(self, chats):
        ids = {chats.create().id for _ in range(5)}
        assert len(ids) == 5

    def test_first_user_message_sets_title(self, chats):
        chat = chats.create()
        updated = chats.append_message(chat.id, Message.create(Role.USER, "What does flying mean?"))
        assert updated.title == "What does flying mean?"

    def test_long_title_truncated(self, chats):
        chat = chats.create()
        content = "x" * 60
        updated = chats.append_message(chat.id, Message.create(Role.USER, content))
        assert updated.title == "x" * 50 + "..."

    def test_exactly_fifty_chars_not_truncated(self, chats):
        chat = chats.create()
        updated = chats.append_message(chat.id, Message.create(Role.USER, "y" * 50))
        assert updated.title == "y" * 50

    def test_assistant_message_keeps_sentinel_title(self, chats):
        chat = chats.create()
        updated = chats.append_message(chat.id, Message.create(Role.ASSISTANT, "Hello, I'm Luna"))
        assert updated.title == NEW_CHAT_TITLE

    def test_title_set_only_once(self, chats):
        chat = chats.create()
        chats.append_message(chat.id, Message.create(Role.USER, "first"))
        updated = chats.append_message(chat.id, Message.create(Role.USER, "second"))
        assert updated.title == "first"

    def test_messages_appended_in_order(self, chats):
        chat = chats.create()
        for text in ["one", "two", "three"]:
            chats.append_message(chat.id, Message.create(Role.USER, text))
        stored = chats.find_by_id(chat.id)
        assert [m.content for m in stored.messages] == ["one", "two", "three"]

    def test_append_updates_timestamp(self, chats):
        chat = chats.create()
        updated = chats.append_message(chat.id, Message.create(Role.USER, "hi"))
        assert updated.updated_at >= chat.updated_at

    def test_append_to_missing_chat_returns_none(self, chats):
        assert chats.append_message("nope", Message.create(Role.USER, "hi")) is None
        assert chats.find_all() == []

    def test_unknown_role_message_skipped(self, store, chats):
        store.replace_all(
            chats.namespace,
            [
                {
                    "id": "1",
                    "title": "Old chat",
                    "messages": [
                        {"id": "a", "role": "system", "content": "x", "timestamp": ""},
                        {"id": "b", "role": "user", "content": "kept", "timestamp": ""},
                        "not a message",
                    ],
                }
            ],
        )

        [chat] = chats.find_all()
        assert [m.content for m in chat.messages] == ["kept"]
        assert chats.find_by_id("1").title == "Old chat"

        updated = chats.append_message("1", Message.create(Role.USER, "hi"))
        assert [m.content for m in updated.messages] == ["kept", "hi"]

    def test_ids_unique_across_threads(self):
        ids = []

        def make():
            for _ in range(50):
                ids.append(new_id())

        threads = [threading.Thread(target=make) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(set(ids)) == len(ids)

    def test_remove(self, chats):
        keep = chats.create()
        gone = chats.create()
        chats.remove(gone.id)
        assert [c.id for c in chats.find_all()] == [keep.id]

    def test_list_by_recency(self, chats):
        older = chats.create()
        newer = chats.create()
        older.updated_at = "2024-03-01T10:00:00.000Z"
        newer.updated_at = "2024-03-02T10:00:00.000Z"
        assert [c.id for c in list_chats_by_recency([older, newer])] == [newer.id, older.id]


class TestSettingsRepository:
    def test_default_theme_is_system(self, settings):
        assert settings.get_theme() == "system"

    def test_set_theme(self, settings):
        settings.set_theme("dark")
        assert settings.get_theme() == "dark"

    def test_unknown_stored_value_falls_back(self, settings, store):
        store.set_item("DREEM_THEME_PREF_V1", "purple")
        assert settings.get_theme() == "system"

    def test_rejects_invalid_theme(self, settings):
        with pytest.raises(ValueError):
            settings.set_theme("purple")
