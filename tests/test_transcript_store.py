import json
import unittest

from chat_companion.exceptions import StorageError, SummaryError
from chat_companion.models import ConversationRecord, Message
from chat_companion.services.storage import MemoryKeyValueStore
from chat_companion.store import STORAGE_KEY, TranscriptStore
from chat_companion.summary import SummaryGenerator


class _CountingSummarizer:
    def __init__(self, title="Trip planning"):
        self.title = title
        self.calls = []

    def summarize(self, messages, *, max_length):
        self.calls.append(list(messages))
        return self.title


class _FailingSummarizer:
    def summarize(self, messages, *, max_length):
        raise SummaryError("offline")


def _record(conversation_id, title=None, count=2):
    messages = []
    for i in range(count):
        role = "user" if i % 2 == 0 else "assistant"
        messages.append(Message(role=role, content=f"{role} message {i}"))
    return ConversationRecord(id=conversation_id, title=title, messages=messages)


class TestTranscriptStoreSave(unittest.TestCase):
    def setUp(self):
        self.backend = MemoryKeyValueStore()
        self.store = TranscriptStore(self.backend)

    def test_save_inserts_new_record_at_front(self):
        self.store.save(_record("a", "First"))
        self.store.save(_record("b", "Second"))

        ids = [r.id for r in self.store.list()]
        self.assertEqual(ids, ["b", "a"])

    def test_save_replaces_existing_id_without_growing(self):
        self.store.save(_record("a", "First"))
        self.store.save(_record("b", "Second"))
        self.store.save(_record("a", "First again", count=4))

        records = self.store.list()
        self.assertEqual([r.id for r in records], ["a", "b"])
        self.assertEqual(records[0].title, "First again")
        self.assertEqual(records[0].message_count, 4)

    def test_save_stamps_saved_at_and_message_count(self):
        record = self.store.save(_record("a", "Title", count=3))

        self.assertTrue(record.saved_at.endswith("Z"))
        raw = json.loads(self.backend.get(STORAGE_KEY))
        self.assertEqual(raw[0]["savedAt"], record.saved_at)
        self.assertEqual(raw[0]["messageCount"], 3)

    def test_cap_evicts_least_recently_saved(self):
        store = TranscriptStore(self.backend, max_records=3)
        for conversation_id in ("a", "b", "c", "d"):
            store.save(_record(conversation_id))

        self.assertEqual([r.id for r in store.list()], ["d", "c", "b"])

    def test_default_cap_is_fifty(self):
        for i in range(52):
            self.store.save(_record(f"conv_{i}"))

        records = self.store.list()
        self.assertEqual(len(records), 50)
        self.assertEqual(records[0].id, "conv_51")
        self.assertNotIn("conv_0", {r.id for r in records})
        self.assertNotIn("conv_1", {r.id for r in records})

    def test_corrupt_collection_is_not_overwritten(self):
        self.backend.set(STORAGE_KEY, "{not json")

        with self.assertRaises(StorageError):
            self.store.save(_record("a"))
        self.assertEqual(self.backend.get(STORAGE_KEY), "{not json")
        self.assertEqual(self.store.list(), [])

    def test_non_list_collection_is_rejected(self):
        self.backend.set(STORAGE_KEY, json.dumps({"id": "a"}))

        with self.assertRaises(StorageError):
            self.store.delete("a")
        self.assertEqual(self.store.list(), [])

    def test_malformed_entries_are_skipped_when_listing(self):
        self.backend.set(STORAGE_KEY, json.dumps([{"title": "no id"}, _record("ok").as_dict()]))

        self.assertEqual([r.id for r in self.store.list()], ["ok"])


class TestTranscriptStoreQueries(unittest.TestCase):
    def setUp(self):
        self.store = TranscriptStore(MemoryKeyValueStore())
        self.store.save(_record("a", "Weekend trip to Tokyo"))
        self.store.save(_record("b", "Python packaging"))
        self.store.save(_record("c", None))

    def test_get_returns_record_or_none(self):
        self.assertEqual(self.store.get("b").title, "Python packaging")
        self.assertIsNone(self.store.get("missing"))

    def test_search_is_case_insensitive_on_titles(self):
        self.assertEqual([r.id for r in self.store.search("TOKYO")], ["a"])
        self.assertEqual(self.store.search("nothing here"), [])

    def test_empty_query_matches_everything(self):
        self.assertEqual(len(self.store.search("")), 3)

    def test_delete_reports_whether_anything_was_removed(self):
        self.assertTrue(self.store.delete("b"))
        self.assertFalse(self.store.delete("b"))
        self.assertEqual([r.id for r in self.store.list()], ["c", "a"])

    def test_delete_all_empties_the_collection(self):
        self.store.delete_all()
        self.assertEqual(self.store.list(), [])


class TestTranscriptStoreSummaryPolicy(unittest.TestCase):
    def test_untitled_record_gets_a_generated_title(self):
        summarizer = _CountingSummarizer()
        store = TranscriptStore(MemoryKeyValueStore(), summary=SummaryGenerator(summarizer))

        self.assertEqual(store.summarize(_record("a", None, count=2)), "Trip planning")
        self.assertEqual(len(summarizer.calls), 1)

    def test_existing_title_kept_between_refreshes(self):
        summarizer = _CountingSummarizer()
        store = TranscriptStore(MemoryKeyValueStore(), summary=SummaryGenerator(summarizer))

        self.assertEqual(store.summarize(_record("a", "Old title", count=4)), "Old title")
        self.assertEqual(summarizer.calls, [])

    def test_title_refreshed_on_interval(self):
        summarizer = _CountingSummarizer("New title")
        store = TranscriptStore(MemoryKeyValueStore(), summary=SummaryGenerator(summarizer))

        self.assertEqual(store.summarize(_record("a", "Old title", count=10)), "New title")

    def test_only_first_ten_messages_are_summarized(self):
        summarizer = _CountingSummarizer()
        store = TranscriptStore(MemoryKeyValueStore(), summary=SummaryGenerator(summarizer))

        store.summarize(_record("a", None, count=15))
        self.assertEqual(len(summarizer.calls[0]), 10)

    def test_failing_summarizer_falls_back_to_first_user_message(self):
        store = TranscriptStore(MemoryKeyValueStore(), summary=SummaryGenerator(_FailingSummarizer()))

        self.assertEqual(store.summarize(_record("a", None, count=2)), "user message 0")


if __name__ == "__main__":
    unittest.main()
