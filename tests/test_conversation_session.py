import itertools
import os
import tempfile
import threading
import unittest

from chat_companion.exceptions import AnalyzerError, ChatClientError, StorageError
from chat_companion.models import NEUTRAL, POSITIVE, THUMBS_DOWN, THUMBS_UP, Analysis, ChatResponse
from chat_companion.services.storage import MemoryKeyValueStore
from chat_companion.session import ConversationSession
from chat_companion.store import STORAGE_KEY, TranscriptStore


class _FakeAnalyzer:
    def __init__(self, fail=False):
        self.fail = fail

    def analyze(self, text):
        if self.fail:
            raise AnalyzerError("analyzer down")
        return Analysis(sentiment=POSITIVE, intent="greeting", entities=["📧 a@b.co"])


class _FakeChatClient:
    def __init__(self, replies=None, error=None):
        self.replies = list(replies or ["Hi there!"])
        self.error = error
        self.requests = []

    def complete(self, messages, *, temperature):
        self.requests.append(([m.as_dict() for m in messages], temperature))
        if self.error is not None:
            raise self.error
        return ChatResponse(text=self.replies.pop(0) if self.replies else "ok", raw={})


class _RecordingNotifier:
    def __init__(self):
        self.notices = []

    def notify(self, message, level="info"):
        self.notices.append((message, level))


class _BrokenBackend:
    def get(self, key):
        return None

    def set(self, key, value):
        raise StorageError("disk full")


def _ids():
    counter = itertools.count(1)
    return lambda: f"conv_{next(counter)}"


class TestConversationSessionTurns(unittest.TestCase):
    def setUp(self):
        self.backend = MemoryKeyValueStore()
        self.store = TranscriptStore(self.backend)
        self.notifier = _RecordingNotifier()

    def _session(self, analyzer=None, chat_client=None, **kwargs):
        return ConversationSession(
            analyzer=analyzer or _FakeAnalyzer(),
            chat_client=chat_client or _FakeChatClient(),
            store=self.store,
            notifier=self.notifier,
            id_factory=_ids(),
            **kwargs,
        )

    def test_successful_turn_records_messages_turn_and_analytics(self):
        chat = _FakeChatClient(["Hello!"])
        session = self._session(chat_client=chat, temperature=0.4)

        reply = session.submit_user_message("  hi there  ")

        self.assertEqual(reply, "Hello!")
        self.assertEqual([(m.role, m.content) for m in session.messages], [("user", "hi there"), ("assistant", "Hello!")])
        self.assertEqual(chat.requests[0], ([{"role": "user", "content": "hi there"}], 0.4))
        turn = session.turns[0]
        self.assertEqual(turn.user_text, "hi there")
        self.assertEqual(turn.bot_text, "Hello!")
        self.assertEqual(turn.sentiment_label, POSITIVE)
        self.assertEqual(turn.entities, ["📧 a@b.co"])
        stats = session.analytics
        self.assertEqual((stats.total_messages, stats.user_messages, stats.bot_messages), (2, 1, 1))
        self.assertEqual(stats.intents, {"greeting": 1})

    def test_turn_is_saved_with_title(self):
        session = self._session()
        session.submit_user_message("Plan my trip")

        saved = self.store.get("conv_1")
        self.assertIsNotNone(saved)
        self.assertEqual(saved.title, "Plan my trip")
        self.assertEqual(saved.message_count, 2)
        self.assertEqual(session.title, "Plan my trip")

    def test_blank_input_is_ignored(self):
        chat = _FakeChatClient()
        session = self._session(chat_client=chat)

        self.assertIsNone(session.submit_user_message("   "))
        self.assertEqual(session.messages, ())
        self.assertEqual(chat.requests, [])

    def test_chat_failure_keeps_only_the_user_message(self):
        session = self._session(chat_client=_FakeChatClient(error=ChatClientError("model not loaded")))

        self.assertIsNone(session.submit_user_message("hello"))

        self.assertEqual([(m.role, m.content) for m in session.messages], [("user", "hello")])
        self.assertEqual(session.turns, ())
        self.assertIn(("Error: model not loaded", "error"), self.notifier.notices)
        self.assertIsNone(self.backend.get(STORAGE_KEY))

    def test_analyzer_failure_uses_neutral_defaults(self):
        session = self._session(analyzer=_FakeAnalyzer(fail=True))

        self.assertEqual(session.submit_user_message("what now"), "Hi there!")

        turn = session.turns[0]
        self.assertEqual(turn.sentiment_label, NEUTRAL)
        self.assertEqual(turn.intent_label, "statement")
        self.assertEqual(turn.entities, [])

    def test_second_submission_while_in_flight_is_a_no_op(self):
        entered = threading.Event()
        release = threading.Event()

        class _SlowClient:
            calls = 0

            def complete(self, messages, *, temperature):
                _SlowClient.calls += 1
                entered.set()
                release.wait(5)
                return ChatResponse(text="done", raw={})

        session = self._session(chat_client=_SlowClient())
        worker = threading.Thread(target=session.submit_user_message, args=("first",))
        worker.start()
        self.assertTrue(entered.wait(5))

        self.assertTrue(session.in_flight)
        self.assertIsNone(session.submit_user_message("second"))
        release.set()
        worker.join(5)

        self.assertEqual(_SlowClient.calls, 1)
        self.assertEqual([m.content for m in session.messages], ["first", "done"])
        self.assertFalse(session.in_flight)

    def test_save_failure_does_not_lose_the_reply(self):
        session = ConversationSession(
            analyzer=_FakeAnalyzer(),
            chat_client=_FakeChatClient(["Sure"]),
            store=TranscriptStore(_BrokenBackend()),
            notifier=self.notifier,
        )

        self.assertEqual(session.submit_user_message("hi"), "Sure")
        self.assertEqual(len(session.messages), 2)

    def test_save_every_controls_cadence(self):
        session = self._session(save_every=2)

        session.submit_user_message("one")
        self.assertIsNone(self.store.get("conv_1"))
        session.submit_user_message("two")
        self.assertEqual(self.store.get("conv_1").message_count, 4)

    def test_temperature_is_validated(self):
        session = self._session()
        with self.assertRaises(ValueError):
            session.temperature = 1.5
        session.temperature = 0.2
        self.assertEqual(session.temperature, 0.2)


class TestConversationSessionLifecycle(unittest.TestCase):
    def setUp(self):
        self.store = TranscriptStore(MemoryKeyValueStore())
        self.notifier = _RecordingNotifier()
        self.session = ConversationSession(
            analyzer=_FakeAnalyzer(),
            chat_client=_FakeChatClient(["r1", "r2", "r3"]),
            store=self.store,
            notifier=self.notifier,
            save_every=5,
            id_factory=_ids(),
        )

    def test_start_new_saves_current_and_resets(self):
        self.session.submit_user_message("first conversation")

        new_id = self.session.start_new()

        self.assertEqual(new_id, "conv_2")
        self.assertEqual(self.session.messages, ())
        self.assertEqual(self.session.analytics.total_messages, 0)
        self.assertEqual(self.store.get("conv_1").message_count, 2)

    def test_load_existing_restores_messages_turns_and_analytics(self):
        self.session.submit_user_message("remember me")
        self.session.start_new()

        self.assertTrue(self.session.load_existing("conv_1"))

        self.assertEqual(self.session.conversation_id, "conv_1")
        self.assertEqual([m.content for m in self.session.messages], ["remember me", "r1"])
        self.assertEqual(len(self.session.turns), 1)
        self.assertEqual(self.session.analytics.user_messages, 1)

    def test_load_unknown_id_is_silent_no_op(self):
        self.session.submit_user_message("keep this")
        before = self.session.conversation_id

        self.assertFalse(self.session.load_existing("does-not-exist"))

        self.assertEqual(self.session.conversation_id, before)
        self.assertEqual(len(self.session.messages), 2)

    def test_deleting_active_conversation_starts_fresh(self):
        self.session.submit_user_message("hello")
        self.session.save()

        self.assertTrue(self.session.delete_conversation("conv_1"))

        self.assertNotEqual(self.session.conversation_id, "conv_1")
        self.assertEqual(self.session.messages, ())
        self.assertIsNone(self.store.get("conv_1"))

    def test_delete_all_clears_store_and_session(self):
        self.session.submit_user_message("hello")
        self.session.save()

        self.session.delete_all()

        self.assertEqual(self.store.list(), [])
        self.assertEqual(self.session.messages, ())

    def test_feedback_counts_and_notices(self):
        self.session.record_feedback(True)
        self.session.record_feedback(False)
        self.session.record_feedback(True)

        self.assertEqual(self.session.analytics.feedback, {THUMBS_UP: 2, THUMBS_DOWN: 1})
        self.assertIn(("Thank you for the feedback!", "success"), self.notifier.notices)

    def test_reset_analytics_clears_counters_and_turns_but_not_messages(self):
        self.session.submit_user_message("hello")

        self.session.reset_analytics()

        self.assertEqual(self.session.analytics.total_messages, 0)
        self.assertEqual(self.session.turns, ())
        self.assertEqual(len(self.session.messages), 2)

    def test_clear_messages_keeps_analytics(self):
        self.session.submit_user_message("hello")

        self.session.clear_messages()

        self.assertEqual(self.session.messages, ())
        self.assertEqual(self.session.analytics.user_messages, 1)

    def test_export_with_no_turns_only_notifies(self):
        self.assertIsNone(self.session.export(tempfile.gettempdir()))
        self.assertIn(("No conversations to export", "info"), self.notifier.notices)

    def test_export_to_missing_directory_notifies_instead_of_raising(self):
        self.session.submit_user_message("export me")
        with tempfile.TemporaryDirectory() as directory:
            target = os.path.join(directory, "missing", "out.json")

            self.assertIsNone(self.session.export(target))

        level = self.notifier.notices[-1][1]
        self.assertEqual(level, "error")
        self.assertTrue(self.notifier.notices[-1][0].startswith("Could not export conversation:"))
        self.assertEqual(len(self.session.turns), 1)

    def test_export_writes_file(self):
        self.session.submit_user_message("export me")
        with tempfile.TemporaryDirectory() as directory:
            path = self.session.export(directory)
            self.assertTrue(os.path.exists(path))
            self.assertTrue(os.path.basename(path).startswith("conversation_"))

    def test_close_flushes_unsaved_messages(self):
        self.session.submit_user_message("unsaved")
        self.assertIsNone(self.store.get("conv_1"))

        self.session.close()

        self.assertEqual(self.store.get("conv_1").message_count, 2)

    def test_close_with_empty_conversation_saves_nothing(self):
        self.session.close()
        self.assertEqual(self.store.list(), [])


if __name__ == "__main__":
    unittest.main()
