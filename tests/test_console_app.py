import io
import unittest
from contextlib import redirect_stdout

from chat_companion.analysis import KeywordAnalyzer
from chat_companion.cli import ConsoleApp, build_services, parse_args
from chat_companion.config import AppConfig
from chat_companion.models import ChatResponse
from chat_companion.services.analyzer_client import HttpAnalyzer
from chat_companion.services.chat_ollama import OllamaChatClient
from chat_companion.services.storage import MemoryKeyValueStore
from chat_companion.session import ConversationSession
from chat_companion.store import TranscriptStore


class _EchoClient:
    def complete(self, messages, *, temperature):
        return ChatResponse(text=f"echo: {messages[-1].content}", raw={})


class _RecordingNotifier:
    def __init__(self):
        self.notices = []

    def notify(self, message, level="info"):
        self.notices.append((message, level))


def _scripted(lines):
    remaining = list(lines)

    def _input(prompt):
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    return _input


class TestConsoleApp(unittest.TestCase):
    def setUp(self):
        self.notifier = _RecordingNotifier()
        self.store = TranscriptStore(MemoryKeyValueStore())
        self.session = ConversationSession(
            analyzer=KeywordAnalyzer(),
            chat_client=_EchoClient(),
            store=self.store,
            notifier=self.notifier,
        )

    def _run(self, lines):
        app = ConsoleApp(self.session, self.notifier, input_fn=_scripted(lines))
        out = io.StringIO()
        with redirect_stdout(out):
            app.run()
        return app, out.getvalue()

    def test_typed_text_is_sent_and_reply_printed(self):
        _, output = self._run(["hello there"])

        self.assertIn("Assistant: echo: hello there", output)
        self.assertEqual(len(self.store.list()), 1)

    def test_quit_stops_the_loop(self):
        _, output = self._run(["/quit", "never sent"])
        self.assertNotIn("never sent", output)
        self.assertEqual(self.session.messages, ())

    def test_history_and_load_by_index(self):
        self._run(["first topic", "/new", "second topic", "/history", "/load 2"])

        self.assertEqual(self.session.messages[0].content, "first topic")

    def test_destructive_commands_require_confirmation(self):
        self._run(["keep me", "/delete-all", "n"])
        self.assertEqual(len(self.store.list()), 1)

        self._run(["/delete-all", "y"])
        self.assertEqual(self.store.list(), [])

    def test_temperature_command(self):
        self._run(["/temp 0.3", "/temp warm"])

        self.assertEqual(self.session.temperature, 0.3)
        self.assertEqual(self.notifier.notices[-1][1], "error")

    def test_bad_export_path_keeps_the_loop_running(self):
        _, output = self._run(["hello", "/export /nonexistent_dir/x/out.json", "after export"])

        self.assertIn("Assistant: echo: after export", output)
        self.assertTrue(any(m.startswith("Could not export conversation:") for m, _ in self.notifier.notices))

    def test_voice_commands_without_voice_channel_warn(self):
        self._run(["/rec"])
        self.assertEqual(self.notifier.notices[-1][1], "warning")

    def test_stats_prints_counters(self):
        _, output = self._run(["thanks, great work", "/good", "/stats"])

        self.assertIn("Messages: 2 total, 1 from you", output)
        self.assertIn("gratitude 1", output)
        self.assertIn("Satisfaction: 100.0%", output)


class TestWiring(unittest.TestCase):
    def _config(self, backend):
        return AppConfig(
            api_base_url="http://localhost:3000",
            backend=backend,
            ollama_url="http://localhost:11434",
            model="llama3.2:latest",
            system_prompt="Be brief.",
            temperature=0.7,
            chat_timeout=60,
            analyze_timeout=10,
            summary_timeout=30,
            data_dir="/tmp/companion",
            max_conversations=50,
            save_every=1,
            summary_refresh=5,
            realtime_voice=False,
            voice_url="ws://localhost:8765",
            voice_sample_rate=16000,
            submit_debounce=0.5,
            speak_replies=True,
            whisper_url=None,
            record_seconds=15,
            notify_seconds=3,
        )

    def test_server_backend_uses_http_services(self):
        analyzer, _, _ = build_services(self._config("server"))
        self.assertIsInstance(analyzer, HttpAnalyzer)

    def test_ollama_backend_analyzes_locally(self):
        analyzer, chat_client, _ = build_services(self._config("ollama"))
        self.assertIsInstance(analyzer, KeywordAnalyzer)
        self.assertIsInstance(chat_client, OllamaChatClient)

    def test_unknown_backend_is_rejected(self):
        with self.assertRaises(RuntimeError):
            build_services(self._config("cloud"))

    def test_parse_args(self):
        args = parse_args(["--verbose", "--backend", "ollama", "--no-voice"])
        self.assertTrue(args.verbose)
        self.assertEqual(args.backend, "ollama")
        self.assertFalse(args.voice)


if __name__ == "__main__":
    unittest.main()
