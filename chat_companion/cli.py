"""Console front end for the chat client."""

from __future__ import annotations

import argparse
import logging
import shlex
from typing import Callable, List, Optional

from . import analytics as counters
from .analysis import KeywordAnalyzer
from .config import AppConfig
from .interfaces import Analyzer, ChatClient, NotificationSink, Summarizer
from .models import ConversationRecord
from .services.analyzer_client import HttpAnalyzer
from .services.chat_client import HttpChatClient
from .services.chat_ollama import OllamaChatClient, OllamaSummarizer
from .services.mic_capture import SoundDeviceCapture
from .services.mic_recorder import SoundDeviceRecorder
from .services.notify import ConsoleNotifier
from .services.playback import SoundDevicePlayer
from .services.storage import JsonFileStore
from .services.stt_remote import RemoteTranscription
from .services.summarizer_client import HttpSummarizer
from .services.voice_ws import WebSocketTransport
from .session import ConversationSession
from .store import TranscriptStore
from .summary import SummaryGenerator
from .voice.dictation import DictationSession
from .voice.machine import VoiceState
from .voice.session import VoiceSession

logger = logging.getLogger(__name__)

HELP = """Commands:
  /new                 start a new conversation
  /history             list saved conversations
  /search <text>       search saved conversation titles
  /load <id|#>         open a saved conversation
  /delete <id|#>       delete a saved conversation
  /delete-all          delete every saved conversation
  /clear               clear the messages on screen
  /stats               show analytics for this conversation
  /reset-analytics     reset analytics and turn history
  /good, /bad          rate the last reply
  /temp <0.0-1.0>      set the sampling temperature
  /export [path]       export turns and analytics as JSON
  /voice, /hangup      connect / disconnect the realtime voice channel
  /rec, /stop          start / stop streaming the microphone
  /speak <text>        have the voice service read text aloud
  /listen              dictate one message (when realtime voice is off)
  /quit                exit"""


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


class ConsoleApp:
    """
    Read-eval loop around one :class:`ConversationSession`.

    Voice input (realtime or dictation) feeds the same submit path as typed
    text. Destructive commands ask for confirmation first.
    """

    def __init__(
        self,
        session: ConversationSession,
        notifier: NotificationSink,
        *,
        speak_replies: bool = True,
        input_fn: Callable[[str], str] = input,
    ) -> None:
        self.session = session
        self.voice: Optional[VoiceSession] = None
        self.dictation: Optional[DictationSession] = None
        self._notifier = notifier
        self._speak_replies = speak_replies
        self._input = input_fn
        self._listing: List[ConversationRecord] = []

    def send(self, text: str) -> Optional[str]:
        reply = self.session.submit_user_message(text)
        if reply is None:
            return None
        print(f"Assistant: {reply}")
        if self._speak_replies and self.voice is not None and self.voice.state.is_connected:
            self.voice.request_speech(reply)
        return reply

    def submit_recognized(self, text: str) -> None:
        print(f"\nYou (voice): {text}")
        self.send(text)

    def show_hint(self, text: str) -> None:
        if text:
            print(f"[voice] {text}")

    def show_status(self, state: VoiceState) -> None:
        print(f"[voice] status: {state.label}")

    def run(self) -> None:
        print(f"Conversation {self.session.conversation_id}. Type /help for commands.")
        while True:
            try:
                line = self._input("You: ").strip()
            except EOFError:
                return
            if not line:
                continue
            if line.startswith("/"):
                if not self.handle_command(line):
                    return
                continue
            self.send(line)

    def _confirm(self, prompt: str) -> bool:
        try:
            answer = self._input(f"{prompt} [y/N] ").strip().lower()
        except EOFError:
            return False
        return answer in {"y", "yes"}

    def _resolve_id(self, ref: str) -> str:
        if ref.isdigit() and 0 < int(ref) <= len(self._listing):
            return self._listing[int(ref) - 1].id
        return ref

    def _print_records(self, records: List[ConversationRecord]) -> None:
        self._listing = records
        if not records:
            print("No conversations yet")
            return
        for index, record in enumerate(records, start=1):
            marker = "*" if record.id == self.session.conversation_id else " "
            print(f"{marker}{index:>3}. {record.title or 'Untitled Conversation'} "
                  f"({record.message_count} messages, {record.saved_at or 'unsaved'}) [{record.id}]")

    def _print_stats(self) -> None:
        stats = self.session.analytics
        print(f"Messages: {stats.total_messages} total, {stats.user_messages} from you")
        print("Sentiment: " + ", ".join(f"{label} {count}" for label, count in stats.sentiments.items()))
        intents = counters.top_intents(stats)
        if intents:
            print("Intents: " + ", ".join(f"{name} {count}" for name, count in intents))
        trend = counters.sentiment_trend(self.session.turns)
        if trend:
            print("Sentiment trend: " + " ".join(f"{score:+d}" for score in trend))
        score = counters.satisfaction(stats)
        if score is not None:
            print(f"Satisfaction: {score:.1f}%")

    def handle_command(self, line: str) -> bool:
        """Run one slash command; returns False when the app should exit."""
        try:
            parts = shlex.split(line)
        except ValueError:
            parts = line.split()
        command, args = parts[0].lower(), parts[1:]
        rest = line.split(maxsplit=1)[1] if len(parts) > 1 else ""

        if command in {"/quit", "/exit"}:
            return False
        if command == "/help":
            print(HELP)
        elif command == "/new":
            self.session.start_new()
        elif command == "/history":
            self._print_records(self.session.store.list())
        elif command == "/search":
            self._print_records(self.session.store.search(rest))
        elif command == "/load" and args:
            if not self.session.load_existing(self._resolve_id(args[0])):
                print("No such conversation")
                return True
            for message in self.session.messages:
                print(f"{'You' if message.role == 'user' else 'Assistant'}: {message.content}")
        elif command == "/delete" and args:
            if self._confirm("Delete this conversation?"):
                self.session.delete_conversation(self._resolve_id(args[0]))
        elif command == "/delete-all":
            if self._confirm("Delete ALL conversations? This cannot be undone."):
                self.session.delete_all()
        elif command == "/clear":
            if self._confirm("Clear all messages? This action cannot be undone."):
                self.session.clear_messages()
        elif command == "/reset-analytics":
            if self._confirm("Reset all analytics data? This cannot be undone."):
                self.session.reset_analytics()
        elif command == "/stats":
            self._print_stats()
        elif command in {"/good", "/bad"}:
            self.session.record_feedback(command == "/good")
        elif command == "/temp" and args:
            try:
                self.session.temperature = float(args[0])
                print(f"Temperature: {self.session.temperature:.1f}")
            except ValueError:
                self._notifier.notify("Temperature must be a number between 0.0 and 1.0", "error")
        elif command == "/export":
            self.session.export(args[0] if args else ".")
        elif command in {"/voice", "/hangup", "/rec", "/stop", "/speak"}:
            self._voice_command(command, rest)
        elif command == "/listen":
            if self.dictation is None:
                self._notifier.notify("Dictation is not available", "warning")
            else:
                self.dictation.listen()
        else:
            print(HELP)
        return True

    def _voice_command(self, command: str, text: str) -> None:
        if self.voice is None:
            self._notifier.notify("Realtime voice is disabled (set COMPANION_REALTIME_VOICE=true)", "warning")
            return
        if command == "/voice":
            self.voice.connect()
        elif command == "/hangup":
            self.voice.disconnect()
        elif command == "/rec":
            self.voice.start_recording()
        elif command == "/stop":
            self.voice.stop_recording()
        elif command == "/speak":
            self.voice.request_speech(text)

    def shutdown(self) -> None:
        if self.voice is not None:
            self.voice.cancel_pending_submit()
            self.voice.disconnect()
        self.session.close()


def build_services(config: AppConfig) -> "tuple[Analyzer, ChatClient, Summarizer]":
    if config.backend == "ollama":
        return (
            KeywordAnalyzer(),
            OllamaChatClient(
                config.ollama_url,
                model=config.model,
                system_prompt=config.system_prompt,
                timeout=config.chat_timeout,
            ),
            OllamaSummarizer(config.ollama_url, model=config.model, timeout=config.summary_timeout),
        )
    if config.backend != "server":
        raise RuntimeError("COMPANION_BACKEND must be 'server' or 'ollama'.")
    return (
        HttpAnalyzer(config.api_base_url, timeout=config.analyze_timeout),
        HttpChatClient(config.api_base_url, timeout=config.chat_timeout),
        HttpSummarizer(config.api_base_url, timeout=config.summary_timeout),
    )


def build_app(config: AppConfig) -> ConsoleApp:
    """Wire up the session plus whichever speech input the config selects."""
    analyzer, chat_client, summarizer = build_services(config)
    notifier = ConsoleNotifier(lifetime=config.notify_seconds)
    store = TranscriptStore(
        JsonFileStore(config.data_dir),
        summary=SummaryGenerator(summarizer),
        max_records=config.max_conversations,
        summary_refresh=config.summary_refresh,
    )
    session = ConversationSession(
        analyzer=analyzer,
        chat_client=chat_client,
        store=store,
        notifier=notifier,
        temperature=config.temperature,
        save_every=config.save_every,
    )
    app = ConsoleApp(session, notifier, speak_replies=config.speak_replies)

    if config.realtime_voice:
        app.voice = VoiceSession(
            url=config.voice_url,
            transport=WebSocketTransport(),
            capture=SoundDeviceCapture(sample_rate=config.voice_sample_rate),
            player=SoundDevicePlayer(default_rate=config.voice_sample_rate),
            notifier=notifier,
            on_transcript=app.submit_recognized,
            on_hint=app.show_hint,
            on_status=app.show_status,
            submit_delay=config.submit_debounce,
        )
    elif config.whisper_url:
        app.dictation = DictationSession(
            recorder=SoundDeviceRecorder(max_seconds=config.record_seconds),
            stt=RemoteTranscription(base_url=config.whisper_url),
            notifier=notifier,
            on_transcript=app.submit_recognized,
            on_hint=app.show_hint,
        )
    return app


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with a local language model from the console.")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--backend",
        choices=["server", "ollama"],
        help="Override COMPANION_BACKEND.",
    )
    parser.add_argument(
        "--voice",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Override COMPANION_REALTIME_VOICE.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    config = AppConfig.from_env()
    if args.backend:
        config.backend = args.backend
    if args.voice is not None:
        config.realtime_voice = args.voice
    logger.debug("Backend=%s realtime_voice=%s data_dir=%s", config.backend, config.realtime_voice, config.data_dir)
    app = build_app(config)
    try:
        app.run()
    except KeyboardInterrupt:
        print()
    finally:
        app.shutdown()


if __name__ == "__main__":
    main()
