"""Core orchestration of the active conversation."""

from __future__ import annotations

import copy
import logging
import threading
from typing import Callable, List, Optional, Sequence

from . import analytics as counters
from .exceptions import AnalyzerError, ChatClientError, StorageError
from .export import write_export
from .interfaces import Analyzer, ChatClient, NotificationSink
from .models import Analysis, Analytics, ConversationRecord, Message, TurnRecord, new_conversation_id, utc_now_iso
from .store import TranscriptStore

logger = logging.getLogger(__name__)


class ConversationSession:
    """
    Owns the in-memory state of the active conversation and runs each turn.

    Compose this class with concrete implementations of the analyzer, chat
    backend, transcript store and notification sink. One instance per
    running client; nothing here is module-level.

    Usage:
        session = ConversationSession(
            analyzer=HttpAnalyzer("http://localhost:3000"),
            chat_client=HttpChatClient("http://localhost:3000"),
            store=TranscriptStore(JsonFileStore("~/.chat_companion")),
            notifier=ConsoleNotifier(),
        )
        reply = session.submit_user_message("Hello!")
        session.close()
    """

    def __init__(
        self,
        *,
        analyzer: Analyzer,
        chat_client: ChatClient,
        store: TranscriptStore,
        notifier: NotificationSink,
        temperature: float = 0.7,
        save_every: int = 1,
        id_factory: Callable[[], str] = new_conversation_id,
    ) -> None:
        self._analyzer = analyzer
        self._chat_client = chat_client
        self._store = store
        self._notifier = notifier
        self._save_every = max(1, save_every)
        self._id_factory = id_factory
        self._temperature = 0.7
        self.temperature = temperature

        self._lock = threading.RLock()
        self._in_flight = threading.Lock()

        self._conversation_id = id_factory()
        self._title: Optional[str] = None
        self._messages: List[Message] = []
        self._turns: List[TurnRecord] = []
        self._analytics = Analytics()
        self._completed_turns = 0

    # -- read-only views -------------------------------------------------

    @property
    def conversation_id(self) -> str:
        return self._conversation_id

    @property
    def title(self) -> Optional[str]:
        return self._title

    @property
    def messages(self) -> Sequence[Message]:
        """Read-only chat history of the active conversation."""
        return tuple(self._messages)

    @property
    def turns(self) -> Sequence[TurnRecord]:
        return tuple(self._turns)

    @property
    def analytics(self) -> Analytics:
        return copy.deepcopy(self._analytics)

    @property
    def in_flight(self) -> bool:
        return self._in_flight.locked()

    @property
    def store(self) -> TranscriptStore:
        return self._store

    @property
    def temperature(self) -> float:
        return self._temperature

    @temperature.setter
    def temperature(self, value: float) -> None:
        if not 0.0 <= value <= 1.0:
            raise ValueError("temperature must be between 0.0 and 1.0")
        self._temperature = float(value)

    # -- turn pipeline ---------------------------------------------------

    def submit_user_message(self, text: str) -> Optional[str]:
        """
        Run one turn and return the assistant reply.

        Returns None when the text is blank, another submission is still
        running, or the chat backend failed (the user message stays recorded).
        """
        message = text.strip()
        if not message:
            return None
        if not self._in_flight.acquire(blocking=False):
            logger.debug("Submission already in flight; ignoring %r", message[:40])
            return None
        try:
            return self._run_turn(message)
        finally:
            self._in_flight.release()

    def _run_turn(self, message: str) -> Optional[str]:
        analysis = self._analyze(message)

        with self._lock:
            conversation_id = self._conversation_id
            self._messages.append(Message(role="user", content=message))
            self._analytics = counters.record_user_message(
                self._analytics, sentiment=analysis.sentiment, intent=analysis.intent
            )
            history = list(self._messages)

        print("[chat] → Sending to chat service...")
        try:
            response = self._chat_client.complete(history, temperature=self._temperature)
        except ChatClientError as exc:
            logger.error("Chat error: %s", exc)
            self._notifier.notify(f"Error: {exc}", "error")
            return None

        reply = response.text
        with self._lock:
            if self._conversation_id != conversation_id:
                logger.info("Conversation switched while waiting for a reply; dropping it")
                return None
            self._messages.append(Message(role="assistant", content=reply))
            self._analytics = counters.record_assistant_message(self._analytics)
            self._turns.append(
                TurnRecord(
                    timestamp=utc_now_iso(),
                    user_text=message,
                    bot_text=reply,
                    sentiment_label=analysis.sentiment,
                    intent_label=analysis.intent,
                    entities=list(analysis.entities),
                )
            )
            self._completed_turns += 1
            save_due = self._completed_turns % self._save_every == 0

        if save_due:
            self.save()
        return reply

    def _analyze(self, text: str) -> Analysis:
        try:
            return self._analyzer.analyze(text)
        except AnalyzerError as exc:
            logger.warning("Analysis failed, using neutral defaults: %s", exc)
            return Analysis.neutral()

    # -- persistence -----------------------------------------------------

    def snapshot(self) -> ConversationRecord:
        with self._lock:
            return ConversationRecord(
                id=self._conversation_id,
                title=self._title,
                messages=copy.deepcopy(self._messages),
                turns=copy.deepcopy(self._turns),
                analytics=copy.deepcopy(self._analytics),
            )

    def save(self) -> bool:
        """Persist the active conversation; failures are logged, never raised."""
        record = self.snapshot()
        if not record.messages:
            return False
        try:
            record.title = self._store.summarize(record)
            self._store.save(record)
        except StorageError as exc:
            logger.error("Could not save conversation %s: %s", record.id, exc)
            return False
        with self._lock:
            if self._conversation_id == record.id:
                self._title = record.title
        return True

    def _reset(self) -> None:
        with self._lock:
            self._conversation_id = self._id_factory()
            self._title = None
            self._messages = []
            self._turns = []
            self._analytics = Analytics()
            self._completed_turns = 0

    def start_new(self) -> str:
        """Save the current conversation (if any) and begin an empty one."""
        if self._messages:
            self.save()
        self._reset()
        logger.info("Started conversation %s", self._conversation_id)
        self._notifier.notify("Started new conversation", "success")
        return self._conversation_id

    def load_existing(self, conversation_id: str) -> bool:
        """Make a stored conversation active. Unknown ids are a silent no-op."""
        record = self._store.get(conversation_id)
        if record is None:
            logger.debug("Conversation %s not found", conversation_id)
            return False

        if self._messages and self._conversation_id != conversation_id:
            self.save()

        with self._lock:
            self._conversation_id = record.id
            self._title = record.title
            self._messages = list(record.messages)
            self._turns = list(record.turns)
            self._analytics = record.analytics
            self._completed_turns = len(record.turns)
        self._notifier.notify("Conversation loaded", "success")
        return True

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a stored conversation; deleting the active one starts afresh."""
        try:
            deleted = self._store.delete(conversation_id)
        except StorageError as exc:
            logger.error("Could not delete conversation %s: %s", conversation_id, exc)
            self._notifier.notify("Could not delete conversation", "error")
            return False

        if conversation_id == self._conversation_id:
            self._reset()
            logger.info("Active conversation deleted; started %s", self._conversation_id)
        if deleted:
            self._notifier.notify("Conversation deleted", "success")
        return deleted

    def delete_all(self) -> None:
        try:
            self._store.delete_all()
        except StorageError as exc:
            logger.error("Could not delete conversations: %s", exc)
            self._notifier.notify("Could not delete conversations", "error")
            return
        self._reset()
        self._notifier.notify("All conversations deleted", "success")

    # -- analytics and housekeeping --------------------------------------

    def record_feedback(self, positive: bool) -> None:
        with self._lock:
            self._analytics = counters.record_feedback(self._analytics, positive=positive)
        if positive:
            self._notifier.notify("Thank you for the feedback!", "success")
        else:
            self._notifier.notify("Feedback recorded. We'll improve!", "info")

    def reset_analytics(self) -> None:
        with self._lock:
            self._analytics = Analytics()
            self._turns = []
        self._notifier.notify("Analytics reset successfully", "success")

    def clear_messages(self) -> None:
        with self._lock:
            self._messages = []
        self._notifier.notify("Chat history cleared", "success")

    def export(self, path: str) -> Optional[str]:
        with self._lock:
            turns = list(self._turns)
            analytics = copy.deepcopy(self._analytics)
        if not turns:
            self._notifier.notify("No conversations to export", "info")
            return None
        try:
            written = write_export(path, turns, analytics)
        except OSError as exc:
            logger.error("Could not export conversation to %s: %s", path, exc)
            self._notifier.notify(f"Could not export conversation: {exc}", "error")
            return None
        self._notifier.notify("Conversation exported successfully", "success")
        return written

    def close(self) -> None:
        """Best-effort synchronous save on teardown."""
        if self.save():
            logger.info("Conversation %s flushed on shutdown", self._conversation_id)
