import unittest

from chat_companion.exceptions import MicrophoneUnavailable, TranscriptionError
from chat_companion.models import CapturedAudio
from chat_companion.voice.dictation import DictationSession


class _FakeRecorder:
    def __init__(self, audio=None, error=None):
        self.audio = audio
        self.error = error

    def record(self):
        if self.error is not None:
            raise self.error
        return self.audio


class _FakeSTT:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error

    def transcribe(self, audio, *, language=None):
        if self.error is not None:
            raise self.error
        return self.text


class _RecordingNotifier:
    def __init__(self):
        self.notices = []

    def notify(self, message, level="info"):
        self.notices.append((message, level))


class TestDictationSession(unittest.TestCase):
    def setUp(self):
        self.notifier = _RecordingNotifier()
        self.submitted = []
        self.hints = []

    def _session(self, recorder, stt):
        return DictationSession(
            recorder=recorder,
            stt=stt,
            notifier=self.notifier,
            on_transcript=self.submitted.append,
            on_hint=self.hints.append,
        )

    def test_recognized_text_is_submitted(self):
        audio = CapturedAudio(data=b"\x00\x01" * 100, sample_rate=16000)
        text = self._session(_FakeRecorder(audio), _FakeSTT("  what time is it ")).listen()

        self.assertEqual(text, "what time is it")
        self.assertEqual(self.submitted, ["what time is it"])
        self.assertEqual(self.hints, ["Listening...", ""])

    def test_missing_microphone_notifies(self):
        result = self._session(_FakeRecorder(error=MicrophoneUnavailable("denied")), _FakeSTT("x")).listen()

        self.assertIsNone(result)
        self.assertIn(("Microphone unavailable: denied", "error"), self.notifier.notices)
        self.assertEqual(self.hints[-1], "")

    def test_empty_recognition_is_reported(self):
        audio = CapturedAudio(data=b"\x00\x01", sample_rate=16000)
        self.assertIsNone(self._session(_FakeRecorder(audio), _FakeSTT("   ")).listen())
        self.assertIn(("No speech recognized. Please try again.", "warning"), self.notifier.notices)
        self.assertEqual(self.submitted, [])

    def test_transcription_failure_is_reported(self):
        audio = CapturedAudio(data=b"\x00\x01", sample_rate=16000)
        stt = _FakeSTT(error=TranscriptionError("service down"))

        self.assertIsNone(self._session(_FakeRecorder(audio), stt).listen())
        self.assertEqual(self.notifier.notices[-1][1], "error")


if __name__ == "__main__":
    unittest.main()
