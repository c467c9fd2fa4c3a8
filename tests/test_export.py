import json
import os
import tempfile
import unittest
from datetime import datetime

from chat_companion.export import build_export, default_export_name, load_export, write_export
from chat_companion.models import POSITIVE, Analytics, TurnRecord


def _turns():
    return [
        TurnRecord(
            timestamp="2026-10-19T08:00:00.000Z",
            user_text="Hi, I'm Sam",
            bot_text="Nice to meet you, Sam!",
            sentiment_label=POSITIVE,
            intent_label="greeting",
            entities=["📧 sam@example.com"],
        )
    ]


class TestExport(unittest.TestCase):
    def test_document_shape(self):
        stats = Analytics(total_messages=2, conversation_start="2026-10-19T07:59:00.000Z")
        document = build_export(_turns(), stats)

        self.assertEqual(document["metadata"]["application"], "AI Chatbot Platform")
        self.assertEqual(document["metadata"]["version"], "1.0.0")
        self.assertEqual(document["metadata"]["conversationStart"], "2026-10-19T07:59:00.000Z")
        self.assertEqual(document["conversations"][0]["userText"], "Hi, I'm Sam")
        self.assertEqual(document["analytics"]["totalMessages"], 2)

    def test_default_name_uses_filesystem_safe_timestamp(self):
        name = default_export_name(datetime(2026, 10, 19, 8, 15, 30))
        self.assertEqual(name, "conversation_2026-10-19T08-15-30.json")

    def test_written_file_can_be_loaded_back(self):
        with tempfile.TemporaryDirectory() as directory:
            path = write_export(os.path.join(directory, "out.json"), _turns(), Analytics(user_messages=1))

            with open(path, encoding="utf-8") as f:
                self.assertIn("📧 sam@example.com", f.read())
            loaded = load_export(path)

        self.assertEqual(loaded["conversations"], _turns())
        self.assertEqual(loaded["analytics"].user_messages, 1)

    def test_directory_target_gets_generated_name(self):
        with tempfile.TemporaryDirectory() as directory:
            path = write_export(directory, _turns(), Analytics())
            self.assertEqual(os.path.dirname(path), directory)
            with open(path, encoding="utf-8") as f:
                self.assertEqual(len(json.load(f)["conversations"]), 1)


if __name__ == "__main__":
    unittest.main()
