import unittest

from chat_companion.analysis import KeywordAnalyzer, analyze_sentiment, detect_intent, extract_entities
from chat_companion.models import NEGATIVE, NEUTRAL, POSITIVE


class TestKeywordAnalysis(unittest.TestCase):
    def test_sentiment_by_keyword_balance(self):
        self.assertEqual(analyze_sentiment("This is great, I love it"), POSITIVE)
        self.assertEqual(analyze_sentiment("Terrible service, I hate waiting"), NEGATIVE)
        self.assertEqual(analyze_sentiment("The meeting is at noon"), NEUTRAL)
        self.assertEqual(analyze_sentiment("good but bad"), NEUTRAL)

    def test_intent_rules_in_priority_order(self):
        self.assertEqual(detect_intent("Hello, can you help me?"), "greeting")
        self.assertEqual(detect_intent("I need support with my order"), "help_request")
        self.assertEqual(detect_intent("Thank you so much"), "gratitude")
        self.assertEqual(detect_intent("Where do we go now?"), "question")
        self.assertEqual(detect_intent("The sky is blue."), "statement")

    def test_entities_cover_email_url_and_phone(self):
        entities = extract_entities("Mail me at jo@example.com, see https://example.org/docs or call 555-123-4567")

        self.assertIn("📧 jo@example.com", entities)
        self.assertIn("🔗 https://example.org/docs", entities)
        self.assertIn("📱 555-123-4567", entities)

    def test_url_keeps_path_and_query(self):
        entities = extract_entities("Docs at http://localhost:3000/api/chat?model=llama3&x=1 today")
        self.assertEqual(entities, ["🔗 http://localhost:3000/api/chat?model=llama3&x=1"])

    def test_analyzer_combines_all_three(self):
        result = KeywordAnalyzer().analyze("Thanks! My email is a@b.io")

        self.assertEqual(result.sentiment, POSITIVE)
        self.assertEqual(result.intent, "gratitude")
        self.assertEqual(result.entities, ["📧 a@b.io"])


if __name__ == "__main__":
    unittest.main()
