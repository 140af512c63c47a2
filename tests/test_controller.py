#!/usr/bin/env python3
"""
Chat Orchestrator Tests

PURPOSE:
    Branch order and response types of Controller.handle_message with the
    catalog search, context builder and gateway replaced by mocks.

TEST COVERAGE:
    - Explicit catalog search (found / not found)
    - Book questions (AI answer / guidance fallback)
    - Rule-based answers and AI escalation
    - Error boundary

USAGE:
    Run from project root: python -m pytest tests/test_controller.py -v
"""

import unittest
from unittest.mock import MagicMock

from librarian.app.config import Config
from librarian.app.controller import Controller
from librarian.schemas.io_models import ChatHistoryItem, ResponseType
from librarian.schemas.metadata_models import LibraryContext, ScoredBook, SearchResult


class TestController(unittest.TestCase):

    def setUp(self):
        self.search = MagicMock()
        self.search.search.return_value = SearchResult(
            search_term="sejarah indonesia",
            books=[ScoredBook(id=1, title="Sejarah Indonesia Modern", author="M.C. Ricklefs",
                              publication_year="1991", relevance_score=6)],
            total_books=1,
            has_results=True,
        )
        self.context_builder = MagicMock()
        self.context_builder.smart_context.return_value = LibraryContext(search_term="arsip")
        self.gateway = MagicMock()
        self.gateway.complete.return_value = None
        self.controller = Controller(search=self.search, context_builder=self.context_builder,
                                     gateway=self.gateway)

    def test_explicit_search_returns_results(self):
        response = self.controller.handle_message("cari buku sejarah indonesia")

        self.assertEqual(response.type, ResponseType.book_search)
        self.assertEqual(response.confidence, 0.9)
        self.assertIn("Sejarah Indonesia Modern", response.text)
        self.search.search.assert_called_once_with("sejarah indonesia")
        self.gateway.complete.assert_not_called()

    def test_explicit_search_without_results_does_not_fall_through(self):
        self.search.search.return_value = SearchResult(search_term="kapal selam")

        response = self.controller.handle_message("cari buku kapal selam")

        self.assertEqual(response.type, ResponseType.book_search)
        self.assertEqual(response.confidence, 0.9)
        self.assertIn("Maaf", response.text)
        self.gateway.complete.assert_not_called()

    def test_search_phrase_without_keyword_is_not_a_search(self):
        response = self.controller.handle_message("cari buku")

        self.search.search.assert_not_called()
        self.assertEqual(response.type, ResponseType.rule_based)

    def test_book_question_answered_by_ai(self):
        self.gateway.complete.return_value = "Babad Tanah Djawi adalah kronik sejarah Jawa."

        response = self.controller.handle_message("apa isi buku Babad Tanah Djawi?")

        self.assertEqual(response.type, ResponseType.book_detail)
        self.assertEqual(response.confidence, 0.8)
        self.search.search.assert_called_once_with("babad tanah djawi")
        prompt = self.gateway.complete.call_args[0][0]
        self.assertIn("Sejarah Indonesia Modern", prompt)

    def test_book_question_without_ai_returns_guidance(self):
        response = self.controller.handle_message("apa isi buku Babad Tanah Djawi?")

        self.assertEqual(response.type, ResponseType.rule_based)
        self.assertEqual(response.confidence, 0.5)
        self.assertTrue(response.text)

    def test_greeting_never_escalates(self):
        controller = Controller(search=self.search, context_builder=self.context_builder,
                                gateway=self.gateway, rules=())

        response = controller.handle_message("halo")

        self.assertEqual(response.type, ResponseType.rule_based)
        self.assertEqual(response.confidence, 0.1)
        self.gateway.complete.assert_not_called()

    def test_confident_rule_answer(self):
        response = self.controller.handle_message("jam buka")

        self.assertEqual(response.type, ResponseType.rule_based)
        self.assertEqual(response.confidence, 0.72)
        self.assertIn("Senin-Jumat", response.text)

    def test_complex_message_escalates_with_history(self):
        self.gateway.complete.return_value = "Arsip digital bisa diakses melalui website kami."
        history = [
            ChatHistoryItem(text="pesan lama sekali", is_bot=False),
            ChatHistoryItem(text="halo", is_bot=False),
            ChatHistoryItem(text="Halo! Ada yang bisa dibantu?", is_bot=True),
        ]

        response = self.controller.handle_message(
            "bagaimana cara mengakses arsip digital koleksi belanda dari rumah?", history)

        self.assertEqual(response.type, ResponseType.ai_generated)
        self.assertEqual(response.confidence, 0.8)
        prompt = self.gateway.complete.call_args[0][0]
        self.assertIn("Asisten: Halo! Ada yang bisa dibantu?", prompt)
        self.assertIn("Pengunjung: halo", prompt)
        self.assertNotIn("pesan lama sekali", prompt)
        self.context_builder.smart_context.assert_called_once()

    def test_escalation_without_ai_returns_rule_answer(self):
        response = self.controller.handle_message(
            "bagaimana cara mengakses arsip digital koleksi belanda dari rumah?")

        self.assertEqual(response.type, ResponseType.rule_based)
        self.assertEqual(response.confidence, 0.1)

    def test_unexpected_error_becomes_error_response(self):
        self.search.search.side_effect = RuntimeError("boom")

        response = self.controller.handle_message("cari buku sejarah indonesia")

        self.assertEqual(response.type, ResponseType.error)
        self.assertEqual(response.confidence, 0.0)
        self.assertIn(Config.LIBRARY_WHATSAPP, response.text)


if __name__ == "__main__":
    unittest.main()
