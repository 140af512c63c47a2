#!/usr/bin/env python3
"""
Generation Client Tests

PURPOSE:
    The Gemini REST client maps transport and HTTP failures to
    GenerationError / RateLimitedError. requests.post is patched.

USAGE:
    Run from project root: python -m pytest tests/test_generate.py -v
"""

import unittest
from unittest.mock import MagicMock, patch

import requests

from librarian.app.config import Config
from librarian.app.generate import GenerationClient, GenerationError, RateLimitedError


def http_response(status_code, body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


class TestGenerationClient(unittest.TestCase):

    def setUp(self):
        self.client = GenerationClient(api_key="test-key", model="gemini-test", timeout=5)

    @patch("librarian.app.generate.requests.post")
    def test_returns_candidate_text(self, mock_post):
        mock_post.return_value = http_response(200, {
            "candidates": [{"content": {"parts": [{"text": "  Buka jam 08.00  "}]}}]
        })

        answer = self.client.generate_answer("jam buka?", max_output_tokens=50, temperature=0.2)

        self.assertEqual(answer, "Buka jam 08.00")
        _, kwargs = mock_post.call_args
        self.assertEqual(kwargs["params"], {"key": "test-key"})
        self.assertEqual(kwargs["timeout"], 5)
        self.assertEqual(kwargs["json"]["generationConfig"], {"temperature": 0.2, "maxOutputTokens": 50})
        self.assertIn("gemini-test:generateContent", mock_post.call_args[0][0])

    @patch("librarian.app.generate.requests.post")
    def test_http_429_is_rate_limited(self, mock_post):
        mock_post.return_value = http_response(429)
        with self.assertRaises(RateLimitedError):
            self.client.generate_answer("halo")

    @patch("librarian.app.generate.requests.post")
    def test_other_http_errors(self, mock_post):
        mock_post.return_value = http_response(500, text="internal")
        with self.assertRaises(GenerationError) as ctx:
            self.client.generate_answer("halo")
        self.assertNotIsInstance(ctx.exception, RateLimitedError)

    @patch("librarian.app.generate.requests.post")
    def test_timeout(self, mock_post):
        mock_post.side_effect = requests.exceptions.Timeout()
        with self.assertRaises(GenerationError):
            self.client.generate_answer("halo")

    @patch("librarian.app.generate.requests.post")
    def test_malformed_body(self, mock_post):
        mock_post.return_value = http_response(200, {"candidates": []})
        with self.assertRaises(GenerationError):
            self.client.generate_answer("halo")

    def test_requires_api_key(self):
        with patch.object(Config, "GEMINI_API_KEY", None):
            with self.assertRaises(ValueError):
                GenerationClient(api_key=None)


if __name__ == "__main__":
    unittest.main()
