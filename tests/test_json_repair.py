#!/usr/bin/env python3
"""
JSON Repair Tests

USAGE:
    Run from project root: python -m pytest tests/test_json_repair.py -v
"""

import json
import unittest

from librarian.metadata.json_repair import (
    balance_brackets,
    extract_fields,
    extract_json_block,
    parse_json_object,
    quote_bare_keys,
    repair_json,
    strip_trailing_commas,
)

BOOK_ARRAYS = ("key_themes", "geographic_focus", "historical_period", "subject_categories")
BOOK_STRINGS = ("content_type", "temporal_coverage")


class TestRepairPipeline(unittest.TestCase):

    def test_truncated_array_and_object(self):
        repaired = repair_json('{"key_themes": ["a","b"')
        self.assertEqual(json.loads(repaired), {"key_themes": ["a", "b"]})

    def test_code_fences_and_trailing_commas(self):
        self.assertEqual(parse_json_object('```json\n{"a": [1, 2,],}\n```'), {"a": [1, 2]})

    def test_bare_keys(self):
        self.assertEqual(parse_json_object('{key_themes: ["x"], content_type: "sejarah"}'),
                         {"key_themes": ["x"], "content_type": "sejarah"})

    def test_dangling_key_with_colon_dropped(self):
        self.assertEqual(parse_json_object('{"a": "x", "b":'), {"a": "x"})

    def test_dangling_key_without_colon_dropped(self):
        self.assertEqual(parse_json_object('{"a": 1, "ke'), {"a": 1})

    def test_unterminated_string_closed(self):
        self.assertEqual(parse_json_object('{"a": "abc'), {"a": "abc"})

    def test_brackets_inside_strings_ignored(self):
        self.assertEqual(parse_json_object('{"a": "x { [", "b": ["y"'),
                         {"a": "x { [", "b": ["y"]})

    def test_first_object_in_prose(self):
        text = 'Berikut hasilnya: {"a": 1} semoga membantu {"b": 2}'
        self.assertEqual(parse_json_object(text), {"a": 1})

    def test_no_object_raises_value_error(self):
        with self.assertRaises(ValueError):
            parse_json_object("tidak ada json di sini")
        with self.assertRaises(ValueError):
            parse_json_object("[1, 2]")

    def test_unrepairable_raises_value_error(self):
        with self.assertRaises(ValueError):
            parse_json_object('{"a": ["x" "y"]}')


class TestHelpers(unittest.TestCase):

    def test_extract_json_block(self):
        self.assertEqual(extract_json_block('x {"a": {"b": 1}} y'), '{"a": {"b": 1}}')
        self.assertEqual(extract_json_block('x {"a": {"b": 1'), '{"a": {"b": 1')
        self.assertIsNone(extract_json_block("no braces"))

    def test_balance_nested(self):
        self.assertEqual(balance_brackets('{"a": {"b": [1, 2'), '{"a": {"b": [1, 2]}}')

    def test_balance_leaves_balanced_text(self):
        self.assertEqual(balance_brackets('{"a": 1}'), '{"a": 1}')

    def test_strip_trailing_commas(self):
        self.assertEqual(strip_trailing_commas('{"a": [1,\n ],\n}'), '{"a": [1]}')

    def test_quote_bare_keys(self):
        self.assertEqual(quote_bare_keys('{a: 1, b_c: 2}'), '{"a": 1, "b_c": 2}')


class TestFieldExtraction(unittest.TestCase):

    def test_every_field_present_with_defaults(self):
        fields = extract_fields("", BOOK_ARRAYS, BOOK_STRINGS)
        for name in BOOK_ARRAYS:
            self.assertEqual(fields[name], [])
        for name in BOOK_STRINGS:
            self.assertEqual(fields[name], "")

    def test_snake_and_camel_keys_from_truncated_text(self):
        text = ('{"keyThemes": ["kolonial", "perdagangan"], "content_type": "sejarah", '
                '"geographic_focus": ["jawa", "sum')
        fields = extract_fields(text, BOOK_ARRAYS, BOOK_STRINGS)

        self.assertEqual(fields["key_themes"], ["kolonial", "perdagangan"])
        self.assertEqual(fields["geographic_focus"], ["jawa"])
        self.assertEqual(fields["content_type"], "sejarah")
        self.assertEqual(fields["historical_period"], [])
        self.assertEqual(fields["temporal_coverage"], "")

    def test_escaped_quotes_in_values(self):
        fields = extract_fields('{"content_type": "kronik \\"babad\\""}', [], ["content_type"])
        self.assertEqual(fields["content_type"], 'kronik "babad"')

    def test_items_without_commas(self):
        fields = extract_fields('{"key_themes": ["voc" "dagang"]}', ["key_themes"], [])
        self.assertEqual(fields["key_themes"], ["voc", "dagang"])


if __name__ == "__main__":
    unittest.main()
