#!/usr/bin/env python3
"""
Book Metadata Recovery Tests

PURPOSE:
    Strategy order, shared combined call, normalization and the placeholder
    record produced when every strategy fails.

USAGE:
    Run from project root: python -m pytest tests/test_book_metadata.py -v
"""

import unittest
from unittest.mock import MagicMock

from librarian.metadata.book_metadata import (
    BookMetadataGenerator,
    fallback_description,
    normalize_book_metadata,
)
from librarian.schemas.metadata_models import BookSubject


class TestBookMetadataGenerator(unittest.TestCase):

    def setUp(self):
        self.gateway = MagicMock()
        self.generator = BookMetadataGenerator(gateway=self.gateway)

    def test_gateway_always_throwing_yields_placeholder(self):
        self.gateway.complete.side_effect = RuntimeError("provider down")

        result = self.generator.generate(BookSubject(title="Judul X"))

        self.assertEqual(result.description, 'Buku "Judul X" .')
        metadata = result.metadata
        self.assertTrue(metadata.is_empty)
        self.assertTrue(metadata.ai_failed)
        self.assertEqual(metadata.key_themes, [])
        self.assertEqual(metadata.geographic_focus, [])
        self.assertEqual(metadata.historical_period, [])
        self.assertEqual(metadata.subject_categories, [])
        self.assertEqual(metadata.content_type, "")
        self.assertEqual(metadata.temporal_coverage, "")

    def test_unavailable_gateway_yields_placeholder(self):
        self.gateway.complete.return_value = None

        result = self.generator.generate(BookSubject(title="Judul X"))

        self.assertTrue(result.metadata.ai_failed)
        # description call, then one shared combined call
        self.assertEqual(self.gateway.complete.call_count, 2)

    def test_two_step_strategy(self):
        self.gateway.complete.side_effect = [
            "Kronik sejarah kerajaan-kerajaan Jawa.",
            '{"key_themes": ["jawa", "kerajaan"], "temporal_coverage": "abad ke-19", '
            '"content_type": "sejarah", "geographic_focus": ["jaw',
        ]

        result = self.generator.generate(BookSubject(title="Babad Tanah Djawi", year="1941"))

        self.assertEqual(result.description, "Kronik sejarah kerajaan-kerajaan Jawa.")
        self.assertEqual(result.metadata.key_themes, ["jawa", "kerajaan"])
        self.assertEqual(result.metadata.temporal_coverage, "1800-1899")
        self.assertEqual(result.metadata.content_type, "sejarah")
        self.assertEqual(result.metadata.geographic_focus, [])
        self.assertFalse(result.metadata.is_empty)
        self.assertFalse(result.metadata.ai_failed)
        self.assertEqual(self.gateway.complete.call_count, 2)

    def test_structured_markers_after_empty_two_step(self):
        self.gateway.complete.side_effect = [
            "Deskripsi singkat.",
            "maaf, tidak bisa",
            "[DESKRIPSI]\nCatatan perjalanan ke pesisir timur Sumatra.\n[/DESKRIPSI]\n"
            '[METADATA]\n{"geographic_focus": ["sumatra"], "temporal_coverage": "1899",}\n[/METADATA]',
        ]

        result = self.generator.generate(BookSubject(title="De Oostkust van Sumatra"))

        self.assertEqual(result.description, "Catatan perjalanan ke pesisir timur Sumatra.")
        self.assertEqual(result.metadata.geographic_focus, ["sumatra"])
        self.assertEqual(result.metadata.temporal_coverage, "1899-1899")

    def test_delimited_sections_share_one_combined_call(self):
        self.gateway.complete.side_effect = [
            None,
            "DESKRIPSI: Sejarah perkeretaapian di Hindia Belanda.\n"
            'METADATA: {"key_themes": ["kereta api"], "historical_period": ["kolonial"]}',
        ]

        result = self.generator.generate(BookSubject(title="Kereta Api di Hindia Belanda"))

        self.assertEqual(result.description, "Sejarah perkeretaapian di Hindia Belanda.")
        self.assertEqual(result.metadata.key_themes, ["kereta api"])
        self.assertEqual(self.gateway.complete.call_count, 2)

    def test_direct_json(self):
        self.gateway.complete.side_effect = [
            None,
            '{"description": "Kitab hukum pidana.", "metadata": '
            '{"subjectCategories": ["hukum"], "contentType": "undang-undang"}}',
        ]

        result = self.generator.generate(BookSubject(title="KUHP"))

        self.assertEqual(result.description, "Kitab hukum pidana.")
        self.assertEqual(result.metadata.subject_categories, ["hukum"])
        self.assertEqual(result.metadata.content_type, "undang-undang")


class TestNormalization(unittest.TestCase):

    def test_coerces_bad_types(self):
        metadata = normalize_book_metadata({
            "key_themes": "bukan list",
            "geographic_focus": None,
            "content_type": None,
            "temporal_coverage": "unknown era",
        })
        self.assertEqual(metadata.key_themes, [])
        self.assertEqual(metadata.geographic_focus, [])
        self.assertEqual(metadata.content_type, "")
        self.assertEqual(metadata.temporal_coverage, "")
        self.assertFalse(metadata.is_empty)
        self.assertFalse(metadata.ai_failed)

    def test_drops_blank_and_nested_items(self):
        metadata = normalize_book_metadata({"key_themes": [" jawa ", "", {"x": 1}, 1941]})
        self.assertEqual(metadata.key_themes, ["jawa", "1941"])

    def test_list_for_single_value_takes_first_string(self):
        metadata = normalize_book_metadata({
            "content_type": ["", "sejarah", "naskah"],
            "temporalCoverage": {"from": 1850},
        })
        self.assertEqual(metadata.content_type, "sejarah")
        self.assertEqual(metadata.temporal_coverage, "")


class TestFallbackDescription(unittest.TestCase):

    def test_template_with_author_and_year(self):
        subject = BookSubject(title="Babad Tanah Djawi", author="W.L. Olthof", year="1941")
        self.assertEqual(fallback_description(subject), 'Buku "Babad Tanah Djawi" karya W.L. Olthof (1941) .')

    def test_existing_description_kept(self):
        subject = BookSubject(title="Babad", current_description="Deskripsi lama.")
        self.assertEqual(fallback_description(subject), "Deskripsi lama.")


if __name__ == "__main__":
    unittest.main()
