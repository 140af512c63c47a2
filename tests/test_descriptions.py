#!/usr/bin/env python3
"""
Book Description Service Tests

PURPOSE:
    Cache check, generation outcome and persistence of book descriptions
    against an in-memory SQLite catalog.

USAGE:
    Run from project root: python -m pytest tests/test_descriptions.py -v
"""

import unittest
from unittest.mock import MagicMock

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from librarian.data.catalog_store import BookNotFoundError, BookStore
from librarian.data.database import Base
from librarian.data.models import Book
from librarian.metadata.book_metadata import BookMetadataGenerator
from librarian.metadata.descriptions import BookDescriptionService
from librarian.schemas.io_models import BookDescriptionRequest, DescriptionOutcome
from librarian.schemas.metadata_models import (
    BookMetadata,
    BookSubject,
    DescriptionSource,
    GeneratedMetadata,
)


def memory_session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False)


class TestBookDescriptionService(unittest.TestCase):

    def setUp(self):
        self.session_factory = memory_session_factory()
        with self.session_factory() as db:
            db.add(Book(id=1, title="Babad Tanah Djawi", author="W.L. Olthof",
                        publisher="Martinus Nijhoff", publication_year="1941"))
            db.commit()
        self.store = BookStore(session_factory=self.session_factory)
        self.generator = MagicMock()
        self.service = BookDescriptionService(store=self.store, generator=self.generator)

    def test_generates_then_serves_from_cache(self):
        self.generator.generate.return_value = GeneratedMetadata(
            description="Kronik sejarah Jawa.",
            metadata=BookMetadata(key_themes=["jawa"], temporal_coverage="1800-1899"),
        )

        first = self.service.describe(BookDescriptionRequest(book_id=1, book_title="Babad Tanah Djawi"))
        second = self.service.describe(BookDescriptionRequest(book_id=1, book_title="Babad Tanah Djawi"))

        self.assertEqual(first.source, DescriptionOutcome.ai_generated_full)
        self.assertEqual(first.data.source, DescriptionSource.ai_enhanced)
        self.assertEqual(first.data.confidence, 0.95)
        self.assertEqual(second.source, DescriptionOutcome.database_cache_full)
        self.assertEqual(second.data.description, "Kronik sejarah Jawa.")
        self.assertEqual(second.data.structured_metadata.key_themes, ["jawa"])
        self.generator.generate.assert_called_once()

    def test_failed_generation_is_stored_but_not_cached(self):
        self.generator.generate.return_value = GeneratedMetadata(
            description='Buku "Babad Tanah Djawi" .', metadata=BookMetadata.placeholder())

        first = self.service.describe(BookDescriptionRequest(book_id=1))
        second = self.service.describe(BookDescriptionRequest(book_id=1))

        self.assertEqual(first.source, DescriptionOutcome.ai_failed_empty)
        self.assertEqual(first.data.source, DescriptionSource.ai_failed)
        self.assertEqual(first.data.confidence, 0.1)
        self.assertTrue(first.data.structured_metadata.ai_failed)
        self.assertEqual(second.source, DescriptionOutcome.ai_failed_empty)
        self.assertEqual(self.generator.generate.call_count, 2)

    def test_subject_falls_back_to_catalog_values(self):
        self.generator.generate.return_value = GeneratedMetadata(
            description="x", metadata=BookMetadata.placeholder())

        self.service.describe(BookDescriptionRequest(book_id=1, current_description="Deskripsi awal"))

        self.generator.generate.assert_called_once_with(BookSubject(
            title="Babad Tanah Djawi", year="1941", author="W.L. Olthof",
            current_description="Deskripsi awal"))

    def test_missing_description_seeded_from_catalog_template(self):
        self.generator.generate.return_value = GeneratedMetadata(
            description="x", metadata=BookMetadata.placeholder())

        self.service.describe(BookDescriptionRequest(book_id=1, current_description="  "))

        subject = self.generator.generate.call_args[0][0]
        self.assertTrue(subject.current_description.startswith("Literatur periode kolonial"))
        self.assertIn("Martinus Nijhoff", subject.current_description)

    def test_request_values_win(self):
        self.generator.generate.return_value = GeneratedMetadata(
            description="x", metadata=BookMetadata.placeholder())

        self.service.describe(BookDescriptionRequest(book_id=1, book_title="Babad", book_year=1940))

        subject = self.generator.generate.call_args[0][0]
        self.assertEqual(subject.title, "Babad")
        self.assertEqual(subject.year, "1940")

    def test_unknown_book(self):
        with self.assertRaises(BookNotFoundError):
            self.service.describe(BookDescriptionRequest(book_id=99))

    def test_end_to_end_with_failing_gateway(self):
        gateway = MagicMock()
        gateway.complete.side_effect = RuntimeError("provider down")
        service = BookDescriptionService(store=self.store,
                                         generator=BookMetadataGenerator(gateway=gateway))

        response = service.describe(BookDescriptionRequest(book_id=1))

        self.assertEqual(response.source, DescriptionOutcome.ai_failed_empty)
        self.assertEqual(
            response.data.description,
            "Literatur periode kolonial yang membahas topik umum. "
            "Karya W.L. Olthof, terbit tahun 1941, terbitan Martinus Nijhoff. "
            "Merupakan dokumen penting untuk studi sejarah Indonesia.",
        )
        _, stored = self.store.get_book(1)
        self.assertEqual(stored.source, DescriptionSource.ai_failed)
        self.assertTrue(stored.structured_metadata.is_empty)


if __name__ == "__main__":
    unittest.main()
