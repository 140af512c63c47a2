#!/usr/bin/env python3
"""
Catalog Store Integration Tests

PURPOSE:
    Query shapes of BookStore / PlaylistStore and CSV seeding, run against an
    in-memory SQLite database.

USAGE:
    Run from project root: python -m pytest tests/test_catalog_store.py -v
"""

import os
import tempfile
import unittest

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from librarian.data.catalog_store import (
    BookNotFoundError,
    BookStore,
    PlaylistNotFoundError,
    PlaylistStore,
)
from librarian.data import database
from librarian.data.database import Base
from librarian.data.models import Book, Playlist
from librarian.data.populate_db import BOOKS_CSV_PATH, populate_books
from librarian.schemas.metadata_models import (
    BookMetadata,
    DescriptionSource,
    PlaylistMetadata,
    StoredMatchScore,
)


def memory_engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    return engine


class TestBookStore(unittest.TestCase):

    def setUp(self):
        self.session_factory = sessionmaker(bind=memory_engine(), autoflush=False)
        with self.session_factory() as db:
            db.add_all([
                Book(id=1, title="Sejarah Indonesia Modern", author="M.C. Ricklefs",
                     publisher="Gadjah Mada University Press", publication_year="1991"),
                Book(id=2, title="Babad Tanah Djawi", author="W.L. Olthof",
                     publisher="Martinus Nijhoff", publication_year="1941"),
                Book(id=3, title="Indonesia 100%", author="Pusat Sejarah",
                     publisher="Balai Pustaka", publication_year="1983"),
                Book(id=4, title="Kroniek", author="W.L. Olthof", publisher="Sejarah Indonesia Press",
                     publication_year="1950"),
            ])
            db.commit()
        self.store = BookStore(session_factory=self.session_factory)

    def test_search_candidates_matches_phrase_in_any_field(self):
        found = self.store.search_candidates("SEJARAH INDONESIA")
        self.assertEqual([b.id for b in found], [1, 4])

    def test_search_candidates_limit(self):
        self.assertEqual(len(self.store.search_candidates("o", limit=2)), 2)

    def test_search_escapes_wildcards(self):
        self.assertEqual([b.id for b in self.store.search_candidates("100%")], [3])
        self.assertEqual(self.store.search_candidates("_"), [])

    def test_count_and_authors(self):
        self.assertEqual(self.store.count_books(), 4)
        self.assertEqual(self.store.find_authors("olthof"), ["W.L. Olthof"])

    def test_newest_books(self):
        self.assertEqual([b.id for b in self.store.newest_books(limit=2)], [1, 3])

    def test_newest_books_reads_bracketed_years(self):
        with self.session_factory() as db:
            db.add_all([
                Book(id=5, title="Kitab Lama", publication_year="[1939]"),
                Book(id=6, title="Tanpa Tahun", publication_year="t.t."),
            ])
            db.commit()

        ids = [b.id for b in self.store.newest_books(limit=10)]

        self.assertEqual(ids, [1, 3, 4, 2, 5])

    def test_description_round_trip(self):
        record, stored = self.store.get_book(2)
        self.assertEqual(record.title, "Babad Tanah Djawi")
        self.assertIsNone(stored)

        self.store.save_description(2, "Kronik Jawa.", DescriptionSource.ai_enhanced, 0.95,
                                    BookMetadata(key_themes=["jawa"]))

        _, stored = self.store.get_book(2)
        self.assertEqual(stored.description, "Kronik Jawa.")
        self.assertEqual(stored.source, DescriptionSource.ai_enhanced)
        self.assertEqual(stored.structured_metadata.key_themes, ["jawa"])

    def test_unknown_book(self):
        with self.assertRaises(BookNotFoundError):
            self.store.get_book(42)
        with self.assertRaises(BookNotFoundError):
            self.store.save_description(42, "x", DescriptionSource.ai_failed, 0.1, BookMetadata.placeholder())


class TestPlaylistStore(unittest.TestCase):

    def setUp(self):
        self.session_factory = sessionmaker(bind=memory_engine(), autoflush=False)
        with self.session_factory() as db:
            db.add_all([Playlist(id="p1", name="Sejarah Batavia"), Playlist(id="p2", name="Kereta Api")])
            db.commit()
        self.store = PlaylistStore(session_factory=self.session_factory)

    def test_missing_and_fallback_lists(self):
        self.assertEqual({p.id for p in self.store.list_missing()}, {"p1", "p2"})

        self.store.save_metadata("p1", PlaylistMetadata(key_themes=["umum"], is_fallback=True, version=1))
        self.store.save_metadata("p2", PlaylistMetadata(key_themes=["kereta"], version=1))

        self.assertEqual(self.store.list_missing(), [])
        self.assertEqual([p.id for p in self.store.list_fallback()], ["p1"])
        self.assertEqual(len(self.store.list_all()), 2)

    def test_save_mirrors_columns_and_version(self):
        self.store.save_metadata("p1", PlaylistMetadata(
            historical_names=["batavia"], key_themes=["kolonial"], time_period="1619-1942", version=3))

        record = self.store.get("p1")
        self.assertEqual(record.metadata_version, 3)
        self.assertEqual(record.ai_metadata["historical_names"], ["batavia"])
        self.assertIsNotNone(record.metadata_generated_at)
        with self.session_factory() as db:
            row = db.get(Playlist, "p1")
            self.assertEqual(row.key_themes, ["kolonial"])
            self.assertEqual(row.time_period, "1619-1942")

    def test_match_scores_per_book(self):
        self.assertIsNone(self.store.get_match_score("p1", 7))

        self.store.save_match_score("p1", 7, StoredMatchScore(match_score=85, confidence=0.9, reasoning="cocok"))
        self.store.save_match_score("p1", 8, StoredMatchScore(match_score=20, confidence=0.7))

        stored = self.store.get_match_score("p1", 7)
        self.assertEqual(stored.match_score, 85)
        self.assertEqual(stored.reasoning, "cocok")
        self.assertEqual(self.store.get_match_score("p1", 8).match_score, 20)
        self.assertIsNone(self.store.get_match_score("p2", 7))
        with self.session_factory() as db:
            row = db.get(Playlist, "p1")
            self.assertEqual(set(row.ai_match_scores), {"7", "8"})
            self.assertEqual(row.ai_match_scores["7"]["matchScore"], 85)

    def test_unknown_playlist(self):
        with self.assertRaises(PlaylistNotFoundError):
            self.store.get("nope")
        with self.assertRaises(PlaylistNotFoundError):
            self.store.save_match_score("nope", 1, StoredMatchScore(match_score=1, confidence=0.1))


class TestCreateTables(unittest.TestCase):

    def test_creates_catalog_tables_on_given_engine(self):
        engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)

        database.create_tables(bind=engine)

        inspector = inspect(engine)
        self.assertEqual(set(inspector.get_table_names()), {"books", "community_playlists"})
        columns = {c["name"] for c in inspector.get_columns("community_playlists")}
        self.assertIn("ai_match_scores", columns)

    def test_sessions_only_through_factory(self):
        # stores open sessions from SessionLocal; no per-request generator is exported
        self.assertFalse(hasattr(database, "get_db"))
        self.assertTrue(callable(database.SessionLocal))


class TestPopulateBooks(unittest.TestCase):

    def setUp(self):
        self.engine = memory_engine()
        self.session_factory = sessionmaker(bind=self.engine, autoflush=False)

    def test_bundled_csv(self):
        inserted = populate_books(BOOKS_CSV_PATH, session_factory=self.session_factory, bind=self.engine)
        self.assertEqual(inserted, 8)
        self.assertEqual(populate_books(BOOKS_CSV_PATH, session_factory=self.session_factory,
                                        bind=self.engine), 0)

    def test_english_headers_and_blank_rows(self):
        handle, path = tempfile.mkstemp(suffix=".csv")
        with os.fdopen(handle, "w", encoding="utf-8") as csvfile:
            csvfile.write("title,author,publisher,publication_year\n")
            csvfile.write("Max Havelaar,Multatuli,De Ruyter,1860\n")
            csvfile.write(",,,\n")
        self.addCleanup(os.remove, path)

        self.assertEqual(populate_books(path, session_factory=self.session_factory, bind=self.engine), 1)
        store = BookStore(session_factory=self.session_factory)
        self.assertEqual(store.search_candidates("havelaar")[0].author, "Multatuli")


if __name__ == "__main__":
    unittest.main()
