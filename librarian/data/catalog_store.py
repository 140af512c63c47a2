"""Catalog helpers: book and playlist lookups over the SQLAlchemy store.

Only a handful of query shapes are used: equality, case-insensitive
``contains``, ordering and limit, plus single-row fetch/update. Rows are
converted to pydantic records inside the session so callers never hold
ORM objects after it closes.
"""
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, or_

from .database import SessionLocal
from .models import Book, Playlist
from ..metadata.periods import extract_year
from ..schemas.io_models import BookDescriptionRecord
from ..schemas.metadata_models import (
    BookMetadata,
    CatalogRecord,
    DescriptionSource,
    PlaylistMetadata,
    PlaylistRecord,
    StoredMatchScore,
)


class BookNotFoundError(LookupError):
    pass


class PlaylistNotFoundError(LookupError):
    pass


class BookStore:
    def __init__(self, session_factory=None):
        self.session_factory = session_factory or SessionLocal

    def search_candidates(self, term: str, limit: int = 10) -> List[CatalogRecord]:
        """Books whose title, author or publisher contains ``term`` (one phrase, any case)."""
        with self.session_factory() as db:
            rows = (
                db.query(Book)
                .filter(or_(
                    Book.title.icontains(term, autoescape=True),
                    Book.author.icontains(term, autoescape=True),
                    Book.publisher.icontains(term, autoescape=True),
                ))
                .order_by(Book.id)
                .limit(limit)
                .all()
            )
            return [CatalogRecord.model_validate(r) for r in rows]

    def count_books(self) -> int:
        with self.session_factory() as db:
            return db.query(func.count(Book.id)).scalar() or 0

    def find_authors(self, term: str, limit: int = 5) -> List[str]:
        with self.session_factory() as db:
            rows = (
                db.query(Book.author)
                .filter(Book.author.icontains(term, autoescape=True))
                .order_by(Book.id)
                .limit(limit)
                .all()
            )
        authors: List[str] = []
        for (author,) in rows:
            if author and author not in authors:
                authors.append(author)
        return authors

    def newest_books(self, limit: int = 5) -> List[CatalogRecord]:
        """Most recent publication year first, read out of catalog strings like "[1939]"."""
        with self.session_factory() as db:
            years = (
                db.query(Book.id, Book.publication_year)
                .filter(Book.publication_year.isnot(None))
                .all()
            )
            dated = []
            for book_id, raw in years:
                year = extract_year(raw)
                if year is not None:
                    dated.append((-year, book_id))
            ids = [book_id for _, book_id in sorted(dated)[:limit]]
            if not ids:
                return []
            rows = {r.id: r for r in db.query(Book).filter(Book.id.in_(ids)).all()}
            return [CatalogRecord.model_validate(rows[book_id]) for book_id in ids]

    def get_book(self, book_id: int) -> Tuple[CatalogRecord, Optional[BookDescriptionRecord]]:
        """Return the record and its stored description (None when never generated)."""
        with self.session_factory() as db:
            book = db.get(Book, book_id)
            if book is None:
                raise BookNotFoundError(f"Book {book_id} not found")
            record = CatalogRecord.model_validate(book)
            if not book.description_source:
                return record, None
            stored = BookDescriptionRecord(
                book_id=book.id,
                description=book.description or "",
                source=_as_source(book.description_source),
                confidence=book.description_confidence or 0.0,
                structured_metadata=BookMetadata.model_validate(book.description_metadata or {}),
                generated_at=book.description_updated_at or datetime.now(timezone.utc),
            )
            return record, stored

    def save_description(self, book_id: int, description: str, source: DescriptionSource,
                         confidence: float, metadata: BookMetadata) -> BookDescriptionRecord:
        now = datetime.now(timezone.utc)
        with self.session_factory() as db:
            book = db.get(Book, book_id)
            if book is None:
                raise BookNotFoundError(f"Book {book_id} not found")
            book.description = description
            book.description_source = source.value
            book.description_confidence = confidence
            book.description_metadata = metadata.model_dump(mode="json")
            book.description_updated_at = now
            db.commit()
        return BookDescriptionRecord(
            book_id=book_id,
            description=description,
            source=source,
            confidence=confidence,
            structured_metadata=metadata,
            generated_at=now,
        )


def _as_source(value: str) -> DescriptionSource:
    try:
        return DescriptionSource(value)
    except ValueError:
        return DescriptionSource.rule_based


class PlaylistStore:
    def __init__(self, session_factory=None):
        self.session_factory = session_factory or SessionLocal

    def get(self, playlist_id: str) -> PlaylistRecord:
        with self.session_factory() as db:
            playlist = db.get(Playlist, playlist_id)
            if playlist is None:
                raise PlaylistNotFoundError(f"Playlist {playlist_id} not found")
            return PlaylistRecord.model_validate(playlist)

    def list_all(self) -> List[PlaylistRecord]:
        """Newest first."""
        with self.session_factory() as db:
            rows = db.query(Playlist).order_by(Playlist.created_at.desc(), Playlist.id).all()
            return [PlaylistRecord.model_validate(r) for r in rows]

    def list_missing(self) -> List[PlaylistRecord]:
        with self.session_factory() as db:
            rows = (
                db.query(Playlist)
                .filter(Playlist.metadata_generated_at.is_(None))
                .order_by(Playlist.created_at.desc(), Playlist.id)
                .all()
            )
            return [PlaylistRecord.model_validate(r) for r in rows]

    def list_fallback(self) -> List[PlaylistRecord]:
        """Playlists whose stored metadata was produced without AI output."""
        with self.session_factory() as db:
            rows = (
                db.query(Playlist)
                .filter(Playlist.metadata_generated_at.isnot(None))
                .order_by(Playlist.created_at.desc(), Playlist.id)
                .all()
            )
            records = [PlaylistRecord.model_validate(r) for r in rows]
        return [r for r in records if r.ai_metadata and r.ai_metadata.get("is_fallback")]

    def save_metadata(self, playlist_id: str, metadata: PlaylistMetadata) -> PlaylistMetadata:
        now = datetime.now(timezone.utc)
        with self.session_factory() as db:
            playlist = db.get(Playlist, playlist_id)
            if playlist is None:
                raise PlaylistNotFoundError(f"Playlist {playlist_id} not found")
            playlist.ai_metadata = metadata.model_dump(mode="json")
            playlist.historical_names = metadata.historical_names
            playlist.key_themes = metadata.key_themes
            playlist.geographical_focus = metadata.geographical_focus
            playlist.time_period = metadata.time_period
            playlist.accuracy_reasoning = metadata.accuracy_reasoning
            playlist.metadata_generated_at = now
            playlist.metadata_version = metadata.version
            playlist.updated_at = now
            db.commit()
        return metadata

    def save_match_score(self, playlist_id: str, book_id: int, score: StoredMatchScore) -> StoredMatchScore:
        with self.session_factory() as db:
            playlist = db.get(Playlist, playlist_id)
            if playlist is None:
                raise PlaylistNotFoundError(f"Playlist {playlist_id} not found")
            # reassign a new dict; in-place JSON mutation is not tracked
            scores = dict(playlist.ai_match_scores or {})
            scores[str(book_id)] = score.model_dump(mode="json", by_alias=True)
            playlist.ai_match_scores = scores
            playlist.updated_at = datetime.now(timezone.utc)
            db.commit()
        return score

    def get_match_score(self, playlist_id: str, book_id: int) -> Optional[StoredMatchScore]:
        with self.session_factory() as db:
            playlist = db.get(Playlist, playlist_id)
            if playlist is None:
                raise PlaylistNotFoundError(f"Playlist {playlist_id} not found")
            entry = (playlist.ai_match_scores or {}).get(str(book_id))
        return StoredMatchScore.model_validate(entry) if entry else None
