#!/usr/bin/env python3
"""
Retrieval module for the library assistant.

This module ranks catalog records against a free-text query and assembles
the catalog context handed to the LLM.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from .config import Config
from .preprocess import GENERAL_STOP_WORDS, extract_keywords
from ..data.catalog_store import BookStore
from ..schemas.metadata_models import (
    CatalogRecord,
    CategoryMatch,
    LibraryContext,
    LibraryStats,
    ScoredBook,
    SearchResult,
)
from ..utils.logger import get_logger

logger = get_logger()

CATEGORY_TABLE: Dict[str, List[str]] = {
    "sejarah": ["Sejarah Indonesia", "Sejarah Dunia", "Arkeologi", "Antropologi"],
    "sastra": ["Sastra Indonesia", "Sastra Dunia", "Puisi", "Novel", "Cerpen"],
    "sains": ["Fisika", "Kimia", "Biologi", "Matematika", "Teknologi"],
    "seni": ["Seni Rupa", "Musik", "Tari", "Teater", "Fotografi"],
    "filsafat": ["Filsafat Barat", "Filsafat Timur", "Etika", "Logika"],
}

TOPIC_TABLE: Dict[str, List[str]] = {
    "sejarah": ["periode", "era", "zaman", "kerajaan", "kolonial"],
    "sains": ["penelitian", "eksperimen", "teori", "ilmiah"],
    "teknologi": ["digital", "komputer", "internet", "programming"],
    "pendidikan": ["belajar", "mengajar", "kurikulum", "sekolah"],
    "budaya": ["tradisi", "adat", "kebiasaan", "festival"],
}

NEWEST_BOOK_PHRASES = ("buku terbaru", "terbitan terbaru")


class CatalogSearch:
    """Relevance-ranked catalog search. Never raises into the chat pipeline."""

    def __init__(self, store: BookStore = None, limit: int = None):
        self.store = store or BookStore()
        self.limit = limit or Config.SEARCH_CANDIDATE_LIMIT

    @staticmethod
    def calculate_relevance(book: CatalogRecord, term: str) -> int:
        """
        Additive score over whitespace-separated sub-terms.

        Title hits weigh 3, author 2, publisher 1 and physical description 1.
        """
        title = (book.title or "").lower()
        author = (book.author or "").lower()
        publisher = (book.publisher or "").lower()
        physical = (book.physical_description or "").lower()

        score = 0
        for sub_term in term.lower().split():
            if sub_term in title:
                score += 3
            if sub_term in author:
                score += 2
            if sub_term in publisher:
                score += 1
            if sub_term in physical:
                score += 1
        return score

    def search(self, term: str) -> SearchResult:
        """
        Search the catalog.

        Args:
            term: Free-text query, matched against the store as one phrase

        Returns:
            Books sorted by non-increasing relevance (store order on ties), or
            the default library stats when the term is shorter than 2 chars
        """
        term = (term or "").strip()
        if len(term) < 2:
            return self.default_stats(term)

        try:
            candidates = self.store.search_candidates(term, limit=self.limit)
        except Exception:
            logger.warning(f"Catalog search failed for '{term}'", exc_info=True)
            return SearchResult(search_term=term)

        scored = [
            ScoredBook(
                **book.model_dump(),
                relevance_score=self.calculate_relevance(book, term),
                has_physical_description=bool(book.physical_description),
                has_call_number=bool(book.call_number),
            )
            for book in candidates
        ]
        # list.sort is stable, so equal scores keep store order
        scored.sort(key=lambda b: -b.relevance_score)
        return SearchResult(
            search_term=term,
            books=scored,
            total_books=len(scored),
            has_results=bool(scored),
        )

    def default_stats(self, term: str = "") -> SearchResult:
        try:
            total = self.store.count_books()
        except Exception:
            logger.warning("Could not count catalog records", exc_info=True)
            total = 0
        return SearchResult(
            search_term=term,
            total_books=total,
            has_results=False,
            library_stats=LibraryStats(total_books=total),
        )


def related_categories(term: str) -> List[CategoryMatch]:
    lowered = term.lower()
    found = [
        CategoryMatch(category=category, subcategories=subcategories[:3])
        for category, subcategories in CATEGORY_TABLE.items()
        if category in lowered
    ]
    return found[:2]


def related_topics(term: str) -> List[str]:
    lowered = term.lower()
    topics = [
        topic for topic, keywords in TOPIC_TABLE.items()
        if any(keyword in lowered for keyword in keywords)
    ]
    return topics[:3]


class CatalogContextBuilder:
    """Gathers search results, categories, authors and topics for a prompt.

    The four lookups are independent and run on a small thread pool; the
    results are joined before the context is returned.
    """

    def __init__(self, search: CatalogSearch = None, store: BookStore = None, max_workers: int = 4):
        self.search = search or CatalogSearch(store=store)
        self.store = store or self.search.store
        self.max_workers = max_workers

    def build(self, term: str) -> LibraryContext:
        term = (term or "").strip()
        if len(term) < 2:
            return self._default_context(term)

        try:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                books_future = pool.submit(self.search.search, term)
                categories_future = pool.submit(related_categories, term)
                authors_future = pool.submit(self.store.find_authors, term, 5)
                topics_future = pool.submit(related_topics, term)
                result = books_future.result()
                categories = categories_future.result()
                authors = authors_future.result()
                topics = topics_future.result()
        except Exception:
            logger.warning(f"Catalog context assembly failed for '{term}'", exc_info=True)
            return self._default_context(term)

        return LibraryContext(
            search_term=term,
            books=result.books[:5],
            total_books=len(result.books),
            has_results=bool(result.books),
            categories=categories,
            authors=authors[:3],
            related_topics=topics,
        )

    def smart_context(self, message: str) -> LibraryContext:
        """Pick a context source from the message wording."""
        lowered = (message or "").lower()
        if any(phrase in lowered for phrase in NEWEST_BOOK_PHRASES):
            try:
                newest = self.store.newest_books(limit=5)
            except Exception:
                logger.warning("Newest-books lookup failed", exc_info=True)
                return self._default_context("")
            books = [ScoredBook(**b.model_dump(),
                                has_physical_description=bool(b.physical_description),
                                has_call_number=bool(b.call_number)) for b in newest]
            return LibraryContext(
                context_type="newest_books",
                books=books,
                total_books=len(books),
                has_results=bool(books),
            )
        return self.build(extract_keywords(message, GENERAL_STOP_WORDS))

    def _default_context(self, term: str) -> LibraryContext:
        stats = self.search.default_stats(term)
        return LibraryContext(**stats.model_dump())


def describe_context(context: Optional[LibraryContext]) -> str:
    """Render a catalog context as compact prompt text."""
    if context is None:
        return ""
    lines: List[str] = []
    if context.library_stats:
        stats = context.library_stats
        lines.append(
            f"Koleksi katalog: {stats.total_books} buku tercatat "
            f"(perkiraan {stats.estimated_titles} judul, tahun {stats.years_covered}). "
            f"Koleksi utama: {', '.join(stats.main_collections)}."
        )
    if context.books:
        label = "Buku terbaru" if context.context_type == "newest_books" else "Buku relevan"
        lines.append(f"{label}:")
        for book in context.books:
            lines.append(f"- {_book_line(book)}")
    if context.categories:
        lines.append("Kategori terkait: " + "; ".join(
            f"{c.category} ({', '.join(c.subcategories)})" for c in context.categories))
    if context.authors:
        lines.append("Pengarang terkait: " + ", ".join(context.authors))
    if context.related_topics:
        lines.append("Topik terkait: " + ", ".join(context.related_topics))
    return "\n".join(lines)


def _book_line(book: CatalogRecord) -> str:
    parts = [f'"{book.title}"']
    if book.author:
        parts.append(f"oleh {book.author}")
    if book.publication_year:
        parts.append(f"({book.publication_year})")
    if book.call_number:
        parts.append(f"[{book.call_number}]")
    return " ".join(parts)
