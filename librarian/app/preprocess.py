#!/usr/bin/env python3
"""
Preprocessing module for the library assistant.

This module handles text normalization and keyword extraction for catalog
search and prompt context.
"""

import re
from typing import Iterable, List

# Words that carry no topic in chit-chat and search phrasing
GENERAL_STOP_WORDS = frozenset({
    "buku", "judul", "mengenai", "tentang", "apa", "ini", "itu", "yang", "di", "ke",
    "dari", "dengan", "oleh", "dan", "atau", "untuk", "saya", "aku", "kami", "mau",
    "ingin", "cari", "carikan", "mencari", "temukan", "tolong", "bisa", "ada", "apakah",
    "minta", "rekomendasi", "daftar", "koleksi", "soal", "book", "books",
    "about", "find", "search", "the", "for", "please", "any", "some",
})

# Words that frame a question about a specific book rather than its subject
BOOK_QUESTION_STOP_WORDS = frozenset(GENERAL_STOP_WORDS | {
    "isi", "isinya", "ringkasan", "sinopsis", "review", "resensi", "ulasan", "summary",
    "jelaskan", "ceritakan", "berisi", "bercerita", "membahas", "bagaimana", "kenapa",
    "mengapa", "what", "is", "it", "tell", "me", "explain",
})

_PUNCTUATION = re.compile(r"[^\w\s]")


def normalize_text(text: str) -> str:
    """
    Normalize user input text.

    Args:
        text: Input text to normalize

    Returns:
        Lowercased text with collapsed whitespace
    """
    if not text:
        return ""
    return re.sub(r"\s+", " ", text.lower()).strip()


def tokenize(text: str) -> List[str]:
    """Lowercase, drop punctuation, split on whitespace."""
    return _PUNCTUATION.sub("", normalize_text(text)).split()


def word_count(text: str) -> int:
    return len((text or "").split())


def extract_keywords(text: str, stop_words: Iterable[str] = GENERAL_STOP_WORDS) -> str:
    """
    Reduce a free-text query to a compact search phrase.

    Args:
        text: Raw user message
        stop_words: Words to drop; callers pick the set that fits the context

    Returns:
        Up to three remaining tokens (each at least 3 characters) joined by a
        single space, or "" when nothing usable remains
    """
    stop = stop_words if isinstance(stop_words, (set, frozenset)) else set(stop_words)
    keywords = [t for t in tokenize(text) if t not in stop and len(t) >= 3]
    return " ".join(keywords[:3])
