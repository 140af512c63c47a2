#!/usr/bin/env python3
"""
Postprocessing module for the library assistant.

This module turns search results and raw LLM text into chat-ready replies.
"""

import re
from typing import List

from .config import Config
from ..schemas.metadata_models import ScoredBook, SearchResult

MAX_LISTED_BOOKS = 5


class Postprocessor:
    """Formats chat replies for the website widget."""

    def format_search_results(self, result: SearchResult) -> str:
        """
        Render a non-empty search result as a numbered list.

        Args:
            result: Search result whose books are already ranked

        Returns:
            Reply text listing at most ``MAX_LISTED_BOOKS`` books
        """
        books: List[ScoredBook] = result.books[:MAX_LISTED_BOOKS]
        lines = [f"📚 Saya menemukan {len(result.books)} buku untuk \"{result.search_term}\":", ""]
        for index, book in enumerate(books, 1):
            lines.append(f"{index}. **{book.title}**")
            details = []
            if book.author:
                details.append(f"Pengarang: {book.author}")
            if book.publication_year:
                details.append(f"Tahun: {book.publication_year}")
            if book.publisher:
                details.append(f"Penerbit: {book.publisher}")
            if details:
                lines.append("   " + " | ".join(details))
            if book.has_call_number:
                lines.append(f"   Nomor panggil: {book.call_number}")
        if len(result.books) > MAX_LISTED_BOOKS:
            lines.append("")
            lines.append(f"...dan {len(result.books) - MAX_LISTED_BOOKS} buku lainnya. "
                         "Gunakan pencarian di halaman koleksi untuk hasil lengkap.")
        return "\n".join(lines)

    def format_not_found(self, term: str) -> str:
        return (
            f"🔍 Maaf, saya belum menemukan buku untuk \"{term}\" di katalog kami.\n\n"
            "Coba kata kunci lain (judul, pengarang, atau penerbit), atau hubungi pustakawan "
            f"melalui WhatsApp {Config.LIBRARY_WHATSAPP}."
        )

    def format_book_question_fallback(self) -> str:
        return (
            "📖 Untuk mengetahui isi buku, ketik \"cari buku <judul atau topik>\" lalu buka "
            "detail buku di halaman koleksi. Pustakawan kami juga siap membantu melalui "
            f"WhatsApp {Config.LIBRARY_WHATSAPP}."
        )

    def format_error(self) -> str:
        return (
            "Maaf, terjadi kendala saat memproses pertanyaan Anda. 🙏\n"
            f"Silakan hubungi pustakawan kami melalui WhatsApp {Config.LIBRARY_WHATSAPP}."
        )

    def format_ai_text(self, response: str) -> str:
        """Tidy provider text while keeping its line structure."""
        if not response:
            return ""
        lines = [re.sub(r"[ \t]+", " ", line).strip() for line in response.strip().splitlines()]
        text = "\n".join(lines)
        # Collapse runs of blank lines
        text = re.sub(r"\n{3,}", "\n\n", text)
        # Remove extra spaces before punctuation
        return re.sub(r" +([,.!?;:])", r"\1", text)
