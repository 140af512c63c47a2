#!/usr/bin/env python3
"""
Prompt builder module for the library assistant.

This module constructs prompts for the LLM: chat escalation, questions about
a specific book, book descriptions with structured metadata, and playlist
metadata.
"""

import json
from typing import List, Optional, Sequence

from .config import Config
from ..schemas.io_models import ChatHistoryItem
from ..schemas.metadata_models import BookSubject, CatalogRecord

LIBRARY_CONTEXT = (
    "Perpustakaan Nasional RI, layanan koleksi buku langka. "
    "Buka Senin-Jumat 08.00-19.00, Sabtu-Minggu 09.00-16.00. "
    "Alamat: Gedung Perpustakaan Nasional Lantai 14, Jl. Medan Merdeka Selatan No.11, Jakarta Pusat. "
    "Layanan: baca di tempat koleksi langka, pemesanan koleksi online, ruang baca khusus, WiFi gratis."
)

METADATA_JSON_SHAPE = {
    "key_themes": ["tema utama", "tema kedua"],
    "geographic_focus": ["wilayah"],
    "historical_period": ["periode sejarah"],
    "content_type": "jenis isi (mis. sejarah, biografi, sastra)",
    "subject_categories": ["kategori subjek"],
    "temporal_coverage": "YYYY-YYYY",
}

DESCRIPTION_START = "[DESKRIPSI]"
DESCRIPTION_END = "[/DESKRIPSI]"
METADATA_START = "[METADATA]"
METADATA_END = "[/METADATA]"


class PromptBuilder:
    """Builds prompts for the LLM with library context and conversation history."""

    def __init__(self, library_context: str = LIBRARY_CONTEXT, history_turns: int = None):
        self.library_context = library_context
        self.history_turns = Config.CHAT_HISTORY_TURNS if history_turns is None else history_turns
        self.system_prompt = f"""Anda adalah asisten pustakawan koleksi buku langka di Perpustakaan Nasional RI.

ATURAN:
- Jawab dalam bahasa Indonesia yang ramah, singkat dan jelas (maksimal 150 kata)
- Gunakan hanya informasi dari konteks perpustakaan dan katalog di bawah
- Jika informasi tidak tersedia, arahkan pengunjung ke WhatsApp {Config.LIBRARY_WHATSAPP} atau email {Config.LIBRARY_EMAIL}
- Jangan mengarang judul buku, pengarang atau tahun terbit

KONTEKS PERPUSTAKAAN:
{{library_context}}

{{catalog_context}}

{{conversation_history}}

Pengunjung: {{query}}
Asisten:"""

    def format_history(self, history: Optional[Sequence[ChatHistoryItem]]) -> str:
        """Render the trailing ``history_turns`` messages, oldest first."""
        if not history or self.history_turns <= 0:
            return ""
        lines = []
        for item in list(history)[-self.history_turns:]:
            if not item.text:
                continue
            speaker = "Asisten" if item.is_bot else "Pengunjung"
            lines.append(f"{speaker}: {item.text}")
        if not lines:
            return ""
        return "PERCAKAPAN SEBELUMNYA:\n" + "\n".join(lines)

    def build_chat_prompt(self, query: str, history: Optional[Sequence[ChatHistoryItem]] = None,
                          catalog_context: str = "") -> str:
        """
        Build the prompt for an escalated chat message.

        Args:
            query: User message
            history: Earlier widget messages; only the last few are used
            catalog_context: Rendered catalog context for the message

        Returns:
            Formatted prompt string
        """
        catalog = f"KONTEKS KATALOG:\n{catalog_context}" if catalog_context else ""
        return self.system_prompt.format(
            library_context=self.library_context,
            catalog_context=catalog,
            conversation_history=self.format_history(history),
            query=query,
        )

    def build_book_question_prompt(self, question: str, books: List[CatalogRecord]) -> str:
        if books:
            listing = "\n".join(
                f"- \"{b.title}\" oleh {b.author or 'tidak diketahui'}"
                f" ({b.publication_year or 'tahun tidak diketahui'}), penerbit {b.publisher or '-'}"
                for b in books
            )
            catalog = f"BUKU DI KATALOG YANG MUNGKIN DIMAKSUD:\n{listing}"
        else:
            catalog = "Tidak ada buku di katalog yang cocok dengan pertanyaan ini."
        return f"""Anda adalah pustakawan koleksi buku langka Perpustakaan Nasional RI.
Pengunjung bertanya tentang isi sebuah buku.

{catalog}

PERTANYAAN: {question}

INSTRUKSI:
1. Jelaskan isi atau topik buku secara ringkas (maksimal 120 kata)
2. Jika buku tidak ada di katalog, katakan dengan jujur dan sarankan fitur pencarian
3. Jangan menambahkan informasi fiktif
4. Gunakan bahasa Indonesia"""

    @staticmethod
    def _subject_block(subject: BookSubject) -> str:
        return (
            f"- Judul: \"{subject.title}\"\n"
            f"- Pengarang: {subject.author or 'Tidak diketahui'}\n"
            f"- Tahun Terbit: {subject.year or 'Tidak diketahui'}"
        )

    def build_description_prompt(self, subject: BookSubject) -> str:
        current = subject.current_description or "-"
        return f"""TUGAS: Buat deskripsi buku yang INFORMATIF untuk katalog Perpustakaan Nasional.

INFORMASI BUKU:
{self._subject_block(subject)}

DESKRIPSI AWAL:
{current}

INSTRUKSI:
1. Fokus pada konteks historis dan nilai akademis
2. Bahasa Indonesia formal yang mudah dipahami
3. Maksimal 120 kata
4. Jangan tambahkan informasi fiktif

Tulis hanya paragraf deskripsinya."""

    def build_metadata_prompt(self, subject: BookSubject, description: str) -> str:
        shape = json.dumps(METADATA_JSON_SHAPE, ensure_ascii=False, indent=2)
        return f"""Berdasarkan deskripsi buku berikut, isi metadata terstruktur.

BUKU:
{self._subject_block(subject)}

DESKRIPSI:
{description}

Balas HANYA dengan objek JSON berbentuk:
{shape}

ATURAN:
- Semua nilai dalam bahasa Indonesia, huruf kecil
- temporal_coverage berupa rentang tahun "YYYY-YYYY" atau "" jika tidak jelas
- Tanpa penjelasan tambahan, tanpa markdown"""

    def build_combined_prompt(self, subject: BookSubject) -> str:
        """Single-call prompt asking for a description and metadata between markers."""
        shape = json.dumps(METADATA_JSON_SHAPE, ensure_ascii=False)
        current = subject.current_description or "-"
        return f"""TUGAS: Buat deskripsi dan metadata untuk buku katalog Perpustakaan Nasional.

INFORMASI BUKU:
{self._subject_block(subject)}

DESKRIPSI AWAL:
{current}

FORMAT JAWABAN (wajib persis):
{DESCRIPTION_START}
deskripsi maksimal 120 kata
{DESCRIPTION_END}
{METADATA_START}
{shape}
{METADATA_END}

temporal_coverage berupa "YYYY-YYYY" atau "". Jangan tambahkan informasi fiktif."""

    def build_playlist_prompt(self, name: str, description: Optional[str] = None) -> str:
        return f"""Analisis playlist buku perpustakaan ini dan balas HANYA dengan JSON.

Nama: "{name}"
Deskripsi: "{description or '-'}"

Contoh untuk "Sejarah Batavia":
{{"historical_names":["batavia","sunda kelapa"],"modern_equivalents":["jakarta"],"key_themes":["kolonial","perdagangan","voc"],"geographical_focus":["jawa","nusantara"],"time_period":"1619-1942","keywords":["batavia","voc","kolonial","jakarta","belanda"],"accuracy_reasoning":"nama historis jakarta pada masa voc"}}

Batas: historical_names 3, modern_equivalents 2, key_themes 3, geographical_focus 2, keywords 5.
JSON:"""

    def build_match_prompt(self, book_title: str, book_themes: Sequence[str],
                           playlist_name: str, playlist_themes: Sequence[str]) -> str:
        book_list = ", ".join(book_themes) or "-"
        playlist_list = ", ".join(playlist_themes) or "-"
        return f"""Sebagai pustakawan ahli, nilai kecocokan buku ini dengan playlist (0-100).

BUKU: "{book_title}"
Tema buku: {book_list}

PLAYLIST: "{playlist_name}"
Tema playlist: {playlist_list}

Balas HANYA dengan JSON:
{{"matchScore": 85, "reason": "alasan singkat dalam bahasa Indonesia"}}"""
