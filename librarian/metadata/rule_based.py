"""Template descriptions built from catalog fields alone.

Used when no AI text exists yet: the result seeds the "current description"
given to the description prompt. The template family follows the book's era
and title language; the variant inside a family is picked by book id so the
same book always gets the same text.
"""
import re
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel

from ..schemas.metadata_models import CatalogRecord, DescriptionSource
from .periods import extract_year

UNKNOWN = "Tidak diketahui"

LANGUAGE_WORDS: Dict[str, Tuple[str, ...]] = {
    "id": ("yang", "dan", "di", "ke", "dari", "untuk", "pada", "dengan", "ini", "itu",
           "tidak", "akan", "ada", "atau"),
    "nl": ("de", "het", "en", "van", "tot", "voor", "met", "zijn", "een", "als", "door",
           "over", "onder", "tussen"),
    "jv": ("jawa", "kawi", "serat", "babad", "kraton", "sastra", "tembang"),
    "ar": ("islam", "quran", "hadis", "fiqh", "tauhid", "sharia", "sufi"),
}

TOPIC_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "sejarah": ("sejarah", "history", "geschiedenis", "tawarikh", "historic"),
    "hukum": ("hukum", "law", "recht", "undang-undang", "legislation"),
    "budaya": ("budaya", "culture", "cultuur", "adat", "tradisi", "traditions"),
    "agama": ("islam", "kristen", "hindu", "buddha", "religion", "agama", "christian"),
    "bahasa": ("bahasa", "language", "taal", "kamus", "grammar", "linguistics"),
    "medis": ("obat", "medis", "health", "geneeskunde", "kesehatan", "medical"),
    "pendidikan": ("pendidikan", "education", "onderwijs", "sekolah", "school"),
    "pertanian": ("pertanian", "agriculture", "landbouw", "cocok tanam", "farm"),
    "sastra": ("sastra", "literature", "puisi", "poetry", "novel", "cerita"),
    "politik": ("politik", "policy", "government", "pemerintah", "state"),
}
GENERAL_TOPIC = "umum"

_WORD = re.compile(r"[a-zà-ÿ]+")


class BookCharacteristics(BaseModel):
    year: Optional[int] = None
    language: str = "unknown"
    topics: List[str]
    era: str
    has_author: bool = False
    has_publisher: bool = False

    @property
    def is_ancient(self) -> bool:
        return self.year is not None and self.year < 1800

    @property
    def is_colonial(self) -> bool:
        return self.year is not None and 1800 <= self.year <= 1945

    @property
    def is_post_independence(self) -> bool:
        return self.year is not None and self.year > 1945


class RuleBasedDescription(BaseModel):
    description: str
    confidence: float
    source: DescriptionSource = DescriptionSource.rule_based
    characteristics: BookCharacteristics


def detect_language(text: Optional[str]) -> str:
    """Language code with the most marker words in ``text``; needs at least two hits."""
    words = set(_WORD.findall((text or "").lower()))
    best, best_count = "unknown", 0
    for language, markers in LANGUAGE_WORDS.items():
        count = sum(1 for marker in markers if marker in words)
        if count > best_count:
            best, best_count = language, count
    return best if best_count > 1 else "unknown"


def extract_topics(title: Optional[str]) -> List[str]:
    title = (title or "").lower()
    topics = [topic for topic, keywords in TOPIC_KEYWORDS.items()
              if any(keyword in title for keyword in keywords)]
    return topics or [GENERAL_TOPIC]


def historical_era(year: Optional[int]) -> str:
    if year is None:
        return "tidak diketahui"
    if year < 1800:
        return "pra-kolonial"
    if year <= 1945:
        return "kolonial"
    if year <= 1965:
        return "kemerdekaan awal"
    if year <= 1998:
        return "orde baru"
    return "reformasi"


def _known(value: Optional[str]) -> bool:
    return bool(value and value.strip() and value.strip() != UNKNOWN)


def detect_characteristics(book: CatalogRecord) -> BookCharacteristics:
    year = extract_year(book.publication_year)
    return BookCharacteristics(
        year=year,
        language=detect_language(book.title),
        topics=extract_topics(book.title),
        era=historical_era(year),
        has_author=_known(book.author),
        has_publisher=_known(book.publisher),
    )


def rule_confidence(chars: BookCharacteristics) -> float:
    score = 0.5
    if chars.year is not None:
        score += 0.2
    if chars.has_author:
        score += 0.15
    if chars.topics:
        score += 0.1
    if chars.language != "unknown":
        score += 0.05
    if chars.has_publisher:
        score += 0.05
    return round(min(score, 1.0), 2)


def _credit(book: CatalogRecord, chars: BookCharacteristics) -> str:
    parts = []
    if chars.has_author:
        parts.append(f"karya {book.author.strip()}")
    if chars.year is not None:
        parts.append(f"terbit tahun {chars.year}")
    if chars.has_publisher:
        parts.append(f"terbitan {book.publisher.strip()}")
    if not parts:
        return ""
    sentence = ", ".join(parts) + "."
    return sentence[0].upper() + sentence[1:]


def _topic_phrase(topics: List[str]) -> str:
    if topics == [GENERAL_TOPIC]:
        return "topik umum"
    return " dan ".join(topics)


def _templates(chars: BookCharacteristics, topics: str) -> Tuple[List[Tuple[str, str]], bool]:
    """(lead, closing) pairs for the book's family, and whether a credit line is added."""
    if chars.is_ancient:
        century = chars.year // 100 + 1
        return [
            (f"Naskah kuno dari abad ke-{century} yang membahas {topics}.",
             "Merupakan bagian dari khazanah manuskrip Nusantara koleksi Perpustakaan Nasional."),
            (f"Manuskrip langka era {chars.era} tentang {topics}.",
             "Koleksi penting untuk studi filologi dan sejarah Nusantara."),
            (f"Naskah tradisional yang mengupas {topics}, ditulis pada periode {chars.era}.",
             "Merepresentasikan warisan intelektual Nusantara."),
        ], False
    if chars.language == "nl":
        return [
            (f"Literatur kolonial Belanda tentang {topics}.",
             "Memberikan perspektif historis masa penjajahan."),
            (f"Buku berbahasa Belanda dari era kolonial yang mengkaji {topics}.",
             "Merekam kondisi sosial-budaya Nusantara."),
            (f"Karya akademik era Hindia Belanda tentang {topics}.",
             "Dokumentasi penting periode kolonial."),
        ], True
    if chars.is_colonial:
        return [
            (f"Buku dari era kolonial tentang {topics}.",
             "Mencerminkan dinamika intelektual masa penjajahan."),
            (f"Literatur periode kolonial yang membahas {topics}.",
             "Merupakan dokumen penting untuk studi sejarah Indonesia."),
            (f"Karya era {chars.era} tentang {topics}.",
             "Memberikan gambaran perkembangan pemikiran Nusantara sebelum kemerdekaan."),
        ], True
    if chars.is_post_independence:
        return [
            (f"Buku era {chars.era} tentang {topics}.",
             "Kontribusi penting untuk perkembangan ilmu pengetahuan Indonesia."),
            (f"Literatur modern Indonesia yang mengkaji {topics}.",
             "Representasi perkembangan studi keindonesiaan."),
            (f"Karya akademik era {chars.era} tentang {topics}.",
             "Mencerminkan perkembangan pemikiran Indonesia pasca kemerdekaan."),
        ], True
    return [(f"Buku tentang {topics}.", "Koleksi Perpustakaan Nasional RI.")], True


def rule_based_description(book: CatalogRecord) -> RuleBasedDescription:
    chars = detect_characteristics(book)
    templates, with_credit = _templates(chars, _topic_phrase(chars.topics))
    lead, closing = templates[book.id % len(templates)]
    sentences = [lead, _credit(book, chars) if with_credit else "", closing]
    return RuleBasedDescription(
        description=" ".join(s for s in sentences if s),
        confidence=rule_confidence(chars),
        characteristics=chars,
    )
