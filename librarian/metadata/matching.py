"""Book to playlist matching.

Two ways of scoring how well a book fits a playlist, both on a 0-100 scale:

- ``direct_metadata_match`` compares the structured metadata of both sides
  (themes 40%, geography 30%, content type 20%, shared keywords 10%) and
  needs no AI at all. Recommendations are ranked with it.
- ``PlaylistMatcher.expert_match`` asks the model for a score and a reason,
  read through the same JSON repair pipeline as the metadata generators.
  Without a usable answer it falls back to a title/theme heuristic.

Scores from expert analysis are stored per playlist and book.
"""
import math
import re
from typing import Dict, List, Optional, Sequence

from rapidfuzz.distance import Levenshtein

from ..app.gateway import TextCompletionGateway, get_gateway
from ..app.prompt_builder import PromptBuilder
from ..data.catalog_store import BookStore, PlaylistStore
from ..schemas.metadata_models import (
    BookMetadata,
    CatalogRecord,
    MatchResult,
    PlaylistMetadata,
    PlaylistRecommendation,
    PlaylistRecord,
    StoredMatchScore,
)
from ..utils.logger import get_logger
from .json_repair import parse_json_object, strip_code_fences
from .playlist_metadata import PlaylistMetadataGenerator

logger = get_logger()

SEMANTIC_THEMES: Dict[str, List[str]] = {
    "hindia belanda": ["sejarah", "kolonial", "belanda", "sejarah indonesia", "nusantara", "masa kolonial",
                       "penjajahan", "voc", "knil"],
    "indie": ["hindia belanda", "sejarah", "kolonial", "belanda", "masa lalu"],
    "sejarah": ["historis", "masa lalu", "peristiwa", "kolonial", "nasionalisme", "hindia belanda",
                "perjuangan", "revolusi"],
    "kolonial": ["penjajahan", "belanda", "hindia belanda", "sejarah", "voc", "knil", "imperialisme"],
    "penjajahan": ["kolonial", "belanda", "hindia belanda", "sejarah", "perlawanan"],
    "voc": ["hindia belanda", "kolonial", "belanda", "perdagangan", "sejarah"],
    "knil": ["militer", "kolonial", "belanda", "hindia belanda", "tentara", "sejarah"],
    "seni": ["budaya", "kesenian", "tradisi", "karya seni", "visual", "estetika", "kreativitas"],
    "budaya": ["seni", "tradisi", "adat", "kesenian", "kebudayaan", "sosial", "warisan"],
    "kesenian": ["seni", "budaya", "tradisi", "karya", "estetika"],
    "tradisi": ["budaya", "adat", "kebiasaan", "warisan", "seni"],
    "adat": ["budaya", "tradisi", "kearifan lokal", "custom", "seni"],
    "visualisasi": ["seni", "gambar", "foto", "ilustrasi", "budaya visual", "desain"],
    "gambar": ["seni", "visual", "foto", "ilustrasi", "budaya", "lukisan"],
    "karya seni": ["seni", "budaya", "kesenian", "tradisi", "visual", "kreasi"],
    "fotografi": ["gambar", "visual", "seni", "foto", "dokumentasi"],
    "lukisan": ["seni", "gambar", "visual", "budaya", "kesenian"],
    "sastra": ["literatur", "kesusasteraan", "puisi", "prosa", "cerita", "budaya"],
    "puisi": ["sastra", "syair", "puisi", "karya sastra", "literatur"],
    "prosa": ["sastra", "cerita", "narasi", "novel", "cerpen"],
    "cerita": ["sastra", "narasi", "dongeng", "hikayat", "legenda"],
    "bahasa": ["linguistik", "sastra", "komunikasi", "budaya", "kata"],
    "linguistik": ["bahasa", "sastra", "grammar", "kata", "komunikasi"],
    "militer": ["tentara", "perang", "pertahanan", "keamanan", "angkatan bersenjata", "militerisme"],
    "tentara": ["militer", "perang", "pertahanan", "angkatan darat", "prajurit"],
    "perang": ["militer", "konflik", "pertempuran", "perjuangan", "revolusi"],
    "pertahanan": ["militer", "keamanan", "tentara", "strategi", "perlindungan"],
    "keamanan": ["pertahanan", "militer", "proteksi", "perlindungan", "ketertiban"],
    "politik": ["pemerintahan", "negara", "kekuasaan", "kebijakan", "nasionalisme", "demokrasi"],
    "pemerintahan": ["politik", "negara", "administrasi", "birokrasi", "kekuasaan"],
    "negara": ["politik", "pemerintahan", "nasional", "republik", "kedaulatan"],
    "nasionalisme": ["politik", "kebangsaan", "patriotisme", "kemerdekaan", "perjuangan"],
    "demokrasi": ["politik", "pemerintahan", "kebebasan", "pemilu", "partisipasi"],
    "sosial": ["masyarakat", "komunitas", "rakyat", "budaya", "kemasyarakatan", "interaksi"],
    "masyarakat": ["sosial", "komunitas", "rakyat", "penduduk", "warga"],
    "komunitas": ["sosial", "masyarakat", "kelompok", "komunal", "gotong royong"],
    "rakyat": ["masyarakat", "sosial", "penduduk", "warga", "orang biasa"],
    "ekonomi": ["perdagangan", "bisnis", "keuangan", "pembangunan", "industri", "perekonomian"],
    "perdagangan": ["ekonomi", "bisnis", "komersial", "jual beli", "ekspor impor"],
    "bisnis": ["ekonomi", "perdagangan", "usaha", "komersial", "perusahaan"],
    "keuangan": ["ekonomi", "uang", "bank", "investasi", "modal"],
    "industri": ["ekonomi", "pabrik", "manufaktur", "produksi", "perusahaan"],
    "pertanian": ["perkebunan", "tanaman", "pangan", "agrikultur", "petani", "hasil bumi"],
    "perkebunan": ["pertanian", "tanaman", "agrikultur", "estate", "tebu", "karet", "kelapa sawit"],
    "tanaman": ["pertanian", "perkebunan", "pangan", "hortikultura", "flora"],
    "pangan": ["pertanian", "makanan", "bahan makanan", "konsumsi", "hasil bumi"],
    "agrikultur": ["pertanian", "perkebunan", "tanaman", "budidaya", "agraris"],
    "kesehatan": ["medis", "kedokteran", "pengobatan", "klinis", "rumah sakit", "penyakit"],
    "medis": ["kesehatan", "kedokteran", "pengobatan", "klinis", "dokter"],
    "kedokteran": ["kesehatan", "medis", "pengobatan", "dokter", "rumah sakit"],
    "pengobatan": ["kesehatan", "medis", "terapi", "obat", "penyembuhan"],
    "penyakit": ["kesehatan", "medis", "sakit", "infeksi", "epidemi", "pandemi"],
    "epidemi": ["penyakit", "wabah", "kesehatan", "medis", "pandemi"],
    "tumbuhan": ["tanaman", "flora", "botani", "pohon", "sayuran", "buah"],
    "flora": ["tumbuhan", "tanaman", "botani", "vegetasi", "alam"],
    "botani": ["tumbuhan", "flora", "tanaman", "ilmu tumbuhan", "hortikultura"],
    "pohon": ["tumbuhan", "flora", "hutan", "kayu", "vegetasi"],
    "buah": ["tumbuhan", "hortikultura", "makanan", "pertanian", "kebun"],
    "sayuran": ["tumbuhan", "pangan", "pertanian", "kebun", "hortikultura"],
    "geografi": ["wilayah", "region", "lokasi", "peta", "spasial", "alam"],
    "wilayah": ["geografi", "region", "area", "lokasi", "teritori"],
    "region": ["wilayah", "geografi", "area", "kawasan", "teritori"],
    "peta": ["geografi", "wilayah", "spasial", "kartografi", "navigasi"],
    "transportasi": ["angkutan", "perhubungan", "kendaraan", "mobilitas", "logistik"],
    "angkutan": ["transportasi", "kendaraan", "mobilitas", "pengiriman", "logistik"],
    "perhubungan": ["transportasi", "komunikasi", "koneksi", "jaringan", "infrastruktur"],
    "pelabuhan": ["transportasi", "laut", "perkapalan", "ekspor impor", "logistik"],
    "kereta api": ["transportasi", "perkeretaapian", "rel", "stasiun", "angkutan"],
    "pendidikan": ["pengajaran", "sekolah", "belajar", "ilmu", "pengetahuan", "akademik"],
    "pengajaran": ["pendidikan", "mengajar", "guru", "sekolah", "belajar"],
    "sekolah": ["pendidikan", "belajar", "akademik", "murid", "guru"],
    "belajar": ["pendidikan", "pengetahuan", "ilmu", "akademik", "studi"],
    "ilmu": ["pengetahuan", "sains", "akademik", "studi", "edukasi"],
    "teknologi": ["sains", "inovasi", "digital", "komputer", "elektronik", "modern"],
    "sains": ["ilmu", "teknologi", "pengetahuan", "riset", "saintifik"],
    "inovasi": ["teknologi", "kreativitas", "penemuan", "modern", "terobosan"],
    "digital": ["teknologi", "komputer", "internet", "elektronik", "modern"],
    "lingkungan": ["alam", "ekologi", "konservasi", "sustainability", "hijau", "bumi"],
    "alam": ["lingkungan", "ekologi", "bumi", "nature", "konservasi"],
    "ekologi": ["lingkungan", "alam", "ekosistem", "konservasi", "biodiversity"],
    "konservasi": ["lingkungan", "alam", "pelestarian", "proteksi", "sustainability"],
    "hukum": ["legal", "peraturan", "undang-undang", "peradilan", "justice"],
    "legal": ["hukum", "peraturan", "undang-undang", "peradilan", "yuridis"],
    "peraturan": ["hukum", "legal", "undang-undang", "regulasi", "ketentuan"],
    "undang-undang": ["hukum", "legal", "peraturan", "legislasi", "statute"],
    "religi": ["agama", "kepercayaan", "spiritual", "ibadah", "keyakinan"],
    "agama": ["religi", "kepercayaan", "spiritual", "ibadah", "keyakinan"],
    "spiritual": ["religi", "agama", "kepercayaan", "batin", "transendental"],
    "kepercayaan": ["religi", "agama", "keyakinan", "faith", "spiritual"],
    "wisata": ["pariwisata", "turisme", "perjalanan", "liburan", "destinasi"],
    "pariwisata": ["wisata", "turisme", "perjalanan", "liburan", "destinasi"],
    "turisme": ["wisata", "pariwisata", "perjalanan", "liburan", "travel"],
    "perjalanan": ["wisata", "pariwisata", "travel", "eksplorasi", "petualangan"],
    "olahraga": ["sports", "fitness", "games", "kompetisi", "atletik"],
    "sports": ["olahraga", "games", "kompetisi", "atletik", "fitness"],
    "rekreasi": ["hiburan", "wisata", "leisure", "refreshment", "fun"],
    "hiburan": ["rekreasi", "entertainment", "fun", "leisure", "seni"],
    "sumatra": ["sumatera", "pulau sumatra", "region sumatra", "bagian barat"],
    "jawa": ["pulau jawa", "java", "region jawa", "bagian tengah"],
    "kalimantan": ["borneo", "pulau kalimantan", "region kalimantan"],
    "sulawesi": ["celebes", "pulau sulawesi", "region sulawesi"],
    "papua": ["irian", "pulau papua", "region papua", "papua nugini"],
    "bali": ["pulau bali", "region bali", "pulau dewata"],
    "nusa tenggara": ["nusa tenggara barat", "nusa tenggara timur", "ntb", "ntt"],
    "maluku": ["kepulauan maluku", "molucas", "region maluku"],
    "jakarta": ["dki jakarta", "ibukota", "batavia", "kota jakarta"],
    "surabaya": ["kota surabaya", "jawa timur", "kota pahlawan"],
    "bandung": ["kota bandung", "jawa barat", "paris van java"],
    "yogyakarta": ["jogja", "yogyakarta", "jawa tengah", "kota pelajar"],
    "medan": ["kota medan", "sumatra utara", "kota metropolitan"],
    "makassar": ["kota makassar", "sulawesi selatan", "ujung pandang"],
    "denpasar": ["kota denpasar", "bali", "ibukota bali"],
}

# (book theme fragments, playlist theme fragments, score); first hit wins
CONTEXTUAL_RULES = (
    (("hindia", "belanda", "indie", "kolonial", "penjajahan"), ("sejarah", "indonesia", "politik", "militer"), 70),
    (("gambar", "visual", "seni", "foto", "lukisan", "karya"), ("budaya", "seni", "tradisi", "kesenian"), 60),
    (("kesehatan", "medis", "penyakit", "obat", "dokter"), ("kesehatan", "medis", "pengobatan"), 80),
    (("pertanian", "perkebunan", "tanaman", "pangan", "buah"), ("pertanian", "perkebunan", "ekonomi", "sosial"), 70),
    (("transportasi", "pelabuhan", "kereta", "angkutan"), ("transportasi", "infrastruktur", "ekonomi"), 65),
    (("sastra", "puisi", "prosa", "cerita", "bahasa"), ("sastra", "budaya", "seni", "pendidikan"), 75),
    (("sumatra", "jawa", "kalimantan", "sulawesi", "papua", "bali"), ("sejarah", "budaya", "geografi", "sosial"), 60),
)

GEOGRAPHIC_HIERARCHY: Dict[str, List[str]] = {
    "indonesia": ["nusantara", "asia tenggara", "sumatra", "jawa", "bali", "kalimantan", "sulawesi", "papua",
                  "aceh", "sumatra utara", "sumatra barat", "jawa tengah", "jawa timur", "jawa barat", "mentawai"],
    "nusantara": ["indonesia", "asia tenggara", "sumatra", "jawa", "bali", "kalimantan", "sulawesi", "papua",
                  "mentawai"],
    "sumatra": ["indonesia", "nusantara", "asia tenggara", "sumatra utara", "sumatra barat", "aceh", "medan",
                "padang", "mentawai"],
    "sumatera barat": ["sumatra", "indonesia", "nusantara", "asia tenggara", "mentawai", "padang"],
    "sumatra barat": ["sumatra", "indonesia", "nusantara", "asia tenggara", "mentawai", "padang"],
    "mentawai": ["sumatra barat", "sumatra", "indonesia", "nusantara", "asia tenggara"],
}

LOCATION_EQUIVALENTS: Dict[str, List[str]] = {
    "indonesia": ["nusantara", "hindia belanda", "archipelago"],
    "nusantara": ["indonesia", "hindia belanda"],
    "jawa": ["java"],
    "sumatra": ["sumatera"],
    "sumatera barat": ["sumatra barat", "west sumatra"],
    "sumatra barat": ["sumatera barat", "west sumatra"],
    "mentawai": ["mentawai islands", "kepulauan mentawai"],
}

CONTENT_TYPE_VARIANTS: Dict[str, List[str]] = {
    "buku teks": ["sejarah", "pendidikan", "akademik", "non-fiksi"],
    "gambar": ["seni", "budaya", "visual", "foto", "ilustrasi"],
    "sejarah": ["buku teks", "non-fiksi", "akademik", "pendidikan"],
    "non-fiksi": ["buku teks", "sejarah", "akademik", "pendidikan"],
    "seni": ["budaya", "visual", "gambar", "foto", "ilustrasi"],
}

# Playlists carry no content type of their own; it is read off the name.
PLAYLIST_CONTENT_TYPES: Dict[str, Sequence[str]] = {
    "biografi": ("biografi", "tokoh", "pahlawan"),
    "militer": ("militer", "perang", "pertahanan", "tni", "knil"),
    "sejarah": ("sejarah", "historis", "peristiwa"),
    "budaya": ("budaya", "seni", "tradisi", "kesenian"),
    "transportasi": ("transportasi", "kereta", "perkeretaapian"),
    "politik": ("politik", "pemerintahan"),
    "sosial": ("sosial", "masyarakat"),
}
DEFAULT_PLAYLIST_CONTENT_TYPE = "koleksi"

MATCH_KEYWORDS = ("sejarah", "indonesia", "nasional", "kebangsaan", "militer", "budaya", "biografi",
                  "politik", "sosial")

TITLE_THEMES = (
    ("sejarah", ("sejarah",)),
    ("militer", ("militer", "perang")),
    ("budaya", ("budaya",)),
    ("biografi", ("biografi",)),
    ("politik", ("politik",)),
)

EXPERT_CONFIDENCE = 0.9
FALLBACK_CONFIDENCE = 0.7
DEFAULT_AI_SCORE = 50

_SCORE_FIELD = re.compile(r'"(?:matchScore|match_score)"\s*:\s*"?(-?\d+)')
_REASON_FIELD = re.compile(r'"(?:reason|reasoning)"\s*:\s*"([^"]*)"')
_LEADING_INT = re.compile(r"\s*(-?\d+)")


def _round(value: float) -> int:
    """Half-up rounding for non-negative scores."""
    return int(math.floor(value + 0.5))


def string_similarity(first: str, second: str) -> float:
    """1 - edit distance / length of the longer string."""
    return Levenshtein.normalized_similarity(first, second)


def contextual_inference_score(book_theme: str, playlist_themes: Sequence[str]) -> int:
    lowered = [theme.lower() for theme in playlist_themes]
    for patterns, targets, score in CONTEXTUAL_RULES:
        if (any(pattern in book_theme for pattern in patterns)
                and any(target in theme for target in targets for theme in lowered)):
            return score
    return 0


def theme_match(book_themes: Sequence[str], playlist_themes: Sequence[str]) -> int:
    """Average over book themes of the best score against any playlist theme."""
    if not book_themes or not playlist_themes:
        return 0

    total = 0
    for book_theme in book_themes:
        book_lower = book_theme.lower()
        best = 0
        for playlist_theme in playlist_themes:
            playlist_lower = playlist_theme.lower()
            if book_lower == playlist_lower:
                best = max(best, 100)
                continue

            book_terms = SEMANTIC_THEMES.get(book_lower, [book_lower])
            playlist_terms = SEMANTIC_THEMES.get(playlist_lower, [playlist_lower])
            if any(b == p or p in b or b in p for b in book_terms for p in playlist_terms):
                best = max(best, 80)
                continue

            if (playlist_lower in SEMANTIC_THEMES.get(book_lower, [])
                    or book_lower in SEMANTIC_THEMES.get(playlist_lower, [])):
                best = max(best, 70)
                continue

            similarity = string_similarity(book_lower, playlist_lower)
            if similarity > 0.6:
                best = max(best, _round(similarity * 100))

        if best == 0:
            best = contextual_inference_score(book_lower, playlist_themes)
        total += best

    return min(100, _round(total / len(book_themes)))


def geographic_match(book_locations: Sequence[str], playlist_locations: Sequence[str]) -> int:
    if not book_locations or not playlist_locations:
        return 0
    book_locs = [loc.lower().strip() for loc in book_locations]
    playlist_locs = [loc.lower().strip() for loc in playlist_locations]

    if any(loc in playlist_locs for loc in book_locs):
        return 100

    equivalent = 0
    for book_loc in book_locs:
        book_eq = LOCATION_EQUIVALENTS.get(book_loc, [])
        for playlist_loc in playlist_locs:
            playlist_eq = LOCATION_EQUIVALENTS.get(playlist_loc, [])
            if playlist_loc in book_eq or book_loc in playlist_eq:
                equivalent = max(equivalent, 95)
            if any(eq in playlist_locs for eq in book_eq) or any(eq in book_locs for eq in playlist_eq):
                equivalent = max(equivalent, 90)
    if equivalent:
        return equivalent

    best = 0
    for book_loc in book_locs:
        book_parents = GEOGRAPHIC_HIERARCHY.get(book_loc, [])
        for playlist_loc in playlist_locs:
            playlist_parents = GEOGRAPHIC_HIERARCHY.get(playlist_loc, [])
            if playlist_loc in book_parents or book_loc in playlist_parents:
                best = max(best, 90)
            if any(parent in playlist_parents for parent in book_parents):
                best = max(best, 70)
            if book_loc in playlist_loc or playlist_loc in book_loc:
                best = max(best, 80)
    return best


def content_type_match(book_type: str, playlist_type: str) -> int:
    if not book_type or not playlist_type:
        return 0
    book_variants = CONTENT_TYPE_VARIANTS.get(book_type.lower(), [book_type.lower()])
    playlist_variants = CONTENT_TYPE_VARIANTS.get(playlist_type.lower(), [playlist_type.lower()])
    for b in book_variants:
        for p in playlist_variants:
            if p in b or b in p or string_similarity(b, p) > 0.7:
                return 100
    return 0


def keyword_match(book_text: str, playlist_text: str) -> int:
    """25 points per shared subject keyword, capped at 100."""
    book_text, playlist_text = book_text.lower(), playlist_text.lower()
    shared = sum(1 for keyword in MATCH_KEYWORDS if keyword in book_text and keyword in playlist_text)
    return min(100, shared * 25)


def playlist_content_type(playlist: PlaylistRecord) -> str:
    text = f"{playlist.name} {playlist.description or ''}".lower()
    for content_type, keywords in PLAYLIST_CONTENT_TYPES.items():
        if any(keyword in text for keyword in keywords):
            return content_type
    return DEFAULT_PLAYLIST_CONTENT_TYPE


def playlist_metadata_of(playlist: PlaylistRecord) -> PlaylistMetadata:
    """Stored metadata, or the keyword-table fallback when none was generated yet."""
    if playlist.ai_metadata:
        return PlaylistMetadata.model_validate(playlist.ai_metadata)
    return PlaylistMetadataGenerator.fallback(playlist)


def basic_metadata_from_title(book: CatalogRecord) -> BookMetadata:
    title = (book.title or "").lower()
    themes = [theme for theme, words in TITLE_THEMES if any(word in title for word in words)]
    return BookMetadata(
        key_themes=themes or ["sejarah"],
        geographic_focus=["indonesia"],
        historical_period=["kolonial"],
        content_type="buku teks",
    )


def match_reasoning(score: int) -> str:
    if score >= 80:
        return "Kecocokan sangat tinggi berdasarkan metadata"
    if score >= 60:
        return "Kecocokan tinggi dengan beberapa kesamaan tema"
    if score >= 40:
        return "Kecocokan sedang dengan sedikit kesamaan"
    return "Kecocokan rendah - pertimbangkan review manual"


def direct_metadata_match(book: CatalogRecord, book_metadata: BookMetadata,
                          playlist: PlaylistRecord, playlist_metadata: PlaylistMetadata) -> MatchResult:
    book_themes = book_metadata.key_themes or book_metadata.subject_categories
    playlist_locations = (playlist_metadata.geographical_focus + playlist_metadata.modern_equivalents
                          + playlist_metadata.historical_names)
    book_keywords = " ".join(book_metadata.key_themes)
    playlist_keywords = " ".join(playlist_metadata.keywords or playlist_metadata.key_themes)

    components = (
        (theme_match(book_themes, playlist_metadata.key_themes), 0.4, "tema_sejalan"),
        (geographic_match(book_metadata.geographic_focus, playlist_locations), 0.3, "lokasi_serumpun"),
        (content_type_match(book_metadata.content_type, playlist_content_type(playlist)), 0.2,
         "jenis_konten_sesuai"),
        (keyword_match(f"{book.title} {book_keywords}", f"{playlist.name} {playlist_keywords}"), 0.1,
         "kata_kunci_serupa"),
    )
    score = sum(value * weight for value, weight, _ in components)
    factors = [factor for value, _, factor in components if value > 0]
    final = min(100, _round(score))

    return MatchResult(
        match_score=final,
        confidence=0.7 if factors else 0.3,
        reasoning=match_reasoning(final),
        key_factors=factors,
        playlist_id=playlist.id,
        book_id=book.id,
        match_type="direct_metadata",
    )


def heuristic_match(book: CatalogRecord, book_metadata: BookMetadata,
                    playlist: PlaylistRecord, playlist_metadata: PlaylistMetadata) -> MatchResult:
    """Title and theme overlap, used when the model gives no usable score."""
    title = (book.title or "").lower()
    name = (playlist.name or "").lower()
    score = 50
    if "sejarah" in title and "sejarah" in name:
        score += 30
    if "indonesia" in title and "indonesia" in name:
        score += 20
    if "kebangsaan" in title and "sejarah" in name:
        score += 15
    shared = [theme for theme in book_metadata.key_themes
              if any(theme.lower() in other.lower() or other.lower() in theme.lower()
                     for other in playlist_metadata.key_themes)]
    score += len(shared) * 10

    return MatchResult(
        match_score=min(100, score),
        confidence=FALLBACK_CONFIDENCE,
        reasoning="Analisis sistem: Kecocokan berdasarkan judul dan tema",
        key_factors=["title_matching", "theme_analysis"],
        playlist_id=playlist.id,
        book_id=book.id,
        is_fallback=True,
        match_type="enhanced_fallback",
    )


def clamp_score(value) -> int:
    """Model scores as 0-100 ints; anything unreadable counts as 50."""
    if isinstance(value, bool) or value is None:
        return DEFAULT_AI_SCORE
    if not isinstance(value, (int, float)):
        match = _LEADING_INT.match(str(value))
        if not match:
            return DEFAULT_AI_SCORE
        value = int(match.group(1))
    return max(0, min(100, _round(max(value, 0))))


def parse_expert_response(text: str) -> Dict[str, object]:
    """
    Read ``{"matchScore": .., "reason": ..}`` from model output.

    Raises:
        ValueError: neither an object nor a score field could be found
    """
    try:
        data = parse_json_object(text)
    except ValueError:
        cleaned = strip_code_fences(text)
        score = _SCORE_FIELD.search(cleaned)
        if not score:
            raise
        reason = _REASON_FIELD.search(cleaned)
        data = {"matchScore": int(score.group(1)), "reason": reason.group(1) if reason else ""}
    raw_score = data.get("matchScore", data.get("match_score"))
    reason = str(data.get("reason") or data.get("reasoning") or "").strip()
    return {"score": clamp_score(raw_score), "reason": reason or "Analisis kecocokan langsung oleh AI"}


class PlaylistMatcher:
    def __init__(self, books: BookStore = None, playlists: PlaylistStore = None,
                 gateway: TextCompletionGateway = None, builder: PromptBuilder = None):
        self.books = books or BookStore()
        self.playlists = playlists or PlaylistStore()
        self._gateway = gateway
        self.builder = builder or PromptBuilder()

    @property
    def gateway(self) -> TextCompletionGateway:
        if self._gateway is None:
            self._gateway = get_gateway()
        return self._gateway

    def _book_with_metadata(self, book_id: int):
        book, stored = self.books.get_book(book_id)
        if stored is not None and stored.structured_metadata.has_content():
            return book, stored.structured_metadata
        return book, basic_metadata_from_title(book)

    def expert_match(self, book: CatalogRecord, book_metadata: BookMetadata,
                     playlist: PlaylistRecord, playlist_metadata: PlaylistMetadata) -> MatchResult:
        prompt = self.builder.build_match_prompt(
            book.title, book_metadata.key_themes, playlist.name, playlist_metadata.key_themes)
        text = self.gateway.complete(prompt, max_output_tokens=300, temperature=0.1)
        if text is None:
            logger.info(f"[MATCH] No AI answer for book {book.id} / playlist {playlist.id}, using heuristic")
            return heuristic_match(book, book_metadata, playlist, playlist_metadata)
        try:
            parsed = parse_expert_response(text)
        except ValueError as e:
            logger.warning(f"[MATCH] Unreadable AI match response: {e}")
            return heuristic_match(book, book_metadata, playlist, playlist_metadata)
        return MatchResult(
            match_score=parsed["score"],
            confidence=EXPERT_CONFIDENCE,
            reasoning=parsed["reason"],
            key_factors=["expert_ai_analysis"],
            playlist_id=playlist.id,
            book_id=book.id,
            match_type="expert_direct_ai",
        )

    def analyze(self, book_id: int, playlist_id: str) -> MatchResult:
        """
        Expert match for one book and playlist; the score is stored on the playlist.

        Raises:
            BookNotFoundError, PlaylistNotFoundError: unknown ids
        """
        playlist = self.playlists.get(playlist_id)
        book, book_metadata = self._book_with_metadata(book_id)
        result = self.expert_match(book, book_metadata, playlist, playlist_metadata_of(playlist))
        logger.info(f"[MATCH] Book {book_id} / playlist {playlist_id}: {result.match_score} ({result.match_type})")
        try:
            self.save_score(playlist_id, book_id, result)
        except Exception:
            # the analysis itself is still returned
            logger.error(f"[MATCH] Failed to store score for playlist {playlist_id}", exc_info=True)
        return result

    def save_score(self, playlist_id: str, book_id: int, result) -> StoredMatchScore:
        score = StoredMatchScore(
            match_score=result.match_score, confidence=result.confidence, reasoning=result.reasoning)
        return self.playlists.save_match_score(playlist_id, book_id, score)

    def get_score(self, playlist_id: str, book_id: int) -> Optional[StoredMatchScore]:
        return self.playlists.get_match_score(playlist_id, book_id)

    def recommend(self, book_id: int, limit: int = 3) -> List[PlaylistRecommendation]:
        """
        Best playlists for a book by metadata score, no AI involved.

        Playlists scoring under 10 are dropped unless none reach it, in which
        case the top ``limit`` are returned anyway.
        """
        book, book_metadata = self._book_with_metadata(book_id)
        scored = []
        for playlist in self.playlists.list_all():
            result = direct_metadata_match(book, book_metadata, playlist, playlist_metadata_of(playlist))
            scored.append((playlist, result))
        scored.sort(key=lambda item: -item[1].match_score)

        top = [item for item in scored if item[1].match_score >= 10][:limit] or scored[:limit]
        return [
            PlaylistRecommendation(**result.model_dump(), playlist_name=playlist.name)
            for playlist, result in top
        ]
