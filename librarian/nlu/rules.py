"""Rule-based intent table and matcher for library FAQ answers."""
from typing import NamedTuple, Sequence, Tuple


class IntentRule(NamedTuple):
    name: str
    patterns: Tuple[str, ...]
    response: str
    confidence: float


class Classification(NamedTuple):
    response: str
    confidence: float
    rule: str = ""


FALLBACK_RESPONSE = (
    "Halo! Saya asisten pustakawan layanan buku langka, Perpustakaan Nasional. "
    "Tanyakan tentang: jam buka, lokasi, peminjaman buku, syarat jadi anggota, "
    "atau ketik \"cari buku <topik>\" untuk mencari koleksi."
)
FALLBACK_CONFIDENCE = 0.1
MIN_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.95

# Ordered: on equal confidence the earlier rule wins.
INTENT_RULES: Tuple[IntentRule, ...] = (
    IntentRule(
        "greeting",
        ("selamat pagi", "selamat siang", "selamat sore", "selamat malam",
         "assalamualaikum", "halo", "hai", "hello"),
        "Halo! Saya Asisten Pustakawan Koleksi Buku Langka 🤖 Ada yang bisa saya bantu "
        "tentang koleksi, layanan, atau pencarian buku?",
        0.9,
    ),
    IntentRule(
        "thanks",
        ("terima kasih", "makasih", "thank you", "thanks"),
        "Sama-sama! Senang bisa membantu. Jangan ragu bertanya lagi tentang koleksi kami. 📚",
        0.9,
    ),
    IntentRule(
        "hours",
        ("jam buka", "jam operasional", "jam layanan", "buka jam", "jam berapa", "hari libur",
         "jadwal"),
        "🕐 Perpustakaan buka:\n• Senin-Jumat: 08.00-19.00\n• Sabtu-Minggu: 09.00-16.00",
        0.9,
    ),
    IntentRule(
        "location",
        ("lokasi", "alamat", "dimana", "di mana", "letak", "gedung"),
        "📍 Gedung Perpustakaan Nasional Lantai 14\n"
        "Jl. Medan Merdeka Selatan No.11, Gambir, Jakarta Pusat",
        0.9,
    ),
    IntentRule(
        "borrowing",
        ("cara meminjam", "cara pinjam", "meminjam", "pinjam", "peminjaman"),
        "📚 Koleksi buku langka hanya dibaca di tempat:\n"
        "1. Isi pemesanan koleksi secara online\n"
        "2. Bawa kartu anggota / identitas asli\n"
        "3. Pustakawan akan mengambilkan koleksi untuk Anda",
        0.85,
    ),
    IntentRule(
        "membership",
        ("syarat anggota", "jadi anggota", "kartu anggota", "keanggotaan", "syarat", "anggota",
         "daftar anggota"),
        "📝 Syarat jadi anggota:\n• KTP atau identitas resmi\n• Mengisi formulir pendaftaran online",
        0.85,
    ),
    IntentRule(
        "contact",
        ("kontak", "hubungi", "telepon", "telpon", "whatsapp", "email", "nomor"),
        "📞 Kontak kami:\n• WhatsApp: +6285717147303\n• Email: info_pujasintara@perpusnas.go.id",
        0.9,
    ),
    IntentRule(
        "rare_collection",
        ("koleksi langka", "buku langka", "naskah kuno", "buku kuno", "manuskrip"),
        "📜 Kami memiliki lebih dari 85.000 judul buku langka. Gunakan fitur pencarian di "
        "beranda atau ketik \"cari buku <topik>\" untuk menemukan koleksi.",
        0.8,
    ),
    IntentRule(
        "reading_room",
        ("ruang baca", "ruang baca khusus", "reservasi", "pemesanan", "booking"),
        "🪑 Pemesanan buku langka dan ruang baca khusus dilakukan online melalui website kami.",
        0.8,
    ),
    IntentRule(
        "facilities",
        ("wifi", "fasilitas", "parkir", "loker", "fotokopi"),
        "🏛️ Fasilitas: ruang baca, WiFi gratis, loker penitipan barang, dan layanan reproduksi "
        "koleksi sesuai ketentuan.",
        0.7,
    ),
    IntentRule(
        "identity",
        ("siapa kamu", "kamu siapa", "kamu bot", "anda siapa"),
        "Saya asisten virtual pustakawan koleksi buku langka Perpustakaan Nasional RI.",
        0.8,
    ),
)


def match_quality(pattern: str, message_words: int) -> float:
    """Phrase hits are strong; single-word hits in long messages are weak."""
    if len(pattern.split()) > 1:
        return 0.8
    if message_words > 4:
        return 0.4
    return 0.6


def classify(message: str, rules: Sequence[IntentRule] = INTENT_RULES) -> Classification:
    """Return the best-confidence rule answer, or the catch-all when nothing is strong enough."""
    lowered = (message or "").lower()
    words = len(lowered.split())

    best = Classification(FALLBACK_RESPONSE, 0.0)
    for rule in rules:
        for pattern in rule.patterns:
            if pattern not in lowered:
                continue
            confidence = round(min(MAX_CONFIDENCE, rule.confidence * match_quality(pattern, words)), 3)
            if confidence > best.confidence:
                best = Classification(rule.response, confidence, rule.name)

    if best.confidence < MIN_CONFIDENCE:
        return Classification(FALLBACK_RESPONSE, FALLBACK_CONFIDENCE)
    return best
