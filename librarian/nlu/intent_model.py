"""Message-shape detectors that decide which chat branch handles a message."""
import re

SEARCH_VERBS = ("cari", "carikan", "mencari", "temukan", "tampilkan buku", "daftar buku",
                "rekomendasi buku", "search", "find")
BOOK_ABOUT_PHRASES = (("buku", "tentang"), ("buku", "mengenai"), ("book", "about"))
SHORT_REQUEST_MAX_WORDS = 6

BOOK_QUESTION_PHRASES = ("what is it about", "tentang apa", "apa isi", "isinya", "isi buku",
                         "ringkasan", "sinopsis", "summary", "review", "resensi", "ulasan",
                         "menceritakan", "bercerita tentang", "membahas apa")

GREETINGS = ("halo", "hai", "hi", "hello", "hey", "pagi", "siang", "sore", "malam",
             "selamat pagi", "selamat siang", "selamat sore", "selamat malam", "assalamualaikum")
THANKS = ("terima kasih", "makasih", "thanks", "thank you", "tengkyu")
ACKNOWLEDGEMENTS = ("ok", "oke", "okay", "baik", "siap", "sip", "ya", "iya", "tidak", "nggak",
                    "mantap", "noted")
HOURS_LOCATION_KEYWORDS = ("jam buka", "jam operasional", "jam berapa", "buka jam", "jadwal",
                           "lokasi", "alamat", "dimana", "di mana", "letak")

COMPLEX_CUES = ("how to", "bagaimana cara", "is there a special program", "apakah ada program",
                "please explain", "tolong jelaskan", "jelaskan")

_PUNCTUATION = re.compile(r"[^\w\s]")


def _words(message: str) -> int:
    return len((message or "").split())


def _plain(message: str) -> str:
    return " ".join(_PUNCTUATION.sub(" ", (message or "").lower()).split())


def is_explicit_search(message: str) -> bool:
    """Search verbs, or a short "buku tentang X" request; a question mark disqualifies both."""
    lowered = (message or "").lower()
    if "?" in lowered:
        return False
    if any(re.search(rf"\b{re.escape(verb)}\b", lowered) for verb in SEARCH_VERBS):
        return True
    return _words(lowered) <= SHORT_REQUEST_MAX_WORDS and any(
        a in lowered and b in lowered for a, b in BOOK_ABOUT_PHRASES
    )


def is_book_question(message: str) -> bool:
    lowered = (message or "").lower()
    if any(phrase in lowered for phrase in BOOK_QUESTION_PHRASES):
        return True
    return any(a in lowered and b in lowered for a, b in BOOK_ABOUT_PHRASES)


def _starts_with_any(plain: str, phrases) -> bool:
    return any(plain == p or plain.startswith(p + " ") for p in phrases)


def is_simple_message(message: str) -> bool:
    """Greetings, thanks, acknowledgements, very short messages, hours/location questions."""
    plain = _plain(message)
    words = len(plain.split())
    if words <= 3:
        return True
    if words <= 5 and _starts_with_any(plain, GREETINGS + THANKS + ACKNOWLEDGEMENTS):
        return True
    return any(keyword in plain for keyword in HOURS_LOCATION_KEYWORDS)


def is_complex_message(message: str) -> bool:
    lowered = (message or "").lower()
    words = _words(lowered)
    if "?" in lowered and words > 6:
        return True
    if any(cue in lowered for cue in COMPLEX_CUES):
        return True
    return words > 8


def should_escalate(message: str, rule_confidence: float, low_confidence: float = 0.3) -> bool:
    """Escalate to AI iff not simple and (rule answer is weak or the message is complex)."""
    if is_simple_message(message):
        return False
    return rule_confidence < low_confidence or is_complex_message(message)
