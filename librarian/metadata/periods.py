"""Period normalizer: natural-language periods to canonical "YYYY-YYYY" ranges."""
import re
from typing import Optional, Tuple

_RANGE = re.compile(r"(\d{4})\s*[-–—/]\s*(\d{4})")
_YEAR = re.compile(r"\d{4}")
_DECADE = re.compile(r"(?:tahun\s+)?(\d{3})0\s*(?:-\s*an|an|'?s)")
# "tahun 1850", "circa 1850", "sekitar tahun 1850", "c. 1850"
_APPROXIMATE = re.compile(r"^(?:(?:sekitar|kira-kira|tahun|thn\.?|circa|ca\.|c\.|around|about)\s*)+")
_CATALOG_YEAR = re.compile(r"(?<!\d)(\d{4})(?!\d)")
_CATALOG_CENTURY = re.compile(r"\[(\d{2})-\?\]")

_ID_CENTURY = re.compile(r"\babad\s*(?:ke\s*-?\s*)?(\d{1,2}|[ivxlc]+)\b")
_EN_CENTURY = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)[\s-]+century\b")
_EN_CENTURY_WORDS = re.compile(
    r"\b(fifteenth|sixteenth|seventeenth|eighteenth|nineteenth|twentieth|twenty[\s-]first)"
    r"[\s-]+century\b"
)
_ORDINAL_WORDS = {
    "fifteenth": 15, "sixteenth": 16, "seventeenth": 17, "eighteenth": 18,
    "nineteenth": 19, "twentieth": 20, "twenty first": 21, "twenty-first": 21,
}
_ROMAN = {"i": 1, "v": 5, "x": 10, "l": 50, "c": 100}

# (offset of first year, offset of last year) inside a century
_EARLY = re.compile(r"\b(awal|permulaan|early)\b")
_MID = re.compile(r"\b(pertengahan|mid|middle)\b")
_LATE = re.compile(r"\b(akhir|penghujung|late)\b")
_SPANS = ((_EARLY, (0, 30)), (_MID, (30, 70)), (_LATE, (70, 99)))
_WHOLE = (0, 99)

# Checked in order; the specific eras come before the broad colonial one.
NAMED_ERAS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"\bvoc\b|\bkompeni\b"), "1602-1799"),
    (re.compile(r"pendudukan jepang|zaman jepang|masa jepang|japanese occupation"), "1942-1945"),
    (re.compile(r"\brevolusi\b|perang kemerdekaan|\brevolution\b"), "1945-1949"),
    (re.compile(r"orde lama|old order"), "1945-1966"),
    (re.compile(r"orde baru|new order"), "1966-1998"),
    (re.compile(r"(?<!pra-)\bkolonial\b|hindia belanda|(?<!pre-)\bcolonial\b|dutch east indies"),
     "1800-1942"),
)


def roman_to_int(numeral: str) -> int:
    total = 0
    values = [_ROMAN[ch] for ch in numeral.lower()]
    for index, value in enumerate(values):
        if index + 1 < len(values) and value < values[index + 1]:
            total -= value
        else:
            total += value
    return total


def _century_number(text: str) -> Optional[int]:
    match = _ID_CENTURY.search(text)
    if match:
        token = match.group(1)
        return int(token) if token.isdigit() else roman_to_int(token)
    match = _EN_CENTURY.search(text)
    if match:
        return int(match.group(1))
    match = _EN_CENTURY_WORDS.search(text)
    if match:
        return _ORDINAL_WORDS[re.sub(r"\s+", " ", match.group(1))]
    return None


def _century_range(text: str) -> str:
    century = _century_number(text)
    if century is None or not 1 <= century <= 21:
        return ""
    base = (century - 1) * 100
    first, last = _WHOLE
    for pattern, span in _SPANS:
        if pattern.search(text):
            first, last = span
            break
    return f"{base + first:04d}-{base + last:04d}"


def normalize_period(value) -> str:
    """
    Map a period description to ``"YYYY-YYYY"``.

    Accepts a range or a single year (a single year becomes a one-year
    range), optionally bracketed or prefixed with "tahun", "sekitar" or
    "circa". Also decades, century phrases in Indonesian or English and a
    few named Indonesian eras. Anything else becomes ``""``.

    >>> normalize_period("mid-19th century")
    '1830-1870'
    >>> normalize_period("abad ke-19")
    '1800-1899'
    """
    if value is None:
        return ""
    text = str(value).strip().lower()
    if not text:
        return ""

    exact = _APPROXIMATE.sub("", text).strip("[]()? ")
    match = _RANGE.fullmatch(exact)
    if match:
        start, end = match.groups()
        return f"{start}-{end}" if int(start) <= int(end) else ""
    if _YEAR.fullmatch(exact):
        return f"{exact}-{exact}"
    match = _DECADE.fullmatch(exact)
    if match:
        return f"{match.group(1)}0-{match.group(1)}9"

    century = _century_range(text)
    if century:
        return century

    for pattern, period in NAMED_ERAS:
        if pattern.search(text):
            return period
    return ""


def extract_year(value) -> Optional[int]:
    """
    First plausible year in a catalog year string.

    Catalog entries look like ``"1923"``, ``"[1850]"``, ``"[1901-1903]"`` or
    ``"[18-?]"`` (century only, read as its first year). Years outside
    1000-2999 are ignored.
    """
    if value is None:
        return None
    text = str(value)
    match = _CATALOG_YEAR.search(text)
    if match:
        year = int(match.group(1))
        return year if 1000 <= year <= 2999 else None
    match = _CATALOG_CENTURY.search(text)
    if match:
        return int(match.group(1)) * 100
    return None
