"""Security helpers: PII masking and safe logging (minimal)."""
import re

_LONG_DIGITS = re.compile(r"\+?\b\d[\d\-\s]{8,}\d\b")
_EMAIL = re.compile(r"\b[\w.+-]+@[\w-]+\.[\w.-]+\b")


def mask_pii(text: str) -> str:
    if not text:
        return ""
    masked = _EMAIL.sub("[EMAIL]", text)
    masked = _LONG_DIGITS.sub("[REDACTED]", masked)
    return masked
