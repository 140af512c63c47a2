"""Book description and structured metadata generation.

Model output is rarely valid JSON, so several parse strategies are tried in
order and the first structurally usable record wins:

1. two-step: a description call, then a metadata call read with per-field
   regex extraction
2. structured markers: one combined call, ``[DESKRIPSI]``/``[METADATA]`` blocks
3. delimited sections: the same combined response read by its headings
4. direct JSON: the same combined response parsed as one object

Strategies 2-4 share a single combined call that is only made when the
two-step strategy fails. When nothing works, an empty placeholder record
flagged ``ai_failed`` is returned; ``generate`` never raises.
"""
import re
from typing import Any, Dict, Optional

from pydantic.alias_generators import to_camel

from ..app.gateway import TextCompletionGateway, get_gateway
from ..app.prompt_builder import (
    DESCRIPTION_END,
    DESCRIPTION_START,
    METADATA_END,
    METADATA_START,
    PromptBuilder,
)
from ..schemas.metadata_models import BookMetadata, BookSubject, GeneratedMetadata
from ..utils.logger import get_logger
from .json_repair import extract_fields, parse_json_object, strip_code_fences
from .periods import normalize_period

logger = get_logger()

BOOK_ARRAY_FIELDS = ("key_themes", "geographic_focus", "historical_period", "subject_categories")
BOOK_STRING_FIELDS = ("content_type", "temporal_coverage")

_MARKED_DESCRIPTION = re.compile(
    re.escape(DESCRIPTION_START) + r"(.*?)" + re.escape(DESCRIPTION_END), re.DOTALL)
_MARKED_METADATA = re.compile(
    re.escape(METADATA_START) + r"(.*?)(?:" + re.escape(METADATA_END) + r"|$)", re.DOTALL)
_SECTIONS = re.compile(
    r"[#*\s]*(?:deskripsi|description)[*\s]*:(.*?)\n[#*\s]*metadata[*\s]*:(.*)",
    re.DOTALL | re.IGNORECASE,
)


def _field(data: Dict[str, Any], name: str):
    return data[name] if name in data else data.get(to_camel(name))


def normalize_book_metadata(data: Dict[str, Any]) -> BookMetadata:
    """Coerce any parsed dict into a well-typed, non-placeholder BookMetadata."""
    values: Dict[str, Any] = {}
    for name in BOOK_ARRAY_FIELDS:
        raw = _field(data, name)
        if not isinstance(raw, list):
            raw = []
        values[name] = [str(item).strip() for item in raw
                        if isinstance(item, (str, int, float)) and str(item).strip()]
    for name in BOOK_STRING_FIELDS:
        raw = _field(data, name)
        if isinstance(raw, list):
            # models sometimes answer ["sejarah"] for a single value
            raw = next((item for item in raw if isinstance(item, str) and item.strip()), "")
        elif not isinstance(raw, (str, int, float)):
            raw = ""
        values[name] = str(raw).strip() if raw else ""
    values["temporal_coverage"] = normalize_period(values["temporal_coverage"])
    return BookMetadata(**values, is_empty=False, ai_failed=False)


def clean_description(text: Optional[str]) -> str:
    text = strip_code_fences(text or "")
    return text.strip().strip('"').strip()


def fallback_description(subject: BookSubject) -> str:
    if subject.current_description and subject.current_description.strip():
        return subject.current_description.strip()
    description = f'Buku "{subject.title}"'
    if subject.author:
        description += f" karya {subject.author}"
    if subject.year:
        description += f" ({subject.year})"
    return description + " ."


class BookMetadataGenerator:
    def __init__(self, gateway: TextCompletionGateway = None, builder: PromptBuilder = None):
        self._gateway = gateway
        self.builder = builder or PromptBuilder()

    @property
    def gateway(self) -> TextCompletionGateway:
        if self._gateway is None:
            self._gateway = get_gateway()
        return self._gateway

    def generate(self, subject: BookSubject) -> GeneratedMetadata:
        combined: Dict[str, Optional[str]] = {}

        def fetch_combined() -> Optional[str]:
            if "text" not in combined:
                combined["text"] = self.gateway.complete(
                    self.builder.build_combined_prompt(subject),
                    max_output_tokens=800, temperature=0.3)
            return combined["text"]

        strategies = (
            ("two-step", lambda: self._two_step(subject)),
            ("structured-markers", lambda: self._structured_markers(fetch_combined())),
            ("delimited-sections", lambda: self._delimited_sections(fetch_combined())),
            ("direct-json", lambda: self._direct_json(fetch_combined())),
        )
        for name, strategy in strategies:
            try:
                result = strategy()
            except Exception as e:
                logger.warning(f"[METADATA] Strategy '{name}' failed for '{subject.title}': {e}")
                continue
            if result is not None:
                logger.info(f"[METADATA] Strategy '{name}' succeeded for '{subject.title}'")
                return result

        logger.warning(f"[METADATA] All strategies failed for '{subject.title}', using placeholder")
        return GeneratedMetadata(
            description=fallback_description(subject),
            metadata=BookMetadata.placeholder(),
        )

    def _two_step(self, subject: BookSubject) -> Optional[GeneratedMetadata]:
        description = clean_description(self.gateway.complete(
            self.builder.build_description_prompt(subject), max_output_tokens=400, temperature=0.3))
        if not description:
            return None
        raw = self.gateway.complete(
            self.builder.build_metadata_prompt(subject, description),
            max_output_tokens=400, temperature=0.1)
        if not raw:
            return None
        metadata = normalize_book_metadata(extract_fields(raw, BOOK_ARRAY_FIELDS, BOOK_STRING_FIELDS))
        if not metadata.has_content():
            return None
        return GeneratedMetadata(description=description, metadata=metadata)

    def _structured_markers(self, text: Optional[str]) -> Optional[GeneratedMetadata]:
        if not text:
            return None
        description = _MARKED_DESCRIPTION.search(text)
        metadata = _MARKED_METADATA.search(text)
        if not description or not metadata:
            return None
        return self._assemble(description.group(1), parse_json_object(metadata.group(1)))

    def _delimited_sections(self, text: Optional[str]) -> Optional[GeneratedMetadata]:
        if not text:
            return None
        match = _SECTIONS.search(strip_code_fences(text))
        if not match:
            return None
        return self._assemble(match.group(1), parse_json_object(match.group(2)))

    def _direct_json(self, text: Optional[str]) -> Optional[GeneratedMetadata]:
        if not text:
            return None
        data = parse_json_object(text)
        description = data.get("description") or data.get("deskripsi")
        nested = data.get("metadata")
        return self._assemble(description, nested if isinstance(nested, dict) else data)

    @staticmethod
    def _assemble(description, data: Dict[str, Any]) -> Optional[GeneratedMetadata]:
        description = clean_description(description if isinstance(description, str) else "")
        if not description:
            return None
        metadata = normalize_book_metadata(data)
        if not metadata.has_content():
            return None
        return GeneratedMetadata(description=description, metadata=metadata)
