"""Catalog and metadata pydantic models with stricter types.

- Array fields default to empty lists so persisted JSON never carries nulls.
- Field names are snake_case internally and camelCase on the wire.
- BookMetadata.temporal_coverage is either "" or "YYYY-YYYY".
"""
from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DescriptionSource(str, Enum):
    ai_enhanced = "ai-enhanced"
    ai_failed = "ai-failed"
    rule_based = "rule-based"


class CatalogRecord(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    title: str = ""
    author: Optional[str] = None
    publisher: Optional[str] = None
    publication_year: Optional[str] = None
    physical_description: Optional[str] = None
    call_number: Optional[str] = None


class ScoredBook(CatalogRecord):
    """A catalog record copy carrying query-time relevance data."""
    relevance_score: int = 0
    has_physical_description: bool = False
    has_call_number: bool = False


class LibraryStats(CamelModel):
    total_books: int = 0
    estimated_titles: int = 10000
    years_covered: str = "1800-2024"
    main_collections: List[str] = Field(
        default_factory=lambda: ["Sejarah", "Sastra", "Sains", "Seni", "Filsafat"]
    )


class SearchResult(CamelModel):
    search_term: str = ""
    books: List[ScoredBook] = Field(default_factory=list)
    total_books: int = 0
    has_results: bool = False
    library_stats: Optional[LibraryStats] = None


class CategoryMatch(CamelModel):
    category: str
    subcategories: List[str] = Field(default_factory=list)


class LibraryContext(SearchResult):
    context_type: str = "keyword_search"
    categories: List[CategoryMatch] = Field(default_factory=list)
    authors: List[str] = Field(default_factory=list)
    related_topics: List[str] = Field(default_factory=list)


class BookMetadata(CamelModel):
    key_themes: List[str] = Field(default_factory=list)
    geographic_focus: List[str] = Field(default_factory=list)
    historical_period: List[str] = Field(default_factory=list)
    content_type: str = ""
    subject_categories: List[str] = Field(default_factory=list)
    temporal_coverage: str = ""
    is_empty: bool = False
    ai_failed: bool = False

    @classmethod
    def placeholder(cls) -> "BookMetadata":
        """All fields empty; marks a record produced without usable AI output."""
        return cls(is_empty=True, ai_failed=True)

    def has_content(self) -> bool:
        return any([
            self.key_themes, self.geographic_focus, self.historical_period,
            self.content_type, self.subject_categories, self.temporal_coverage,
        ])


class BookSubject(BaseModel):
    title: str
    year: Optional[str] = None
    author: Optional[str] = None
    current_description: Optional[str] = None


class GeneratedMetadata(BaseModel):
    description: str
    metadata: BookMetadata


class PlaylistMetadata(CamelModel):
    historical_names: List[str] = Field(default_factory=list, max_length=3)
    modern_equivalents: List[str] = Field(default_factory=list, max_length=2)
    key_themes: List[str] = Field(default_factory=list, max_length=3)
    geographical_focus: List[str] = Field(default_factory=list, max_length=2)
    time_period: str = ""
    keywords: List[str] = Field(default_factory=list, max_length=5)
    accuracy_reasoning: str = ""
    generated_at: datetime = Field(default_factory=utcnow)
    version: int = 1
    is_fallback: bool = False
    is_partial: bool = False


class PlaylistRecord(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    ai_metadata: Optional[Dict[str, Any]] = None
    metadata_generated_at: Optional[datetime] = None
    metadata_version: int = 0


class MatchResult(CamelModel):
    match_score: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    key_factors: List[str] = Field(default_factory=list)
    playlist_id: str
    book_id: int
    is_fallback: bool = False
    match_type: str


class PlaylistRecommendation(MatchResult):
    playlist_name: str


class StoredMatchScore(CamelModel):
    """Per-book entry of a playlist's stored match scores."""
    match_score: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""
    analyzed_at: datetime = Field(default_factory=utcnow)
