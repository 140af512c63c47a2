"""Pydantic models for API I/O.

Requests accept the camelCase keys the website widget sends; responses are
serialized back with the same aliases.
"""
from enum import Enum
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .metadata_models import (
    BookMetadata,
    CamelModel,
    DescriptionSource,
    MatchResult,
    PlaylistRecommendation,
    StoredMatchScore,
    utcnow,
)


class ResponseType(str, Enum):
    book_search = "book_search"
    book_detail = "book_detail"
    ai_generated = "ai_generated"
    rule_based = "rule_based"
    error = "error"


class ChatHistoryItem(CamelModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    text: str = ""
    is_bot: Optional[bool] = Field(default=None, alias="isBot")


class ChatRequest(CamelModel):
    message: Optional[str] = None
    chat_history: List[ChatHistoryItem] = Field(default_factory=list)


class ChatResponse(BaseModel):
    text: str
    type: ResponseType
    confidence: float = Field(ge=0.0, le=1.0)


class BookDescriptionRequest(CamelModel):
    book_id: Optional[int] = None
    book_title: Optional[str] = None
    book_year: Optional[Union[int, str]] = None
    book_author: Optional[str] = None
    current_description: Optional[str] = None


class DescriptionOutcome(str, Enum):
    database_cache_full = "database-cache-full"
    ai_generated_full = "ai-generated-full"
    ai_failed_empty = "ai-failed-empty"


class BookDescriptionRecord(CamelModel):
    book_id: int
    description: str
    source: DescriptionSource
    confidence: float
    structured_metadata: BookMetadata
    generated_at: datetime


class BookDescriptionResponse(CamelModel):
    success: bool
    data: BookDescriptionRecord
    source: DescriptionOutcome


class PlaylistMetadataRequest(CamelModel):
    playlist_id: Optional[str] = None
    generate_all: bool = False
    fill_missing: bool = False
    upgrade_basic: bool = False


class PlaylistBatchItem(CamelModel):
    playlist_id: str
    playlist_name: str
    success: bool
    error: Optional[str] = None


class PlaylistBatchResponse(CamelModel):
    success: bool
    message: str
    data: List[PlaylistBatchItem] = Field(default_factory=list)


class MatchAnalysisRequest(CamelModel):
    book_id: Optional[int] = None
    playlist_id: Optional[str] = None


class MatchAnalysisResponse(CamelModel):
    success: bool
    data: MatchResult
    timestamp: datetime = Field(default_factory=utcnow)


class SaveMatchScoreRequest(CamelModel):
    playlist_id: Optional[str] = None
    book_id: Optional[int] = None
    analysis: Optional[StoredMatchScore] = None


class SaveMatchScoreResponse(CamelModel):
    success: bool
    message: str
    timestamp: datetime = Field(default_factory=utcnow)


class MatchScoreResponse(CamelModel):
    success: bool
    score: Optional[StoredMatchScore] = None
    timestamp: datetime = Field(default_factory=utcnow)


class RecommendationRequest(CamelModel):
    book_id: Optional[int] = None
    limit: int = Field(default=3, ge=1, le=10)


class RecommendationResponse(CamelModel):
    success: bool
    data: List[PlaylistRecommendation] = Field(default_factory=list)
