import uuid

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, JSON
from sqlalchemy.sql import func

from .database import Base


class Book(Base):
    __tablename__ = "books"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    author = Column(String, nullable=True, index=True)
    publisher = Column(String, nullable=True)
    publication_year = Column(String, nullable=True)  # catalog strings like "[1850]" or "1923"
    physical_description = Column(String, nullable=True)
    call_number = Column(String, nullable=True)

    description = Column(Text, nullable=True)
    description_source = Column(String, nullable=True)
    description_confidence = Column(Float, nullable=True)
    description_metadata = Column(JSON(none_as_null=True), nullable=True)
    description_updated_at = Column(DateTime(timezone=True), nullable=True)


class Playlist(Base):
    __tablename__ = "community_playlists"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    ai_metadata = Column(JSON(none_as_null=True), nullable=True)
    historical_names = Column(JSON(none_as_null=True), nullable=True)
    key_themes = Column(JSON(none_as_null=True), nullable=True)
    geographical_focus = Column(JSON(none_as_null=True), nullable=True)
    time_period = Column(String, nullable=True)
    accuracy_reasoning = Column(Text, nullable=True)
    metadata_generated_at = Column(DateTime(timezone=True), nullable=True)
    metadata_version = Column(Integer, nullable=False, default=0)
    ai_match_scores = Column(JSON(none_as_null=True), nullable=True)  # {book_id: StoredMatchScore}
