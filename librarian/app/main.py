#!/usr/bin/env python3
"""
Main FastAPI application for the library assistant.
"""

import traceback
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Config
from .controller import Controller
from ..data.catalog_store import BookNotFoundError, PlaylistNotFoundError
from ..data.database import create_tables
from ..metadata.descriptions import BookDescriptionService
from ..metadata.matching import PlaylistMatcher
from ..metadata.playlist_metadata import NoModeSelectedError, PlaylistMetadataService
from ..schemas.io_models import (
    BookDescriptionRequest,
    BookDescriptionResponse,
    ChatRequest,
    ChatResponse,
    MatchAnalysisRequest,
    MatchAnalysisResponse,
    MatchScoreResponse,
    PlaylistBatchResponse,
    PlaylistMetadataRequest,
    RecommendationRequest,
    RecommendationResponse,
    SaveMatchScoreRequest,
    SaveMatchScoreResponse,
)
from ..utils.logger import get_logger

logger = get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    Config.debug_print()
    create_tables()
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Library Assistant API",
    description="Rule-based and AI-assisted chat plus metadata generation for the rare book catalog",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize components
controller = Controller()
description_service = BookDescriptionService()
playlist_service = PlaylistMetadataService()
matcher = PlaylistMatcher()


def get_controller() -> Controller:
    return controller


def get_description_service() -> BookDescriptionService:
    return description_service


def get_playlist_service() -> PlaylistMetadataService:
    return playlist_service


def get_matcher() -> PlaylistMatcher:
    return matcher


def server_error(error: Exception) -> JSONResponse:
    """500 payload; development mode adds the traceback for operators."""
    content = {"success": False, "error": str(error) or error.__class__.__name__}
    if Config.is_development():
        content["details"] = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return JSONResponse(status_code=500, content=content)


@app.post("/api/chat", response_model=List[ChatResponse])
def chat(request: ChatRequest, controller: Controller = Depends(get_controller)):
    """
    Answer one chat message.

    Always returns a single-element list so the widget has something to render;
    only a missing message is rejected.
    """
    if request.message is None or not request.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")
    return [controller.handle_message(request.message, request.chat_history)]


@app.post("/api/generate-ai-description", response_model=BookDescriptionResponse)
def generate_ai_description(request: BookDescriptionRequest,
                            service: BookDescriptionService = Depends(get_description_service)):
    if request.book_id is None:
        raise HTTPException(status_code=400, detail="bookId is required")
    try:
        return service.describe(request)
    except BookNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"[METADATA] Description generation failed for book {request.book_id}", exc_info=True)
        return server_error(e)


@app.post("/api/playlists/generate-metadata", response_model=PlaylistBatchResponse)
def generate_playlist_metadata(request: PlaylistMetadataRequest,
                               service: PlaylistMetadataService = Depends(get_playlist_service)):
    try:
        return service.handle(request)
    except NoModeSelectedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PlaylistNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error("[PLAYLIST] Metadata generation failed", exc_info=True)
        return server_error(e)


@app.post("/api/ai-match-analysis", response_model=MatchAnalysisResponse)
def ai_match_analysis(request: MatchAnalysisRequest, matcher: PlaylistMatcher = Depends(get_matcher)):
    if request.book_id is None or not request.playlist_id:
        raise HTTPException(status_code=400, detail="bookId and playlistId are required")
    try:
        return MatchAnalysisResponse(success=True, data=matcher.analyze(request.book_id, request.playlist_id))
    except (BookNotFoundError, PlaylistNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"[MATCH] Analysis failed for book {request.book_id}", exc_info=True)
        return server_error(e)


@app.post("/api/save-ai-score", response_model=SaveMatchScoreResponse)
def save_ai_score(request: SaveMatchScoreRequest, matcher: PlaylistMatcher = Depends(get_matcher)):
    if request.book_id is None or not request.playlist_id or request.analysis is None:
        raise HTTPException(status_code=400, detail="playlistId, bookId and analysis are required")
    try:
        matcher.save_score(request.playlist_id, request.book_id, request.analysis)
    except PlaylistNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"[MATCH] Saving score failed for playlist {request.playlist_id}", exc_info=True)
        return server_error(e)
    return SaveMatchScoreResponse(success=True, message="AI score saved successfully")


@app.get("/api/get-ai-score", response_model=MatchScoreResponse)
def get_ai_score(playlist_id: Optional[str] = Query(None, alias="playlistId"),
                 book_id: Optional[int] = Query(None, alias="bookId"),
                 matcher: PlaylistMatcher = Depends(get_matcher)):
    if book_id is None or not playlist_id:
        raise HTTPException(status_code=400, detail="playlistId and bookId are required")
    try:
        return MatchScoreResponse(success=True, score=matcher.get_score(playlist_id, book_id))
    except PlaylistNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"[MATCH] Reading score failed for playlist {playlist_id}", exc_info=True)
        return server_error(e)


@app.post("/api/playlist-recommendations", response_model=RecommendationResponse)
def playlist_recommendations(request: RecommendationRequest, matcher: PlaylistMatcher = Depends(get_matcher)):
    """Best-fitting playlists for a book, scored from metadata only."""
    if request.book_id is None:
        raise HTTPException(status_code=400, detail="bookId is required")
    try:
        return RecommendationResponse(success=True, data=matcher.recommend(request.book_id, request.limit))
    except BookNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"[MATCH] Recommendations failed for book {request.book_id}", exc_info=True)
        return server_error(e)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
