#!/usr/bin/env python3
"""
Configuration management for the library assistant backend.
"""

import os
from dotenv import load_dotenv

from ..utils.logger import get_logger

# Load environment variables from .env file
load_dotenv()

logger = get_logger()

_DEFAULT_DB_PATH = os.path.join(os.path.dirname(__file__), "..", "data", "library.db")


class Config:
    """Configuration class for the application."""

    # Gemini (Google) API Configuration
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    GEMINI_TIMEOUT_SECONDS = float(os.getenv("GEMINI_TIMEOUT_SECONDS", 20))

    # Gateway quota and cache
    AI_MAX_REQUESTS_PER_WINDOW = int(os.getenv("AI_MAX_REQUESTS_PER_WINDOW", 15))
    AI_QUOTA_WINDOW_SECONDS = float(os.getenv("AI_QUOTA_WINDOW_SECONDS", 3600))
    AI_CACHE_TTL_SECONDS = float(os.getenv("AI_CACHE_TTL_SECONDS", 300))
    AI_CACHE_MAX_ENTRIES = int(os.getenv("AI_CACHE_MAX_ENTRIES", 256))

    # Database Configuration
    DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{os.path.abspath(_DEFAULT_DB_PATH)}")

    # Batch metadata regeneration throttle
    PLAYLIST_BATCH_DELAY_SECONDS = float(os.getenv("PLAYLIST_BATCH_DELAY_SECONDS", 0.8))
    PLAYLIST_UPGRADE_DELAY_SECONDS = float(os.getenv("PLAYLIST_UPGRADE_DELAY_SECONDS", 1.0))

    # Library contact details
    LIBRARY_WHATSAPP = os.getenv("LIBRARY_WHATSAPP", "+6285717147303")
    LIBRARY_EMAIL = os.getenv("LIBRARY_EMAIL", "info_pujasintara@perpusnas.go.id")

    # Application Configuration
    APP_ENV = os.getenv("APP_ENV", "production").lower()
    CHAT_HISTORY_TURNS = 2
    SEARCH_CANDIDATE_LIMIT = 10

    @classmethod
    def is_development(cls) -> bool:
        return cls.APP_ENV == "development"

    @classmethod
    def debug_print(cls):
        logger.info(f"[CONFIG] GEMINI_MODEL={cls.GEMINI_MODEL} set={bool(cls.GEMINI_API_KEY)}")
        logger.info(f"[CONFIG] quota={cls.AI_MAX_REQUESTS_PER_WINDOW}/{cls.AI_QUOTA_WINDOW_SECONDS}s "
                    f"cache_ttl={cls.AI_CACHE_TTL_SECONDS}s")
        logger.info(f"[CONFIG] DATABASE_URL={cls.DATABASE_URL} APP_ENV={cls.APP_ENV}")

    @classmethod
    def validate(cls):
        """Validate configuration. Missing AI credentials only degrade to rule-based answers."""
        if not cls.GEMINI_API_KEY:
            logger.warning("[CONFIG] GEMINI_API_KEY is not set; AI answers are disabled")
        if cls.AI_MAX_REQUESTS_PER_WINDOW < 0:
            raise ValueError("AI_MAX_REQUESTS_PER_WINDOW must not be negative")
        return True


# Validate configuration on import
Config.validate()
