#!/usr/bin/env python3
"""
Text completion gateway.

Wraps the generation client with a per-window request quota and a short-lived
response cache. ``complete`` never raises: a ``None`` result means "AI is
unavailable right now, use a fallback".
"""

import threading
import time
from typing import Callable, Optional

from cachetools import TTLCache

from .config import Config
from .generate import GenerationClient, RateLimitedError
from ..utils.logger import get_logger

logger = get_logger()


class TextCompletionGateway:
    """Quota-limited, cached access to a text completion provider.

    The request counter, its window start and the cache are shared by every
    caller of one instance and are only touched under ``self._lock``. The
    provider call itself runs outside the lock.
    """

    def __init__(self, provider=None,
                 max_requests: int = None,
                 window_seconds: float = None,
                 cache_ttl: float = None,
                 cache_size: int = None,
                 clock: Callable[[], float] = time.monotonic):
        self.provider = provider
        self.max_requests = Config.AI_MAX_REQUESTS_PER_WINDOW if max_requests is None else max_requests
        self.window_seconds = Config.AI_QUOTA_WINDOW_SECONDS if window_seconds is None else window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._request_count = 0
        self._window_started = clock()
        self._cache = TTLCache(
            maxsize=cache_size or Config.AI_CACHE_MAX_ENTRIES,
            ttl=Config.AI_CACHE_TTL_SECONDS if cache_ttl is None else cache_ttl,
            timer=clock,
        )

    @staticmethod
    def normalize_key(text: str) -> str:
        return (text or "").strip().lower()

    @property
    def request_count(self) -> int:
        with self._lock:
            return self._request_count

    def complete(self, prompt: str, max_output_tokens: Optional[int] = None,
                 temperature: Optional[float] = None) -> Optional[str]:
        """Return provider text for ``prompt``, a cached copy, or None."""
        if self.provider is None:
            logger.info("[GATEWAY] No provider configured; skipping AI")
            return None

        key = self.normalize_key(prompt)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                logger.info("[GATEWAY] Using cached AI response")
                return cached
            if not self._reserve_request():
                logger.info(f"[GATEWAY] Request quota reached ({self.max_requests}/window)")
                return None
            request_number = self._request_count

        logger.info(f"[GATEWAY] Request #{request_number}/{self.max_requests}")
        options = {}
        if max_output_tokens is not None:
            options["max_output_tokens"] = max_output_tokens
        if temperature is not None:
            options["temperature"] = temperature

        try:
            text = self.provider.generate_answer(prompt, **options)
        except RateLimitedError:
            logger.warning("[GATEWAY] Provider rate limited this cycle; using fallback")
            return None
        except Exception as e:
            logger.error(f"[GATEWAY] Provider error: {e}")
            return None

        if not text or not text.strip():
            logger.warning("[GATEWAY] Provider returned empty text")
            return None

        with self._lock:
            self._cache[key] = text
        return text

    def _reserve_request(self) -> bool:
        """Reset the window if it elapsed, then take one request slot. Caller holds the lock."""
        now = self._clock()
        if now - self._window_started >= self.window_seconds:
            logger.info("[GATEWAY] Rate limit counter reset")
            self._request_count = 0
            self._window_started = now
        if self._request_count >= self.max_requests:
            return False
        self._request_count += 1
        return True


_gateway: Optional[TextCompletionGateway] = None
_gateway_lock = threading.Lock()


def get_gateway() -> TextCompletionGateway:
    """Process-wide gateway; without an API key it always answers None."""
    global _gateway
    with _gateway_lock:
        if _gateway is None:
            provider = GenerationClient() if Config.GEMINI_API_KEY else None
            _gateway = TextCompletionGateway(provider=provider)
        return _gateway
