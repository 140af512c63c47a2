#!/usr/bin/env python3
"""
Generation module for the library assistant.

This module handles text completion using the Gemini LLM API.
"""

import requests

from .config import Config
from ..utils.logger import get_logger

logger = get_logger()


class GenerationError(Exception):
    """The provider did not return usable text."""


class RateLimitedError(GenerationError):
    """The provider answered HTTP 429."""


class GenerationClient:
    """Client for generating text using Gemini LLM API."""

    def __init__(self, api_key: str = None, model: str = None, timeout: float = None):
        """Initialize the generation client."""
        self.api_key = api_key or Config.GEMINI_API_KEY
        self.llm_model = model or Config.GEMINI_MODEL
        self.timeout = timeout or Config.GEMINI_TIMEOUT_SECONDS
        self.api_base_url = f"https://generativelanguage.googleapis.com/v1beta/models/{self.llm_model}:generateContent"

        if not self.api_key:
            raise ValueError("Gemini API key is required")

    def generate_answer(self, prompt: str, max_output_tokens: int = 500, temperature: float = 0.7) -> str:
        """
        Generate text using the Gemini LLM.

        Args:
            prompt: Formatted prompt for the LLM
            max_output_tokens: Upper bound on the generated length
            temperature: Sampling temperature

        Returns:
            Generated text

        Raises:
            RateLimitedError: the provider rejected the call with HTTP 429
            GenerationError: network failure, timeout, or malformed response
        """
        logger.debug(f"Generating with Gemini, prompt length: {len(prompt)}")

        payload = {
            "contents": [
                {"parts": [{"text": prompt}]}
            ],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
            }
        }

        try:
            response = requests.post(
                self.api_base_url,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            raise GenerationError(f"Gemini request timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise GenerationError(f"Error calling Gemini: {str(e)}") from e

        if response.status_code == 429:
            raise RateLimitedError("Gemini rate limit reached (HTTP 429)")
        if response.status_code != 200:
            logger.debug(f"Gemini error response body: {response.text}")
            raise GenerationError(f"Gemini API error: {response.status_code}")

        try:
            data = response.json()
            answer = data["candidates"][0]["content"]["parts"][0]["text"].strip()
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GenerationError(f"Error parsing generation response: {str(e)}") from e

        logger.debug(f"Extracted answer, length: {len(answer)}")
        return answer
