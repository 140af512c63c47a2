"""Controller / Orchestrator that routes a chat message to one answer.

Stages run in a fixed order and the first one that produces a reply wins:
explicit catalog search, questions about a specific book, then the rule
table with an optional AI escalation.
"""
from typing import List, Optional

from .gateway import TextCompletionGateway, get_gateway
from .postprocess import Postprocessor
from .preprocess import BOOK_QUESTION_STOP_WORDS, GENERAL_STOP_WORDS, extract_keywords
from .prompt_builder import PromptBuilder
from .retrieval import CatalogContextBuilder, CatalogSearch, describe_context
from ..nlu.intent_model import is_book_question, is_explicit_search, should_escalate
from ..nlu.rules import INTENT_RULES, MIN_CONFIDENCE, classify
from ..schemas.io_models import ChatHistoryItem, ChatResponse, ResponseType
from ..utils.logger import get_logger
from ..utils.security import mask_pii

logger = get_logger()

SEARCH_CONFIDENCE = 0.9
BOOK_DETAIL_CONFIDENCE = 0.8
BOOK_FALLBACK_CONFIDENCE = 0.5
AI_CONFIDENCE = 0.8
BOOK_QUESTION_CANDIDATES = 2


class Controller:
    def __init__(self, search: CatalogSearch = None,
                 context_builder: CatalogContextBuilder = None,
                 gateway: TextCompletionGateway = None,
                 builder: PromptBuilder = None,
                 postprocessor: Postprocessor = None,
                 rules=INTENT_RULES):
        self.search = search or CatalogSearch()
        self.context_builder = context_builder or CatalogContextBuilder(search=self.search)
        self._gateway = gateway
        self.builder = builder or PromptBuilder()
        self.postprocessor = postprocessor or Postprocessor()
        self.rules = rules

    @property
    def gateway(self) -> TextCompletionGateway:
        if self._gateway is None:
            self._gateway = get_gateway()
        return self._gateway

    def handle_message(self, message: str,
                       chat_history: Optional[List[ChatHistoryItem]] = None) -> ChatResponse:
        """Answer one chat message. Never raises."""
        try:
            return self._route(message, chat_history or [])
        except Exception:
            logger.error("[WORKFLOW] Chat pipeline failed", exc_info=True)
            return ChatResponse(
                text=self.postprocessor.format_error(),
                type=ResponseType.error,
                confidence=0.0,
            )

    def _route(self, message: str, chat_history: List[ChatHistoryItem]) -> ChatResponse:
        logger.info(f"[WORKFLOW] 1. Controller received message: '{mask_pii(message)}'")

        if is_explicit_search(message):
            keyword = extract_keywords(message, GENERAL_STOP_WORDS)
            logger.info(f"[WORKFLOW] 2. Explicit search detected, keyword: '{keyword}'")
            if len(keyword) > 2:
                return self._search_reply(keyword)

        if is_book_question(message):
            logger.info("[WORKFLOW] 3. Book question detected")
            return self._book_question_reply(message)

        classification = classify(message, self.rules)
        logger.info(f"[WORKFLOW] 4. Rule match '{classification.rule or 'fallback'}' "
                    f"confidence={classification.confidence}")

        if should_escalate(message, classification.confidence, MIN_CONFIDENCE):
            logger.info("[WORKFLOW] 5. Escalating to AI")
            context = self.context_builder.smart_context(message)
            prompt = self.builder.build_chat_prompt(message, chat_history, describe_context(context))
            text = self.gateway.complete(prompt)
            if text:
                return ChatResponse(
                    text=self.postprocessor.format_ai_text(text),
                    type=ResponseType.ai_generated,
                    confidence=AI_CONFIDENCE,
                )
            logger.info("[WORKFLOW] 5a. AI unavailable, using rule-based answer")

        logger.info("[WORKFLOW] 6. Returning rule-based answer")
        return ChatResponse(
            text=classification.response,
            type=ResponseType.rule_based,
            confidence=classification.confidence,
        )

    def _search_reply(self, keyword: str) -> ChatResponse:
        result = self.search.search(keyword)
        logger.info(f"[WORKFLOW] 2a. Search returned {len(result.books)} book(s)")
        if result.books:
            text = self.postprocessor.format_search_results(result)
        else:
            text = self.postprocessor.format_not_found(keyword)
        return ChatResponse(text=text, type=ResponseType.book_search, confidence=SEARCH_CONFIDENCE)

    def _book_question_reply(self, message: str) -> ChatResponse:
        keyword = extract_keywords(message, BOOK_QUESTION_STOP_WORDS)
        books = self.search.search(keyword).books[:BOOK_QUESTION_CANDIDATES] if keyword else []
        logger.info(f"[WORKFLOW] 3a. Keyword '{keyword}', {len(books)} candidate book(s)")

        prompt = self.builder.build_book_question_prompt(message, books)
        text = self.gateway.complete(prompt, max_output_tokens=400, temperature=0.5)
        if text:
            return ChatResponse(
                text=self.postprocessor.format_ai_text(text),
                type=ResponseType.book_detail,
                confidence=BOOK_DETAIL_CONFIDENCE,
            )
        logger.info("[WORKFLOW] 3b. AI unavailable, returning book-question guidance")
        return ChatResponse(
            text=self.postprocessor.format_book_question_fallback(),
            type=ResponseType.rule_based,
            confidence=BOOK_FALLBACK_CONFIDENCE,
        )
