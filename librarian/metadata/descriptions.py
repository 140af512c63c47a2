"""Book-description service: cached lookup, generation and persistence."""
from ..data.catalog_store import BookStore
from ..schemas.io_models import BookDescriptionRequest, BookDescriptionResponse, DescriptionOutcome
from ..schemas.metadata_models import BookSubject, DescriptionSource
from ..utils.logger import get_logger
from .book_metadata import BookMetadataGenerator
from .rule_based import rule_based_description

logger = get_logger()

AI_CONFIDENCE = 0.95
FAILED_CONFIDENCE = 0.1


class BookDescriptionService:
    def __init__(self, store: BookStore = None, generator: BookMetadataGenerator = None):
        self.store = store or BookStore()
        self.generator = generator or BookMetadataGenerator()

    def describe(self, request: BookDescriptionRequest) -> BookDescriptionResponse:
        """
        Return the stored AI description for a book, generating it first if needed.

        Raises:
            BookNotFoundError: the book id is unknown
        """
        book, stored = self.store.get_book(request.book_id)
        if (stored is not None and stored.source == DescriptionSource.ai_enhanced
                and stored.structured_metadata.has_content()):
            logger.info(f"[METADATA] Using cached description for book {book.id}")
            return BookDescriptionResponse(
                success=True, data=stored, source=DescriptionOutcome.database_cache_full)

        year = request.book_year if request.book_year not in (None, "") else book.publication_year
        current = request.current_description
        if not (current and current.strip()):
            current = rule_based_description(book).description
        subject = BookSubject(
            title=request.book_title or book.title,
            year=str(year) if year else None,
            author=request.book_author or book.author,
            current_description=current,
        )
        generated = self.generator.generate(subject)

        if generated.metadata.ai_failed:
            source, confidence = DescriptionSource.ai_failed, FAILED_CONFIDENCE
            outcome = DescriptionOutcome.ai_failed_empty
        else:
            source, confidence = DescriptionSource.ai_enhanced, AI_CONFIDENCE
            outcome = DescriptionOutcome.ai_generated_full

        record = self.store.save_description(
            book.id, generated.description, source, confidence, generated.metadata)
        logger.info(f"[METADATA] Saved {source.value} description for book {book.id}")
        return BookDescriptionResponse(success=True, data=record, source=outcome)
