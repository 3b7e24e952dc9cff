"""Turn one pending article into stored, classified quotes."""

import logging
from typing import Optional, Tuple

from psycopg import Connection

from ..classification import AutoApprover, QuoteClassifier
from ..db import ArticleStorage, QuoteStorage
from ..extraction import QuoteExtractor, filter_quotes, is_visible, likely_contains_quotes, resolve_quote_date
from ..logs import log_event
from ..models import Article, ArticleStatus
from .article_fetcher import MIN_TEXT_LENGTH, TEXT_TOO_SHORT, ArticleTextExtractor
from .models import ProcessResult
from .rate_limiter import DomainRateLimiter, origin_for_url

logger = logging.getLogger(__name__)


def article_domain(article: Article) -> str:
    """Domain for rate limiting: the source's, else the URL host without www."""
    return article.domain or origin_for_url(article.url)


class ArticleProcessor:
    """Obtain text, extract quotes, store and classify them."""

    def __init__(
        self,
        extractor: QuoteExtractor,
        text_extractor: Optional[ArticleTextExtractor] = None,
        rate_limiter: Optional[DomainRateLimiter] = None,
        classifier: Optional[QuoteClassifier] = None,
        auto_approver: Optional[AutoApprover] = None,
        articles: Optional[ArticleStorage] = None,
        quotes: Optional[QuoteStorage] = None,
        min_quote_words: int = 5,
        min_significance: int = 5,
    ) -> None:
        """Initialize article processor."""
        self.extractor = extractor
        self.text_extractor = text_extractor or ArticleTextExtractor()
        self.rate_limiter = rate_limiter or DomainRateLimiter()
        self.classifier = classifier or QuoteClassifier()
        self.auto_approver = auto_approver or AutoApprover(self.classifier.store, self.classifier.suggestions)
        self.articles = articles or ArticleStorage()
        self.quotes = quotes or QuoteStorage()
        self.min_quote_words = min_quote_words
        self.min_significance = min_significance

    async def obtain_text(self, article: Article) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        """Article text and the step that produced it; text is None when every step fell short."""
        if article.prefetched_text and len(article.prefetched_text) >= MIN_TEXT_LENGTH:
            return article.prefetched_text, "prefetched", None

        async with self.rate_limiter.slot(article_domain(article)):
            outcome = await self.text_extractor.extract(article.url)
        return outcome.text, outcome.method, outcome.error

    async def process_article(self, conn: Connection, article: Article, auto_approve: bool = False) -> ProcessResult:
        """
        Process one article end to end.

        The article ends in ``failed`` when no text of at least 200
        characters can be obtained, otherwise in ``completed`` or
        ``no_quotes``. Exceptions from the extraction collaborator
        propagate to the caller.
        """
        self.articles.mark_processing(conn, article.id)

        text, method, error = await self.obtain_text(article)
        if not text:
            self.articles.mark_failed(conn, article.id, TEXT_TOO_SHORT)
            log_event(
                logger,
                logging.INFO,
                "processor",
                "extraction_failed",
                article_id=article.id,
                url=article.url,
                reason=error or TEXT_TOO_SHORT,
            )
            return ProcessResult(article_id=article.id, status=ArticleStatus.FAILED, error=TEXT_TOO_SHORT)

        if method != "prefetched" and not likely_contains_quotes(text):
            status = self.articles.mark_processed(conn, article.id, 0)
            return ProcessResult(article_id=article.id, status=status, method=method)

        extracted = await self.extractor.extract(text, article)
        kept = filter_quotes(extracted, text, self.min_quote_words)

        quote_ids = []
        for quote in kept:
            quote_date = resolve_quote_date(quote.quote_date, article.published_at)
            quote_id = self.quotes.insert_quote(
                conn,
                article_id=article.id,
                speaker=quote.speaker.strip(),
                text=quote.text.strip(),
                context=quote.context,
                quote_date=quote_date,
                significance=quote.significance,
                is_visible=is_visible(quote, self.min_significance),
            )
            self.classifier.classify_quote(conn, quote_id, quote_date, quote.entities, quote.topics)
            if auto_approve:
                self.auto_approver.apply(conn, quote_id, quote_date, quote.keywords, quote.topics)
            quote_ids.append(quote_id)

        status = self.articles.mark_processed(conn, article.id, len(quote_ids))
        log_event(
            logger,
            logging.INFO,
            "processor",
            "article_processed",
            article_id=article.id,
            method=method,
            extracted=len(extracted),
            stored=len(quote_ids),
        )
        return ProcessResult(article_id=article.id, status=status, quote_ids=quote_ids, method=method)
