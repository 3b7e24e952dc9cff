"""Tests for single-article processing."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from quotefeed.extraction import MockQuoteExtractor
from quotefeed.ingestion import TEXT_TOO_SHORT, ArticleProcessor, DomainRateLimiter, ExtractionOutcome
from quotefeed.models import ArticleStatus

PREFETCHED = (
    "The following are quotes attributed to Jane Doe:\n\n"
    '"We will not stop until every family has access to affordable care" - Jane Doe\n\n'
    '"This is a long fight and we are ready for it, and we will keep at it until it is won" - Jane Doe'
)


@pytest.fixture
def text_extractor(article_text):
    extractor = MagicMock(name="text_extractor")
    extractor.extract = AsyncMock(return_value=ExtractionOutcome(text=article_text, method="primary"))
    return extractor


@pytest.fixture
def articles():
    storage = MagicMock(name="articles")
    storage.mark_processed.side_effect = lambda conn, article_id, count: (
        ArticleStatus.COMPLETED if count else ArticleStatus.NO_QUOTES
    )
    return storage


@pytest.fixture
def quotes():
    storage = MagicMock(name="quotes")
    storage.insert_quote.side_effect = iter(range(100, 200))
    return storage


@pytest.fixture
def make_processor(text_extractor, articles, quotes):
    def _make(extracted=(), **kwargs):
        return ArticleProcessor(
            extractor=MockQuoteExtractor(list(extracted)),
            text_extractor=text_extractor,
            rate_limiter=DomainRateLimiter(min_interval=0.0),
            classifier=MagicMock(name="classifier"),
            auto_approver=MagicMock(name="auto_approver"),
            articles=articles,
            quotes=quotes,
            **kwargs,
        )

    return _make


class TestObtainText:
    async def test_prefetched_text_skips_download(self, make_processor, make_article, text_extractor):
        processor = make_processor()

        text, method, error = await processor.obtain_text(make_article(prefetched_text=PREFETCHED))

        assert method == "prefetched"
        assert text == PREFETCHED
        text_extractor.extract.assert_not_called()

    async def test_short_prefetched_text_falls_through(self, make_processor, make_article, text_extractor):
        processor = make_processor()

        _, method, _ = await processor.obtain_text(make_article(prefetched_text="too short"))

        assert method == "primary"
        text_extractor.extract.assert_awaited_once()


class TestProcessArticle:
    """End-to-end processing of one article."""

    async def test_stores_and_classifies_kept_quotes(self, conn, make_processor, make_article, sample_quote, quotes):
        processor = make_processor([sample_quote])
        article = make_article()

        result = await processor.process_article(conn, article)

        assert result.status == ArticleStatus.COMPLETED
        assert result.quote_ids == [100]
        kwargs = quotes.insert_quote.call_args.kwargs
        assert kwargs["speaker"] == "Jane Doe"
        assert kwargs["quote_date"] == date(2024, 3, 5)
        assert kwargs["is_visible"] is True
        processor.classifier.classify_quote.assert_called_once_with(
            conn, 100, date(2024, 3, 5), sample_quote.entities, ["Health Care"]
        )
        processor.auto_approver.apply.assert_not_called()

    async def test_auto_approve_links_item_vocabulary(self, conn, make_processor, make_article, sample_quote):
        processor = make_processor([sample_quote])

        await processor.process_article(conn, make_article(), auto_approve=True)

        processor.auto_approver.apply.assert_called_once_with(
            conn, 100, date(2024, 3, 5), ["Senate", "House"], ["Health Care"]
        )

    async def test_low_significance_quote_is_hidden(self, conn, make_processor, make_article, sample_quote, quotes):
        processor = make_processor([sample_quote], min_significance=8)

        await processor.process_article(conn, make_article())

        assert quotes.insert_quote.call_args.kwargs["is_visible"] is False

    async def test_no_text_marks_failed(self, conn, make_processor, make_article, text_extractor, articles):
        text_extractor.extract.return_value = ExtractionOutcome(error=TEXT_TOO_SHORT)
        processor = make_processor()

        result = await processor.process_article(conn, make_article())

        assert result.status == ArticleStatus.FAILED
        articles.mark_failed.assert_called_once_with(conn, 1, TEXT_TOO_SHORT)

    async def test_prefilter_skips_extraction(self, conn, make_processor, make_article, text_extractor, articles):
        text_extractor.extract.return_value = ExtractionOutcome(text="No quotations here at all. " * 20, method="primary")
        processor = make_processor()

        result = await processor.process_article(conn, make_article())

        assert result.status == ArticleStatus.NO_QUOTES
        assert processor.extractor.calls == 0
        articles.mark_processed.assert_called_once_with(conn, 1, 0)

    async def test_prefetched_text_bypasses_prefilter(self, conn, make_processor, make_article, sample_quote):
        processor = make_processor([sample_quote])

        result = await processor.process_article(conn, make_article(prefetched_text=PREFETCHED))

        assert processor.extractor.calls == 1
        assert result.method == "prefetched"
        assert result.quote_count == 1

    async def test_extractor_errors_propagate(self, conn, make_processor, make_article):
        processor = make_processor()
        processor.extractor.extract = AsyncMock(side_effect=RuntimeError("model down"))

        with pytest.raises(RuntimeError):
            await processor.process_article(conn, make_article())
