"""Tests for the article text extraction chain."""

from unittest.mock import patch

import httpx

from quotefeed.ingestion import TEXT_TOO_SHORT, ArticleTextExtractor, html_to_text

LONG_TEXT = "The senator said the vote would come next week. " * 10
PAGE = f"<html><head><script>var x = 1;</script></head><body><article><p>{LONG_TEXT}</p></article></body></html>"


def make_extractor(handler):
    return ArticleTextExtractor(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def test_html_to_text_drops_scripts():
    text = html_to_text("<div><script>alert(1)</script><p>One</p><p>Two</p></div>")

    assert text == "One\nTwo"


async def test_primary_extraction_wins():
    extractor = make_extractor(lambda request: httpx.Response(200, text=PAGE))

    with patch.object(ArticleTextExtractor, "extract_primary", return_value=LONG_TEXT):
        outcome = await extractor.extract("https://apnews.com/a")

    assert outcome.method == "primary"
    assert outcome.text == LONG_TEXT


async def test_fallback_used_when_primary_too_short():
    extractor = make_extractor(lambda request: httpx.Response(200, text=PAGE))

    with patch.object(ArticleTextExtractor, "extract_primary", return_value="short"), patch.object(
        ArticleTextExtractor, "extract_fallback", return_value=LONG_TEXT
    ):
        outcome = await extractor.extract("https://apnews.com/a")

    assert outcome.method == "fallback"


async def test_both_steps_short_is_a_failure():
    extractor = make_extractor(lambda request: httpx.Response(200, text=PAGE))

    with patch.object(ArticleTextExtractor, "extract_primary", return_value=None), patch.object(
        ArticleTextExtractor, "extract_fallback", return_value="tiny"
    ):
        outcome = await extractor.extract("https://apnews.com/a")

    assert outcome.text is None
    assert outcome.error == TEXT_TOO_SHORT


async def test_http_errors_become_outcomes():
    extractor = make_extractor(lambda request: httpx.Response(404))

    outcome = await extractor.extract("https://apnews.com/missing")

    assert outcome.text is None
    assert outcome.error == "HTTP 404"
