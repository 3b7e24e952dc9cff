"""Tests for feed discovery."""

from datetime import datetime, timezone

import httpx

from quotefeed.ingestion import RSSFetcher, feed_url_for, host_matches_domain, unwrap_google_news_link
from quotefeed.models import Source

FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>AP News</title>
    <item>
      <title>Senate passes health bill</title>
      <link>https://apnews.com/article/health-vote</link>
      <pubDate>Tue, 05 Mar 2024 14:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Old story</title>
      <link>https://apnews.com/article/old</link>
      <pubDate>Mon, 01 Jan 2024 09:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Syndicated elsewhere</title>
      <link>https://example.com/copy</link>
      <pubDate>Tue, 05 Mar 2024 15:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Via Google</title>
      <link>https://news.google.com/articles/abc?url=https://www.apnews.com/article/budget</link>
      <pubDate>Tue, 05 Mar 2024 16:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Duplicate</title>
      <link>https://apnews.com/article/health-vote</link>
      <pubDate>Tue, 05 Mar 2024 14:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>
"""

SINCE = datetime(2024, 3, 5, 0, 0, tzinfo=timezone.utc)
UNTIL = datetime(2024, 3, 6, 0, 0, tzinfo=timezone.utc)


def make_fetcher(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RSSFetcher(client=client)


class TestHelpers:
    def test_feed_url_falls_back_to_google_news(self):
        source = Source(domain="apnews.com", name="AP")

        assert feed_url_for(source).startswith("https://news.google.com/rss/search?q=site%3Aapnews.com")
        assert feed_url_for(source.model_copy(update={"rss_url": "https://apnews.com/rss"})) == "https://apnews.com/rss"

    def test_google_news_links_are_unwrapped(self):
        assert unwrap_google_news_link("https://news.google.com/x?url=https://apnews.com/a") == "https://apnews.com/a"
        assert unwrap_google_news_link("https://apnews.com/a") == "https://apnews.com/a"

    def test_host_matching_accepts_subdomains_only(self):
        assert host_matches_domain("https://www.apnews.com/a", "apnews.com")
        assert not host_matches_domain("https://notapnews.com/a", "apnews.com")


class TestFetchSource:
    async def test_filters_by_host_and_window(self):
        fetcher = make_fetcher(lambda request: httpx.Response(200, text=FEED))
        source = Source(domain="apnews.com", name="AP", rss_url="https://apnews.com/rss")

        result = await fetcher.fetch_source(source, SINCE, UNTIL)

        assert result.success
        assert [item.url for item in result.items] == [
            "https://apnews.com/article/health-vote",
            "https://www.apnews.com/article/budget",
        ]
        assert result.items[0].published == datetime(2024, 3, 5, 14, 0, tzinfo=timezone.utc)

    async def test_http_error_is_reported(self):
        fetcher = make_fetcher(lambda request: httpx.Response(503))
        source = Source(domain="apnews.com", name="AP", rss_url="https://apnews.com/rss")

        result = await fetcher.fetch_source(source, SINCE, UNTIL)

        assert not result.success
        assert result.error == "HTTP 503"
        assert result.items == []

    async def test_requests_google_news_when_no_feed(self):
        seen = []

        def handler(request):
            seen.append(request.url.host)
            return httpx.Response(200, text=FEED)

        fetcher = make_fetcher(handler)
        await fetcher.fetch_source(Source(domain="apnews.com", name="AP"), SINCE, UNTIL)

        assert seen == ["news.google.com"]
