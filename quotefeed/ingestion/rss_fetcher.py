"""Feed discovery for live sources."""

import asyncio
import calendar
import logging
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import parse_qs, quote, urlparse

import feedparser
import httpx
import pendulum

from ..logs import log_event
from ..models import Source
from .models import FeedItem, FeedResult
from .rate_limiter import DomainRateLimiter, origin_for_url

logger = logging.getLogger(__name__)

GOOGLE_NEWS_SEARCH = "https://news.google.com/rss/search?q={query}&hl=en-US&gl=US&ceid=US:en"


def feed_url_for(source: Source) -> str:
    """The source's own feed, or a Google News site search for its domain."""
    if source.rss_url:
        return source.rss_url
    return GOOGLE_NEWS_SEARCH.format(query=quote(f"site:{source.domain}"))


def unwrap_google_news_link(link: str) -> str:
    """Follow the url= parameter of Google News redirect links."""
    parsed = urlparse(link)
    if parsed.hostname and parsed.hostname.endswith("news.google.com"):
        target = parse_qs(parsed.query).get("url")
        if target:
            return target[0]
    return link


def host_matches_domain(url: str, domain: str) -> bool:
    """Whether the URL's host is the domain or one of its subdomains."""
    host = (urlparse(url).hostname or "").lower()
    domain = domain.lower()
    return host == domain or host.endswith("." + domain)


def parse_entry_date(entry) -> Optional[datetime]:
    """Publication time of a feed entry in UTC."""
    for attr in ("published_parsed", "updated_parsed"):
        parsed = entry.get(attr)
        if parsed:
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
    return None


class RSSFetcher:
    """Fetch and filter a source's feed. Nothing is persisted here."""

    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: str = "QuoteFeed/1.0",
        max_concurrent: int = 5,
        rate_limiter: Optional[DomainRateLimiter] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize RSS fetcher."""
        self.timeout = timeout
        self.user_agent = user_agent
        self.max_concurrent = max_concurrent
        self.rate_limiter = rate_limiter
        self._client = client

    async def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, headers={"User-Agent": self.user_agent})
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": self.user_agent},
        ) as client:
            return await client.get(url)

    async def _fetch(self, url: str) -> httpx.Response:
        if self.rate_limiter is None:
            return await self._get(url)
        async with self.rate_limiter.slot(origin_for_url(url)):
            return await self._get(url)

    async def fetch_source(
        self,
        source: Source,
        since: datetime,
        until: Optional[datetime] = None,
    ) -> FeedResult:
        """
        Fetch a source's feed and return items published in [since, until].

        Items whose host is not the source's domain (or a subdomain of it)
        are dropped. Items with no date count as published now.
        """
        feed_url = feed_url_for(source)
        try:
            response = await self._fetch(feed_url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            return FeedResult(
                source_domain=source.domain,
                feed_url=feed_url,
                success=False,
                error=f"HTTP {e.response.status_code}",
            )
        except httpx.TimeoutException:
            return FeedResult(source_domain=source.domain, feed_url=feed_url, success=False, error="Timeout")
        except httpx.HTTPError as e:
            return FeedResult(source_domain=source.domain, feed_url=feed_url, success=False, error=f"HTTP error: {e}")

        feed = feedparser.parse(response.text)
        if feed.bozo and not feed.entries:
            return FeedResult(
                source_domain=source.domain,
                feed_url=feed_url,
                success=False,
                error=f"Invalid feed: {feed.bozo_exception}",
            )

        now = pendulum.now("UTC")
        items = []
        seen = set()
        for entry in feed.entries:
            link = entry.get("link")
            if not link:
                continue
            url = unwrap_google_news_link(link)
            if url in seen or not host_matches_domain(url, source.domain):
                continue

            published = parse_entry_date(entry) or now
            if published < since or (until is not None and published > until):
                continue

            seen.add(url)
            items.append(FeedItem(url=url, title=entry.get("title"), published=published))

        log_event(
            logger,
            logging.DEBUG,
            "fetcher",
            "feed_fetched",
            source=source.domain,
            entries=len(feed.entries),
            kept=len(items),
        )
        return FeedResult(source_domain=source.domain, feed_url=feed_url, success=True, items=items)

    async def fetch_recent(self, source: Source, lookback_hours: int) -> FeedResult:
        """Items published within the last ``lookback_hours``."""
        since = pendulum.now("UTC").subtract(hours=lookback_hours)
        return await self.fetch_source(source, since)

    async def fetch_all(self, sources: List[Source], lookback_hours: int) -> List[FeedResult]:
        """Fetch all sources concurrently."""
        if not sources:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def fetch_with_semaphore(source: Source) -> FeedResult:
            async with semaphore:
                return await self.fetch_recent(source, lookback_hours)

        return await asyncio.gather(*(fetch_with_semaphore(source) for source in sources))
