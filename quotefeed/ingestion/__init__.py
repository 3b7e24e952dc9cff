"""Article discovery, text extraction and processing."""

from .article_fetcher import MIN_TEXT_LENGTH, TEXT_TOO_SHORT, ArticleTextExtractor, html_to_text
from .models import ExtractionOutcome, FeedItem, FeedResult, ProcessResult
from .processor import ArticleProcessor, article_domain
from .rate_limiter import DomainRateLimiter, origin_for_url
from .rss_fetcher import RSSFetcher, feed_url_for, host_matches_domain, unwrap_google_news_link

__all__ = [
    "MIN_TEXT_LENGTH",
    "TEXT_TOO_SHORT",
    "ArticleProcessor",
    "ArticleTextExtractor",
    "DomainRateLimiter",
    "ExtractionOutcome",
    "FeedItem",
    "FeedResult",
    "ProcessResult",
    "RSSFetcher",
    "article_domain",
    "feed_url_for",
    "host_matches_domain",
    "html_to_text",
    "origin_for_url",
    "unwrap_google_news_link",
]
