"""Fill one missing recent day per cycle."""

import logging
from datetime import date, datetime, time as dt_time, timedelta, timezone
from typing import Iterable, Optional

from psycopg import Connection
from pydantic import BaseModel

from ..db import ArticleStorage, BackfillLog, QuoteStorage, SourceManager
from ..ingestion import ArticleProcessor, RSSFetcher
from ..logs import log_event

logger = logging.getLogger(__name__)

GAP_WINDOW_DAYS = 90
# Feeds are queried 18 hours either side of the target day's noon
HALF_WINDOW = timedelta(hours=18)


class BackfillResult(BaseModel):
    """Outcome of one backfill attempt."""

    target_date: Optional[date] = None
    articles_found: int = 0
    quotes_extracted: int = 0
    success: bool = True
    error: Optional[str] = None


def find_gap_date(
    today: date,
    covered_dates: Iterable[date],
    attempted_dates: Iterable[date],
    window_days: int = GAP_WINDOW_DAYS,
) -> Optional[date]:
    """
    Most recent day before ``today`` with no visible quote and no attempt.

    Days are walked back from yesterday through ``window_days`` days ago.
    """
    covered = set(covered_dates)
    attempted = set(attempted_dates)
    for offset in range(1, window_days + 1):
        day = today - timedelta(days=offset)
        if day not in covered and day not in attempted:
            return day
    return None


def fetch_window(day: date):
    """The 36-hour discovery window centred on noon UTC of ``day``."""
    noon = datetime.combine(day, dt_time(12, 0), tzinfo=timezone.utc)
    return noon - HALF_WINDOW, noon + HALF_WINDOW


class BackfillRunner:
    """Discover and process articles published on a day that has no quotes."""

    def __init__(
        self,
        rss_fetcher: RSSFetcher,
        processor: ArticleProcessor,
        sources: Optional[SourceManager] = None,
        articles: Optional[ArticleStorage] = None,
        quotes: Optional[QuoteStorage] = None,
        backfill_log: Optional[BackfillLog] = None,
    ) -> None:
        """Initialize backfill runner."""
        self.rss_fetcher = rss_fetcher
        self.processor = processor
        self.sources = sources or SourceManager()
        self.articles = articles or ArticleStorage()
        self.quotes = quotes or QuoteStorage()
        self.backfill_log = backfill_log or BackfillLog()

    def find_gap(self, conn: Connection, today: Optional[date] = None) -> Optional[date]:
        """Next day to backfill, if any."""
        today = today or datetime.now(timezone.utc).date()
        since = today - timedelta(days=GAP_WINDOW_DAYS)
        return find_gap_date(
            today,
            self.quotes.get_covered_dates(conn, since),
            self.backfill_log.get_attempted_dates(conn, since),
        )

    async def run_for_date(
        self,
        conn: Connection,
        day: date,
        max_articles: int = 5,
        auto_approve: bool = False,
    ) -> BackfillResult:
        """
        Backfill one day.

        The attempt row is written before any work so a day is never retried
        automatically, whatever the outcome.
        """
        self.backfill_log.start(conn, day)
        log_event(logger, logging.INFO, "backfill", "backfill_started", target_date=day.isoformat())

        try:
            since, until = fetch_window(day)
            inserted_ids = []
            for source in self.sources.get_enabled_sources(conn):
                if len(inserted_ids) >= max_articles:
                    break
                feed = await self.rss_fetcher.fetch_source(source, since, until)
                if not feed.success:
                    continue
                for item in feed.items:
                    if len(inserted_ids) >= max_articles:
                        break
                    if item.published is None or item.published.astimezone(timezone.utc).date() != day:
                        continue
                    article_id = self.articles.insert_article(
                        conn,
                        url=item.url,
                        title=item.title,
                        published_at=item.published,
                        source_id=source.id,
                    )
                    if article_id is not None:
                        inserted_ids.append(article_id)
        except Exception as e:
            self.backfill_log.fail(conn, day, str(e))
            log_event(logger, logging.WARNING, "backfill", "backfill_failed", error=e, target_date=day.isoformat())
            return BackfillResult(target_date=day, success=False, error=str(e))

        quotes_extracted = 0
        for article_id in inserted_ids:
            article = self.articles.get_article(conn, article_id)
            if article is None:
                continue
            try:
                result = await self.processor.process_article(conn, article, auto_approve=auto_approve)
            except Exception as e:
                self.articles.mark_failed(conn, article_id, str(e))
                log_event(
                    logger,
                    logging.WARNING,
                    "backfill",
                    "backfill_article_failed",
                    error=e,
                    article_id=article_id,
                    target_date=day.isoformat(),
                )
                continue
            quotes_extracted += result.quote_count

        self.backfill_log.complete(conn, day, len(inserted_ids), quotes_extracted)
        log_event(
            logger,
            logging.INFO,
            "backfill",
            "backfill_completed",
            target_date=day.isoformat(),
            articles_found=len(inserted_ids),
            quotes_extracted=quotes_extracted,
        )
        return BackfillResult(target_date=day, articles_found=len(inserted_ids), quotes_extracted=quotes_extracted)

    async def run_cycle(
        self,
        conn: Connection,
        max_articles: int = 5,
        auto_approve: bool = False,
        today: Optional[date] = None,
    ) -> BackfillResult:
        """Backfill the most recent gap day, or do nothing when there is none."""
        day = self.find_gap(conn, today)
        if day is None:
            log_event(logger, logging.DEBUG, "backfill", "no_gap")
            return BackfillResult()
        return await self.run_for_date(conn, day, max_articles=max_articles, auto_approve=auto_approve)
