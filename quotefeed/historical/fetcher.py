"""Run every enabled historical provider once."""

import logging
import time
from typing import List, Optional

from psycopg import Connection
from pydantic import BaseModel, Field

from ..db import ArticleStorage, HistoricalSourceManager
from ..logs import log_event
from ..models import ProviderStatus
from ..notifications import LogNotifier, Notifier
from .base import ProviderRegistry, ProviderStore

logger = logging.getLogger(__name__)

PROVIDER_FAILURE_THRESHOLD = 5


class ProviderOutcome(BaseModel):
    """What one provider did in one cycle."""

    provider_key: str
    success: bool
    fetched: int = 0
    inserted: int = 0
    error: Optional[str] = None
    disabled: bool = False


class HistoricalFetchResult(BaseModel):
    """Per-provider outcomes of a historical discovery pass."""

    outcomes: List[ProviderOutcome] = Field(default_factory=list)

    @property
    def inserted(self) -> int:
        return sum(o.inserted for o in self.outcomes)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)


class HistoricalFetcher:
    """Discover archive documents and store them as pending articles."""

    def __init__(
        self,
        registry: ProviderRegistry,
        historical: Optional[HistoricalSourceManager] = None,
        articles: Optional[ArticleStorage] = None,
        notifier: Optional[Notifier] = None,
        failure_threshold: int = PROVIDER_FAILURE_THRESHOLD,
    ) -> None:
        """Initialize historical fetcher."""
        self.registry = registry
        self.historical = historical or HistoricalSourceManager()
        self.articles = articles or ArticleStorage()
        self.notifier = notifier or LogNotifier()
        self.failure_threshold = failure_threshold

    def sync(self, conn: Connection) -> int:
        """Make sure every registered provider has a row."""
        return self.historical.sync_providers(conn, [(p.key, p.name) for p in self.registry])

    async def fetch_all(self, conn: Connection, limit_per_provider: int) -> HistoricalFetchResult:
        """
        Fetch from each runnable provider in turn.

        A provider runs when its row is enabled and its status is neither
        disabled nor failed. A provider that raises is counted against its
        failure threshold; the others still run.
        """
        self.sync(conn)
        result = HistoricalFetchResult()

        for row in self.historical.get_all(conn):
            if not row.enabled or row.status in (ProviderStatus.DISABLED, ProviderStatus.FAILED):
                continue
            provider = self.registry.get(row.provider_key)
            if provider is None:
                continue

            store = ProviderStore(conn, row.provider_key, historical=self.historical, articles=self.articles)
            start_time = time.time()
            try:
                items = await provider.fetch_articles(limit_per_provider, store, dict(row.config or {}))
            except Exception as e:
                result.outcomes.append(self._record_failure(conn, row.provider_key, e))
                continue

            inserted = 0
            for item in items:
                article_id = self.articles.insert_article(
                    conn,
                    url=item.url,
                    title=item.title,
                    published_at=item.published_at,
                    historical_source_id=row.id,
                    prefetched_text=item.text,
                )
                if article_id is not None:
                    inserted += 1

            self.historical.record_success(conn, row.provider_key, inserted)
            log_event(
                logger,
                logging.INFO,
                "historical",
                "provider_fetched",
                duration=time.time() - start_time,
                provider=row.provider_key,
                fetched=len(items),
                inserted=inserted,
            )
            result.outcomes.append(
                ProviderOutcome(provider_key=row.provider_key, success=True, fetched=len(items), inserted=inserted)
            )

        return result

    def _record_failure(self, conn: Connection, provider_key: str, error: Exception) -> ProviderOutcome:
        failures = self.historical.record_failure(conn, provider_key, str(error))
        log_event(
            logger,
            logging.WARNING,
            "historical",
            "provider_failed",
            error=error,
            provider=provider_key,
            consecutive_failures=failures,
        )

        disabled = failures >= self.failure_threshold
        if disabled:
            self.historical.mark_failed(conn, provider_key)
            log_event(logger, logging.WARNING, "historical", "provider_auto_disabled", provider=provider_key)
            self.notifier.emit(
                "provider_disabled",
                {"provider": provider_key, "consecutive_failures": failures, "error": str(error)},
            )

        return ProviderOutcome(provider_key=provider_key, success=False, error=str(error), disabled=disabled)
