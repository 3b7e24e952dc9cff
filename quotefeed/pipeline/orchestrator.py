"""Cycle orchestrator that runs discovery, processing and taxonomy upkeep on a timer."""

import asyncio
import logging
import time
from contextlib import AbstractContextManager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from psycopg import Connection
from pydantic import BaseModel, Field

from ..classification import AutoApprover, QuoteClassifier, SuggestionService, TaxonomyEvolution, TopicMaterializer
from ..config import Config, PipelineSettings
from ..db import (
    ArticleStorage,
    HistoricalSourceManager,
    QuoteStorage,
    RunManager,
    SettingsManager,
    SourceManager,
    TaxonomyStore,
    get_connection,
)
from ..extraction import MockQuoteExtractor, OpenAIQuoteExtractor, QuoteExtractor
from ..historical import HistoricalFetcher, ProviderRegistry, default_registry
from ..ingestion import ArticleProcessor, ArticleTextExtractor, DomainRateLimiter, ProcessResult, RSSFetcher
from ..logs import log_event
from ..models import Article, ArticleStatus
from ..notifications import LogNotifier, Notifier
from .backfill import BackfillRunner

logger = logging.getLogger(__name__)

SOURCE_FAILURE_THRESHOLD = 3
# A run row left "running" longer than this is from a crashed process
STALE_RUN_AFTER = timedelta(hours=2)


class PipelineStage:
    """Represents a cycle phase."""

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.success = False
        self.error: Optional[str] = None
        self.stats: Dict = {}

    def start(self):
        """Mark stage as started."""
        self.start_time = time.time()

    def complete(self, stats: Optional[Dict] = None):
        """Mark stage as completed successfully."""
        self.end_time = time.time()
        self.success = True
        if stats:
            self.stats.update(stats)

    def fail(self, error: str):
        """Mark stage as failed."""
        self.end_time = time.time()
        self.success = False
        self.error = error

    @property
    def duration(self) -> float:
        """Get stage duration in seconds."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return 0.0

    def summary(self) -> Dict[str, Any]:
        return {
            "duration": round(self.duration, 3),
            "success": self.success,
            "error": self.error,
            "stats": self.stats,
        }


class SchedulerStatus(BaseModel):
    """Snapshot of the scheduler state."""

    is_running: bool = Field(..., description="Whether a cycle is executing now")
    interval_minutes: int = Field(..., description="Minutes between cycles")
    last_cycle_at: Optional[datetime] = Field(None, description="When the last cycle finished")
    next_cycle_at: Optional[datetime] = Field(None, description="When the timer fires next")
    timer_active: bool = Field(..., description="Whether the timer task is alive")


class CycleResult(BaseModel):
    """Summary of one cycle."""

    run_id: Optional[int] = None
    trigger: str = "timer"
    status: str = "success"
    new_articles: int = 0
    articles_processed: int = 0
    new_quote_ids: List[int] = Field(default_factory=list)
    stages: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


def build_extractor(config: Config) -> QuoteExtractor:
    """Get configured quote extractor."""
    llm_config = config.get_llm_config()

    if llm_config.get("provider") == "openai":
        api_key = llm_config.get("api_key")
        if not api_key:
            logger.warning("No OpenAI API key found. Using mock quote extractor.")
            return MockQuoteExtractor()

        return OpenAIQuoteExtractor(
            api_key=api_key,
            model=llm_config.get("model", "gpt-4o-mini"),
            base_url=llm_config.get("base_url"),
            max_retries=llm_config.get("max_retries", 3),
        )

    logger.warning("Unknown LLM provider %r. Using mock quote extractor.", llm_config.get("provider"))
    return MockQuoteExtractor()


class CycleOrchestrator:
    """
    Owns the schedule and runs fetch cycles.

    Only one cycle runs at a time; a trigger that arrives while one is
    active is rejected, not queued. Each phase is isolated so a failure is
    recorded and later phases still run.
    """

    def __init__(
        self,
        config: Config,
        extractor: Optional[QuoteExtractor] = None,
        notifier: Optional[Notifier] = None,
        connection_factory: Optional[Callable[[], AbstractContextManager]] = None,
        sources: Optional[SourceManager] = None,
        articles: Optional[ArticleStorage] = None,
        runs: Optional[RunManager] = None,
        settings: Optional[SettingsManager] = None,
        taxonomy: Optional[TaxonomyStore] = None,
        rss_fetcher: Optional[RSSFetcher] = None,
        processor: Optional[ArticleProcessor] = None,
        historical_fetcher: Optional[HistoricalFetcher] = None,
        backfill: Optional[BackfillRunner] = None,
        registry: Optional[ProviderRegistry] = None,
        failure_threshold: int = SOURCE_FAILURE_THRESHOLD,
    ) -> None:
        """Initialize orchestrator; collaborators default to the production ones."""
        self.config = config
        self.notifier = notifier or LogNotifier()
        self._connect = connection_factory or (lambda: get_connection(config.get_db_config()))
        self.failure_threshold = failure_threshold

        http = config.config.http
        pipeline = config.config.pipeline
        self.rate_limiter = DomainRateLimiter(http.per_domain_concurrency, http.per_domain_delay_seconds)

        self.sources = sources or SourceManager()
        self.articles = articles or ArticleStorage()
        self.runs = runs or RunManager()
        self.settings = settings or SettingsManager()
        self.taxonomy = taxonomy or TaxonomyStore()
        self.rss_fetcher = rss_fetcher or RSSFetcher(
            timeout=http.feed_timeout,
            user_agent=http.user_agent,
            max_concurrent=http.max_concurrent,
            rate_limiter=self.rate_limiter,
        )

        if processor is None:
            suggestions = SuggestionService(self.taxonomy)
            classifier = QuoteClassifier(self.taxonomy, suggestions)
            processor = ArticleProcessor(
                extractor=extractor or build_extractor(config),
                text_extractor=ArticleTextExtractor(timeout=http.article_timeout, user_agent=http.user_agent),
                rate_limiter=self.rate_limiter,
                classifier=classifier,
                auto_approver=AutoApprover(self.taxonomy, suggestions),
                articles=self.articles,
                quotes=QuoteStorage(),
                min_quote_words=pipeline.min_quote_words,
                min_significance=pipeline.min_significance,
            )
        self.processor = processor

        self.historical_fetcher = historical_fetcher or HistoricalFetcher(
            registry or default_registry(config),
            historical=HistoricalSourceManager(),
            articles=self.articles,
            notifier=self.notifier,
        )
        self.backfill = backfill or BackfillRunner(
            self.rss_fetcher,
            self.processor,
            sources=self.sources,
            articles=self.articles,
        )
        self.materializer = TopicMaterializer(self.taxonomy)
        self.evolution = TaxonomyEvolution(self.taxonomy)

        self._running = False
        self._timer_task: Optional[asyncio.Task] = None
        self.interval_minutes = pipeline.fetch_interval_minutes
        self.last_cycle_at: Optional[datetime] = None
        self.next_cycle_at: Optional[datetime] = None

    # Scheduling

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the timer: one cycle now, then one every interval."""
        if self._timer_task is not None and not self._timer_task.done():
            return
        self._timer_task = asyncio.create_task(self._timer_loop())
        log_event(logger, logging.INFO, "orchestrator", "scheduler_started", interval_minutes=self.interval_minutes)

    async def stop(self) -> None:
        """Cancel the timer. A cycle in progress is cancelled with it."""
        task, self._timer_task = self._timer_task, None
        self.next_cycle_at = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log_event(logger, logging.INFO, "orchestrator", "scheduler_stopped")

    async def serve(self) -> None:
        """Run the timer until cancelled."""
        await self.start()
        try:
            await self._timer_task
        finally:
            await self.stop()

    def status(self) -> SchedulerStatus:
        """Current scheduler state."""
        return SchedulerStatus(
            is_running=self._running,
            interval_minutes=self.interval_minutes,
            last_cycle_at=self.last_cycle_at,
            next_cycle_at=self.next_cycle_at,
            timer_active=self._timer_task is not None and not self._timer_task.done(),
        )

    async def _timer_loop(self) -> None:
        while True:
            await self.trigger_cycle("timer")
            self.interval_minutes = self._read_interval()
            self.next_cycle_at = datetime.now(timezone.utc) + timedelta(minutes=self.interval_minutes)
            await asyncio.sleep(self.interval_minutes * 60)

    def _read_interval(self) -> int:
        """Interval from persisted settings, falling back to the current value."""
        try:
            with self._connect() as conn:
                return self._load_settings(conn).fetch_interval_minutes
        except Exception as e:
            log_event(logger, logging.WARNING, "orchestrator", "settings_unavailable", error=e)
            return self.interval_minutes

    async def trigger_cycle(self, trigger: str = "manual") -> Optional[CycleResult]:
        """
        Run a cycle unless one is already active.

        Returns:
            The cycle result, or None if the trigger was rejected or the
            cycle could not run at all
        """
        if self._running:
            log_event(logger, logging.INFO, "orchestrator", "cycle_skipped", trigger=trigger)
            return None

        self._running = True
        try:
            if self._active_elsewhere(trigger):
                return None
            return await self.run_cycle(trigger)
        except Exception as e:
            log_event(logger, logging.ERROR, "orchestrator", "cycle_failed", error=e, trigger=trigger)
            return None
        finally:
            self._running = False
            self.last_cycle_at = datetime.now(timezone.utc)

    def _active_elsewhere(self, trigger: str) -> bool:
        """Whether another process has a cycle running that is not yet stale."""
        with self._connect() as conn:
            active = self.runs.get_active_run(conn, STALE_RUN_AFTER)
        if active is None:
            return False
        log_event(
            logger,
            logging.INFO,
            "orchestrator",
            "cycle_skipped",
            trigger=trigger,
            active_run_id=active.id,
            active_since=active.started_at.isoformat(),
        )
        return True

    # Cycle

    def _load_settings(self, conn: Connection) -> PipelineSettings:
        return self.settings.load_pipeline_settings(conn, self.config.config.pipeline)

    async def run_cycle(self, trigger: str = "timer") -> CycleResult:
        """Run every phase once, in order."""
        cycle_start = time.time()
        stages = {
            "discovery": PipelineStage("discovery", "Fetching live source feeds"),
            "historical": PipelineStage("historical", "Fetching historical archives"),
            "processing": PipelineStage("processing", "Extracting and classifying quotes"),
            "taxonomy": PipelineStage("taxonomy", "Materializing topics and evolving the taxonomy"),
            "backfill": PipelineStage("backfill", "Filling a missing day"),
        }
        result = CycleResult(trigger=trigger)

        with self._connect() as conn:
            settings = self._load_settings(conn)
            self.interval_minutes = settings.fetch_interval_minutes
            self.processor.min_quote_words = settings.min_quote_words
            self.processor.min_significance = settings.min_significance

            result.run_id = self.runs.create_run(conn, trigger)
            log_event(logger, logging.INFO, "orchestrator", "cycle_started", run_id=result.run_id, trigger=trigger)

            reset = self.articles.reset_stale_processing(conn)
            if reset:
                log_event(logger, logging.WARNING, "orchestrator", "stale_articles_reset", count=reset)

            await self._run_stage(stages["discovery"], self._discover_live, conn, settings, result)

            if settings.historical_fetch_enabled:
                await self._run_stage(stages["historical"], self._discover_historical, conn, settings, result)
            else:
                stages["historical"].start()
                stages["historical"].complete({"skipped": True})

            await self._run_stage(stages["processing"], self._process_pending, conn, settings, result)
            await self._run_stage(stages["taxonomy"], self._maintain_taxonomy, conn, settings, result)

            if settings.backfill_enabled:
                await self._run_stage(stages["backfill"], self._backfill, conn, settings, result)
            else:
                stages["backfill"].start()
                stages["backfill"].complete({"skipped": True})

            result.stages = {name: stage.summary() for name, stage in stages.items()}
            result.status = "success" if all(s.success for s in stages.values()) else "partial"
            self.runs.update_run_status(
                conn,
                result.run_id,
                result.status,
                {
                    "total_duration": round(time.time() - cycle_start, 3),
                    "new_articles": result.new_articles,
                    "articles_processed": result.articles_processed,
                    "new_quotes": len(result.new_quote_ids),
                    "stages": result.stages,
                },
            )

        log_event(
            logger,
            logging.INFO,
            "orchestrator",
            "cycle_complete",
            duration=time.time() - cycle_start,
            run_id=result.run_id,
            status=result.status,
            new_articles=result.new_articles,
            new_quotes=len(result.new_quote_ids),
        )
        self.notifier.emit(
            "fetch_cycle_complete",
            {
                "run_id": result.run_id,
                "status": result.status,
                "new_articles": result.new_articles,
                "articles_processed": result.articles_processed,
                "new_quotes": len(result.new_quote_ids),
            },
        )
        if result.new_quote_ids:
            self.notifier.emit("new_quotes", {"quote_ids": list(result.new_quote_ids)})
        return result

    async def _run_stage(self, stage: PipelineStage, phase: Callable, *args: Any) -> None:
        stage.start()
        try:
            stats = await phase(*args)
        except Exception as e:
            stage.fail(str(e))
            log_event(
                logger,
                logging.ERROR,
                "orchestrator",
                "phase_failed",
                error=e,
                duration=stage.duration,
                phase=stage.name,
            )
            return
        stage.complete(stats)
        log_event(
            logger,
            logging.INFO,
            "orchestrator",
            "phase_complete",
            duration=stage.duration,
            phase=stage.name,
            stats=stage.stats,
        )

    async def _discover_live(
        self, conn: Connection, settings: PipelineSettings, result: CycleResult
    ) -> Dict[str, Any]:
        """Fetch every enabled source and store new items as pending articles."""
        sources = self.sources.get_enabled_sources(conn)
        feed_results = await self.rss_fetcher.fetch_all(sources, settings.article_lookback_hours)

        failed = 0
        disabled = 0
        for source, feed in zip(sources, feed_results):
            if not feed.success:
                failed += 1
                failures = self.sources.record_failure(conn, source.id)
                log_event(
                    logger,
                    logging.WARNING,
                    "fetcher",
                    "feed_failed",
                    source=source.domain,
                    reason=feed.error,
                    consecutive_failures=failures,
                )
                if failures >= self.failure_threshold:
                    self.sources.disable(conn, source.id)
                    disabled += 1
                    log_event(logger, logging.WARNING, "fetcher", "source_auto_disabled", source=source.domain)
                    self.notifier.emit(
                        "source_disabled",
                        {"source": source.domain, "consecutive_failures": failures, "error": feed.error},
                    )
                continue

            self.sources.reset_failures(conn, source.id)
            for item in feed.items:
                article_id = self.articles.insert_article(
                    conn,
                    url=item.url,
                    title=item.title,
                    published_at=item.published,
                    source_id=source.id,
                )
                if article_id is not None:
                    result.new_articles += 1

        return {
            "sources": len(sources),
            "failed": failed,
            "disabled": disabled,
            "new_articles": result.new_articles,
        }

    async def _discover_historical(
        self, conn: Connection, settings: PipelineSettings, result: CycleResult
    ) -> Dict[str, Any]:
        fetched = await self.historical_fetcher.fetch_all(conn, settings.historical_articles_per_provider)
        result.new_articles += fetched.inserted
        return {"providers": len(fetched.outcomes), "failed": fetched.failed, "new_articles": fetched.inserted}

    async def _process_pending(
        self, conn: Connection, settings: PipelineSettings, result: CycleResult
    ) -> Dict[str, Any]:
        """Process pending articles concurrently within the global and per-domain limits."""
        pending = self.articles.get_pending_for_processing(
            conn,
            per_source_limit=settings.max_articles_per_source,
            per_provider_limit=settings.historical_articles_per_provider,
        )
        semaphore = asyncio.Semaphore(self.config.config.http.max_concurrent)

        async def process_one(article: Article) -> ProcessResult:
            async with semaphore:
                try:
                    return await self.processor.process_article(
                        conn, article, auto_approve=settings.auto_approve_extracted_vocabulary
                    )
                except Exception as e:
                    self.articles.mark_failed(conn, article.id, str(e))
                    log_event(
                        logger,
                        logging.WARNING,
                        "processor",
                        "article_failed",
                        error=e,
                        article_id=article.id,
                        url=article.url,
                    )
                    return ProcessResult(article_id=article.id, status=ArticleStatus.FAILED, error=str(e))

        outcomes = await asyncio.gather(*(process_one(article) for article in pending))

        for outcome in outcomes:
            result.new_quote_ids.extend(outcome.quote_ids)
        result.articles_processed = len(outcomes)
        return {
            "articles": len(outcomes),
            "failed": sum(1 for o in outcomes if o.status == ArticleStatus.FAILED),
            "quotes": sum(o.quote_count for o in outcomes),
        }

    async def _maintain_taxonomy(
        self, conn: Connection, settings: PipelineSettings, result: CycleResult
    ) -> Dict[str, Any]:
        """Rebuild topic links and evolve the taxonomy when anything changed."""
        if not result.new_quote_ids and self.taxonomy.count_quote_topics(conn) > 0:
            return {"skipped": True}
        materialized = self.materializer.materialize_all(conn)
        evolution = self.evolution.run(conn, days=settings.taxonomy_evolution_days)
        return {
            "topics_processed": materialized.topics_processed,
            "links_created": materialized.links_created,
            "suggestions_created": evolution.total,
        }

    async def _backfill(
        self, conn: Connection, settings: PipelineSettings, result: CycleResult
    ) -> Dict[str, Any]:
        outcome = await self.backfill.run_cycle(
            conn,
            max_articles=settings.backfill_max_articles,
            auto_approve=settings.auto_approve_extracted_vocabulary,
        )
        if not outcome.success:
            raise RuntimeError(outcome.error or "Backfill failed")
        return {
            "target_date": outcome.target_date.isoformat() if outcome.target_date else None,
            "articles_found": outcome.articles_found,
            "quotes_extracted": outcome.quotes_extracted,
        }
