"""Tests for the cycle orchestrator."""

import asyncio
from contextlib import contextmanager
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from quotefeed.config import PipelineSettings
from quotefeed.historical import HistoricalFetchResult, ProviderOutcome
from quotefeed.ingestion import FeedItem, FeedResult, ProcessResult
from quotefeed.models import ArticleStatus, Run, Source
from quotefeed.pipeline import STALE_RUN_AFTER, CycleOrchestrator
from quotefeed.pipeline.backfill import BackfillResult

AP = Source(id=1, domain="apnews.com", name="AP")
REUTERS = Source(id=2, domain="reuters.com", name="Reuters")


def ok_feed(source, *urls):
    return FeedResult(
        source_domain=source.domain,
        feed_url=f"https://{source.domain}/rss",
        success=True,
        items=[FeedItem(url=url) for url in urls],
    )


def failed_feed(source):
    return FeedResult(source_domain=source.domain, feed_url=f"https://{source.domain}/rss", success=False, error="HTTP 503")


class Harness:
    """Orchestrator wired to mocks sharing one connection."""

    def __init__(self, config, conn, store, settings=None):
        self.conn = conn
        self.sources = MagicMock(name="sources")
        self.sources.get_enabled_sources.return_value = [AP, REUTERS]
        self.articles = MagicMock(name="articles")
        self.articles.insert_article.return_value = 10
        self.articles.reset_stale_processing.return_value = 0
        self.articles.get_pending_for_processing.return_value = []
        self.runs = MagicMock(name="runs")
        self.runs.create_run.return_value = 99
        self.runs.get_active_run.return_value = None
        self.settings = MagicMock(name="settings")
        self.settings.load_pipeline_settings.return_value = settings or PipelineSettings()
        self.rss = MagicMock(name="rss_fetcher")
        self.rss.fetch_all = AsyncMock(return_value=[ok_feed(AP), ok_feed(REUTERS)])
        self.processor = MagicMock(name="processor")
        self.processor.process_article = AsyncMock(
            side_effect=lambda conn, article, auto_approve=False: ProcessResult(
                article_id=article.id, status=ArticleStatus.COMPLETED, quote_ids=[article.id * 10]
            )
        )
        self.historical = MagicMock(name="historical_fetcher")
        self.historical.fetch_all = AsyncMock(
            return_value=HistoricalFetchResult(outcomes=[ProviderOutcome(provider_key="wikiquote", success=True, inserted=2)])
        )
        self.backfill = MagicMock(name="backfill")
        self.backfill.run_cycle = AsyncMock(return_value=BackfillResult(target_date=date(2024, 3, 9), articles_found=1))
        self.notifier = MagicMock(name="notifier")

        @contextmanager
        def connect():
            yield conn

        self.orchestrator = CycleOrchestrator(
            config,
            notifier=self.notifier,
            connection_factory=connect,
            sources=self.sources,
            articles=self.articles,
            runs=self.runs,
            settings=self.settings,
            taxonomy=store,
            rss_fetcher=self.rss,
            processor=self.processor,
            historical_fetcher=self.historical,
            backfill=self.backfill,
        )

    def events(self):
        return [c.args[0] for c in self.notifier.emit.call_args_list]


@pytest.fixture
def harness(config, conn, store):
    return Harness(config, conn, store)


class TestDiscovery:
    """Live discovery and source failure accounting."""

    async def test_new_items_become_pending_articles(self, harness):
        harness.rss.fetch_all.return_value = [ok_feed(AP, "https://apnews.com/a"), ok_feed(REUTERS)]

        result = await harness.orchestrator.run_cycle()

        assert result.new_articles == 1
        assert harness.articles.insert_article.call_args.kwargs["source_id"] == 1
        harness.sources.reset_failures.assert_any_call(harness.conn, 1)

    async def test_third_consecutive_failure_disables_source(self, harness):
        harness.rss.fetch_all.return_value = [failed_feed(AP), ok_feed(REUTERS)]
        harness.sources.record_failure.return_value = 3

        result = await harness.orchestrator.run_cycle()

        harness.sources.disable.assert_called_once_with(harness.conn, 1)
        assert "source_disabled" in harness.events()
        assert result.stages["discovery"]["stats"]["disabled"] == 1
        assert result.status == "success"

    async def test_second_failure_only_counts(self, harness):
        harness.rss.fetch_all.return_value = [failed_feed(AP), ok_feed(REUTERS)]
        harness.sources.record_failure.return_value = 2

        await harness.orchestrator.run_cycle()

        harness.sources.disable.assert_not_called()
        assert "source_disabled" not in harness.events()


class TestPhases:
    async def test_failed_phase_does_not_stop_later_phases(self, harness, make_article):
        harness.rss.fetch_all.side_effect = RuntimeError("network down")
        harness.articles.get_pending_for_processing.return_value = [make_article(1)]

        result = await harness.orchestrator.run_cycle()

        assert result.status == "partial"
        assert result.stages["discovery"]["error"] == "network down"
        assert result.stages["processing"]["success"] is True
        assert result.new_quote_ids == [10]
        assert harness.runs.update_run_status.call_args.args[2] == "partial"

    async def test_optional_phases_are_skipped_by_default(self, harness):
        result = await harness.orchestrator.run_cycle()

        assert result.stages["historical"]["stats"] == {"skipped": True}
        assert result.stages["backfill"]["stats"] == {"skipped": True}
        harness.historical.fetch_all.assert_not_awaited()
        harness.backfill.run_cycle.assert_not_awaited()
        assert result.status == "success"

    async def test_enabled_optional_phases_run(self, config, conn, store):
        harness = Harness(
            config, conn, store, PipelineSettings(historical_fetch_enabled=True, backfill_enabled=True)
        )

        result = await harness.orchestrator.run_cycle()

        assert result.new_articles == 2
        assert result.stages["backfill"]["stats"]["target_date"] == "2024-03-09"
        assert result.status == "success"

    async def test_unsuccessful_backfill_marks_cycle_partial(self, config, conn, store):
        harness = Harness(config, conn, store, PipelineSettings(backfill_enabled=True))
        harness.backfill.run_cycle.return_value = BackfillResult(success=False, error="feed down")

        result = await harness.orchestrator.run_cycle()

        assert result.status == "partial"
        assert result.stages["backfill"]["error"] == "feed down"

    async def test_article_errors_are_isolated(self, harness, make_article):
        harness.articles.get_pending_for_processing.return_value = [make_article(1), make_article(2)]
        harness.processor.process_article.side_effect = [
            RuntimeError("model down"),
            ProcessResult(article_id=2, status=ArticleStatus.COMPLETED, quote_ids=[7]),
        ]

        result = await harness.orchestrator.run_cycle()

        harness.articles.mark_failed.assert_called_once_with(harness.conn, 1, "model down")
        assert result.articles_processed == 2
        assert result.new_quote_ids == [7]
        assert result.stages["processing"]["stats"]["failed"] == 1
        assert harness.notifier.emit.call_args.args == ("new_quotes", {"quote_ids": [7]})

    async def test_settings_are_applied_to_processor(self, config, conn, store):
        harness = Harness(config, conn, store, PipelineSettings(min_quote_words=8, min_significance=6))

        await harness.orchestrator.run_cycle()

        assert harness.processor.min_quote_words == 8
        assert harness.processor.min_significance == 6

    async def test_cycle_complete_is_always_emitted(self, harness):
        result = await harness.orchestrator.run_cycle()

        assert harness.events() == ["fetch_cycle_complete"]
        assert result.run_id == 99


class TestTrigger:
    """Single-flight triggering."""

    async def test_trigger_while_running_is_rejected(self, harness, make_article):
        release = asyncio.Event()
        started = asyncio.Event()

        async def slow(conn, article, auto_approve=False):
            started.set()
            await release.wait()
            return ProcessResult(article_id=article.id, status=ArticleStatus.NO_QUOTES)

        harness.processor.process_article.side_effect = slow
        harness.articles.get_pending_for_processing.return_value = [make_article(1)]
        orchestrator = harness.orchestrator

        first = asyncio.create_task(orchestrator.trigger_cycle("timer"))
        await started.wait()

        assert orchestrator.status().is_running is True
        assert await orchestrator.trigger_cycle("manual") is None

        release.set()
        result = await first

        assert result.trigger == "timer"
        assert harness.runs.create_run.call_count == 1
        assert orchestrator.is_running is False
        assert orchestrator.last_cycle_at is not None

    async def test_trigger_is_rejected_while_another_process_runs(self, harness):
        harness.runs.get_active_run.return_value = Run(
            id=7, started_at=datetime(2024, 3, 9, 12, 0, tzinfo=timezone.utc)
        )

        assert await harness.orchestrator.trigger_cycle("manual") is None
        harness.runs.get_active_run.assert_called_once_with(harness.conn, STALE_RUN_AFTER)
        harness.runs.create_run.assert_not_called()
        harness.articles.reset_stale_processing.assert_not_called()
        assert harness.orchestrator.is_running is False

    async def test_unrecoverable_error_returns_none(self, harness):
        harness.runs.create_run.side_effect = RuntimeError("database gone")

        assert await harness.orchestrator.trigger_cycle() is None
        assert harness.orchestrator.is_running is False

    async def test_start_and_stop_timer(self, harness):
        orchestrator = harness.orchestrator

        await orchestrator.start()
        await asyncio.sleep(0.05)
        assert orchestrator.status().timer_active is True
        await orchestrator.stop()

        assert orchestrator.status().timer_active is False
        assert harness.runs.create_run.call_count >= 1
