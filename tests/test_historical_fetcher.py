"""Tests for the historical discovery pass."""

from unittest.mock import MagicMock

import pytest

from quotefeed.exceptions import ProviderError
from quotefeed.historical import ConnectionTest, HistoricalArticle, HistoricalFetcher, HistoricalProvider, ProviderRegistry
from quotefeed.models import HistoricalSource, ProviderStatus


class StaticProvider(HistoricalProvider):
    key = "static"
    name = "Static"

    def __init__(self, items=None, error=None):
        super().__init__(request_delay=0)
        self.items = items or []
        self.error = error
        self.cursors = []

    async def fetch_articles(self, limit, store, cursor):
        self.cursors.append(cursor)
        if self.error is not None:
            raise self.error
        store.save_cursor({"page": cursor.get("page", 0) + 1})
        return self.items[:limit]

    async def test_connection(self):
        return ConnectionTest(success=True, message="ok")


class BrokenProvider(StaticProvider):
    key = "broken"
    name = "Broken"


def provider_row(row_id, key, failures=0, enabled=True, status=ProviderStatus.WORKING, config=None):
    return HistoricalSource(
        id=row_id,
        provider_key=key,
        name=key.title(),
        enabled=enabled,
        status=status,
        consecutive_failures=failures,
        config=config or {},
    )


@pytest.fixture
def historical():
    return MagicMock(name="historical")


@pytest.fixture
def articles():
    storage = MagicMock(name="articles")
    storage.insert_article.side_effect = lambda conn, **fields: None if fields["url"].endswith("dup") else 1
    return storage


@pytest.fixture
def notifier():
    return MagicMock(name="notifier")


def make_fetcher(historical, articles, notifier, *providers):
    registry = ProviderRegistry()
    for provider in providers:
        registry.register(provider)
    return HistoricalFetcher(registry, historical=historical, articles=articles, notifier=notifier)


class TestFetchAll:
    async def test_inserts_items_with_prefetched_text(self, conn, historical, articles, notifier):
        provider = StaticProvider(
            items=[
                HistoricalArticle(url="https://archive.org/a", title="A", text="body"),
                HistoricalArticle(url="https://archive.org/dup", title="Dup"),
            ]
        )
        historical.get_all.return_value = [provider_row(7, "static", config={"page": 3})]
        fetcher = make_fetcher(historical, articles, notifier, provider)

        result = await fetcher.fetch_all(conn, 5)

        assert result.inserted == 1
        assert provider.cursors == [{"page": 3}]
        historical.save_cursor.assert_called_once_with(conn, "static", {"page": 4})
        first = articles.insert_article.call_args_list[0].kwargs
        assert first["historical_source_id"] == 7
        assert first["prefetched_text"] == "body"
        historical.record_success.assert_called_once_with(conn, "static", 1)
        historical.sync_providers.assert_called_once()

    async def test_skips_disabled_and_failed_providers(self, conn, historical, articles, notifier):
        provider = StaticProvider()
        broken = BrokenProvider()
        historical.get_all.return_value = [
            provider_row(1, "static", enabled=False),
            provider_row(2, "broken", status=ProviderStatus.FAILED),
        ]
        fetcher = make_fetcher(historical, articles, notifier, provider, broken)

        result = await fetcher.fetch_all(conn, 5)

        assert result.outcomes == []
        assert provider.cursors == [] and broken.cursors == []

    async def test_failure_does_not_stop_other_providers(self, conn, historical, articles, notifier):
        broken = BrokenProvider(error=ProviderError("broken", "HTTP 500"))
        healthy = StaticProvider(items=[HistoricalArticle(url="https://archive.org/a")])
        historical.get_all.return_value = [provider_row(1, "broken"), provider_row(2, "static")]
        historical.record_failure.return_value = 1
        fetcher = make_fetcher(historical, articles, notifier, broken, healthy)

        result = await fetcher.fetch_all(conn, 5)

        assert result.failed == 1
        assert result.inserted == 1
        historical.record_failure.assert_called_once_with(conn, "broken", "broken: HTTP 500")
        historical.mark_failed.assert_not_called()
        notifier.emit.assert_not_called()

    async def test_fifth_failure_disables_and_notifies(self, conn, historical, articles, notifier):
        broken = BrokenProvider(error=RuntimeError("boom"))
        historical.get_all.return_value = [provider_row(1, "broken", failures=4)]
        historical.record_failure.return_value = 5
        fetcher = make_fetcher(historical, articles, notifier, broken)

        result = await fetcher.fetch_all(conn, 5)

        assert result.outcomes[0].disabled is True
        historical.mark_failed.assert_called_once_with(conn, "broken")
        event, payload = notifier.emit.call_args.args
        assert event == "provider_disabled"
        assert payload["provider"] == "broken"
        assert payload["consecutive_failures"] == 5
