"""Historical archive providers."""

from typing import Optional

from ..config import Config, ConfigModel
from .base import ConnectionTest, HistoricalArticle, HistoricalProvider, ProviderRegistry, ProviderStore
from .chronicling_america import ChroniclingAmericaProvider
from .fetcher import HistoricalFetcher, HistoricalFetchResult, ProviderOutcome
from .govinfo import GovInfoProvider
from .presidency_project import PresidencyProjectProvider
from .wayback import WaybackProvider
from .wikiquote import WikiquoteProvider


def default_registry(config: Optional[Config] = None) -> ProviderRegistry:
    """Registry with every built-in provider, configured from ``config``."""
    config = config or Config(model=ConfigModel())
    http = config.config.http
    common = {"timeout": http.provider_timeout, "user_agent": http.user_agent}

    registry = ProviderRegistry()
    registry.register(ChroniclingAmericaProvider(search_terms=config.config.historical.search_terms or None, **common))
    registry.register(GovInfoProvider(api_key=config.get_govinfo_api_key(), **common))
    registry.register(PresidencyProjectProvider(**common))
    registry.register(WaybackProvider(**common))
    registry.register(WikiquoteProvider(**common))
    return registry


__all__ = [
    "ChroniclingAmericaProvider",
    "ConnectionTest",
    "GovInfoProvider",
    "HistoricalArticle",
    "HistoricalFetchResult",
    "HistoricalFetcher",
    "HistoricalProvider",
    "PresidencyProjectProvider",
    "ProviderOutcome",
    "ProviderRegistry",
    "ProviderStore",
    "WaybackProvider",
    "WikiquoteProvider",
    "default_registry",
]
