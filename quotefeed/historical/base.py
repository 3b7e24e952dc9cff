"""Historical provider interface."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

import httpx
from psycopg import Connection
from pydantic import BaseModel, Field

from ..db import ArticleStorage, HistoricalSourceManager
from ..exceptions import ProviderError

logger = logging.getLogger(__name__)


class HistoricalArticle(BaseModel):
    """A document delivered by a historical provider."""

    url: str = Field(..., description="Document URL, unique across all articles")
    title: Optional[str] = Field(None, description="Document title")
    published_at: Optional[datetime] = Field(None, description="Original publication date")
    text: Optional[str] = Field(None, description="Full text, or None to fetch at processing time")


class ConnectionTest(BaseModel):
    """Result of a provider connectivity check."""

    success: bool
    message: str


class ProviderStore:
    """The slice of the store a provider may touch during one fetch."""

    def __init__(
        self,
        conn: Connection,
        provider_key: str,
        historical: Optional[HistoricalSourceManager] = None,
        articles: Optional[ArticleStorage] = None,
    ) -> None:
        """Initialize provider store."""
        self.conn = conn
        self.provider_key = provider_key
        self.historical = historical or HistoricalSourceManager()
        self.articles = articles or ArticleStorage()

    def url_exists(self, url: str) -> bool:
        """Whether an article with this URL is already stored."""
        return self.articles.url_exists(self.conn, url)

    def enabled_source_domains(self) -> List[str]:
        """Domains of enabled live sources, sorted."""
        with self.conn.cursor() as cur:
            cur.execute("SELECT DISTINCT domain FROM sources WHERE enabled ORDER BY domain")
            return [row["domain"] for row in cur.fetchall()]

    def save_cursor(self, cursor: Dict[str, Any]) -> None:
        """Persist the provider's pagination cursor."""
        self.historical.save_cursor(self.conn, self.provider_key, cursor)


class HistoricalProvider(ABC):
    """
    Base class for archive adapters.

    ``fetch_articles`` resumes from ``cursor`` and must save the advanced
    cursor through ``store.save_cursor`` before returning. A failed listing
    request raises; a single document that cannot be fetched is skipped.
    """

    key: str = ""
    name: str = ""
    default_delay: float = 1.0

    def __init__(
        self,
        timeout: float = 15.0,
        user_agent: str = "QuoteFeed/1.0",
        client: Optional[httpx.AsyncClient] = None,
        request_delay: Optional[float] = None,
    ) -> None:
        """Initialize provider."""
        self.timeout = timeout
        self.request_delay = self.default_delay if request_delay is None else request_delay
        self.user_agent = user_agent
        self._client = client

    @abstractmethod
    async def fetch_articles(
        self,
        limit: int,
        store: ProviderStore,
        cursor: Dict[str, Any],
    ) -> List[HistoricalArticle]:
        """Fetch up to ``limit`` new documents."""
        pass

    @abstractmethod
    async def test_connection(self) -> ConnectionTest:
        """Check that the remote service answers."""
        pass

    async def _get(
        self,
        url: str,
        params: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """GET with the provider's headers and timeout; raises on non-2xx."""
        headers = {"User-Agent": self.user_agent}
        if self._client is not None:
            response = await self._client.get(url, params=params, headers=headers, timeout=timeout or self.timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout or self.timeout, follow_redirects=True) as client:
                response = await client.get(url, params=params, headers=headers)
        response.raise_for_status()
        return response

    async def _get_listing(
        self,
        url: str,
        params: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """Like ``_get`` but converts transport errors into :class:`ProviderError`."""
        try:
            return await self._get(url, params=params, timeout=timeout)
        except httpx.HTTPStatusError as e:
            raise ProviderError(self.key, f"HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise ProviderError(self.key, "Timeout") from e
        except httpx.HTTPError as e:
            raise ProviderError(self.key, f"HTTP error: {e}") from e

    async def _get_document(self, url: str, params: Optional[Dict[str, Any]] = None) -> Optional[httpx.Response]:
        """Fetch one document; None if it could not be retrieved."""
        try:
            return await self._get(url, params=params)
        except httpx.HTTPError as e:
            logger.debug("%s: skipping %s: %s", self.key, url, e)
            return None

    async def _pause(self) -> None:
        """Spacing between document requests to the same service."""
        if self.request_delay > 0:
            await asyncio.sleep(self.request_delay)

    async def _probe(self, url: str, params: Optional[Dict[str, Any]] = None) -> Optional[httpx.Response]:
        """Connectivity check request with a 10 second timeout."""
        return await self._get(url, params=params, timeout=10.0)


class ProviderRegistry:
    """Keyed collection of providers."""

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._providers: Dict[str, HistoricalProvider] = {}

    def register(self, provider: HistoricalProvider) -> None:
        """Add a provider under its key."""
        if not provider.key:
            raise ValueError(f"{type(provider).__name__} has no key")
        self._providers[provider.key] = provider

    def get(self, key: str) -> Optional[HistoricalProvider]:
        """Provider by key."""
        return self._providers.get(key)

    def keys(self) -> List[str]:
        """Registered keys."""
        return list(self._providers)

    def __iter__(self) -> Iterator[HistoricalProvider]:
        return iter(self._providers.values())

    def __len__(self) -> int:
        return len(self._providers)
