"""Congressional Record via the GovInfo API."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..ingestion import MIN_TEXT_LENGTH, html_to_text
from .base import ConnectionTest, HistoricalArticle, HistoricalProvider, ProviderStore

logger = logging.getLogger(__name__)

API_BASE = "https://api.govinfo.gov"
WINDOW_DAYS = 30
PAGE_SIZE = 25


def search_window(offset: int, today: Optional[date] = None) -> Tuple[date, date]:
    """The 30-day window ``offset`` windows before today."""
    end = (today or date.today()) - timedelta(days=offset * WINDOW_DAYS)
    return end - timedelta(days=WINDOW_DAYS), end


def parse_issue_date(value: Optional[str]) -> Optional[datetime]:
    """ISO date of issue."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value[:10]).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


class GovInfoProvider(HistoricalProvider):
    """Floor speeches from the Congressional Record, walking backwards 30 days at a time."""

    key = "govinfo"
    name = "Congressional Record"

    def __init__(self, api_key: Optional[str] = None, **kwargs: Any) -> None:
        """Initialize provider."""
        super().__init__(**kwargs)
        self.api_key = api_key

    async def fetch_articles(self, limit: int, store: ProviderStore, cursor: Dict[str, Any]) -> List[HistoricalArticle]:
        """Packages issued in the current window. Without an API key nothing is fetched."""
        if not self.api_key:
            logger.debug("govinfo: no API key configured, skipping")
            return []

        offset = int(cursor.get("offset", 0))
        start, end = search_window(offset)
        response = await self._get_listing(
            f"{API_BASE}/search",
            params={
                "query": f"collection:CREC publishdate:range({start.isoformat()},{end.isoformat()})",
                "offset": 0,
                "pageSize": PAGE_SIZE,
                "api_key": self.api_key,
            },
        )

        articles = []
        for result in response.json().get("results", []):
            if len(articles) >= limit:
                break
            package_id = result.get("packageId")
            if not package_id:
                continue
            url = f"https://www.govinfo.gov/content/pkg/{package_id}"
            if store.url_exists(url):
                continue

            await self._pause()
            document = await self._get_document(f"{API_BASE}/packages/{package_id}/htm", params={"api_key": self.api_key})
            if document is None:
                continue
            text = html_to_text(document.text)
            if len(text) < MIN_TEXT_LENGTH:
                continue

            articles.append(
                HistoricalArticle(
                    url=url,
                    title=result.get("title") or f"Congressional Record: {package_id}",
                    published_at=parse_issue_date(result.get("dateIssued")),
                    text=text,
                )
            )

        store.save_cursor({"offset": offset + 1})
        return articles

    async def test_connection(self) -> ConnectionTest:
        """One-result search."""
        if not self.api_key:
            return ConnectionTest(success=False, message="GovInfo API key not set")
        try:
            response = await self._probe(
                f"{API_BASE}/search",
                params={"query": "collection:CREC", "pageSize": 1, "api_key": self.api_key},
            )
            count = response.json().get("count", 0)
        except Exception as e:
            return ConnectionTest(success=False, message=str(e))
        return ConnectionTest(success=count > 0, message=f"Found {count} Congressional Record entries")
