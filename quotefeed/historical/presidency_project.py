"""American Presidency Project documents."""

import logging
from typing import Any, Dict, List, Optional

import pendulum
from bs4 import BeautifulSoup

from ..ingestion import MIN_TEXT_LENGTH, html_to_text
from .base import ConnectionTest, HistoricalArticle, HistoricalProvider, ProviderStore

logger = logging.getLogger(__name__)

BASE_URL = "https://www.presidency.ucsb.edu"
SEARCH_PATH = "/advanced-search"
ITEMS_PER_PAGE = 25


def parse_search_results(html: str) -> List[Dict[str, str]]:
    """Document links ({path, title}) on a search results page, in order."""
    soup = BeautifulSoup(html, "lxml")
    results = []
    seen = set()
    for link in soup.select('a[href^="/documents/"]'):
        path = link["href"]
        title = link.get_text(strip=True)
        if not title or path in seen:
            continue
        seen.add(path)
        results.append({"path": path, "title": title})
    return results


def parse_document(html: str) -> Dict[str, Optional[Any]]:
    """Body text and display date of a document page."""
    soup = BeautifulSoup(html, "lxml")
    body = soup.select_one("div.field-docs-content")
    text = html_to_text(str(body)) if body is not None else html_to_text(html)

    published = None
    date_span = soup.select_one("span.date-display-single")
    if date_span is not None:
        try:
            published = pendulum.from_format(date_span.get_text(strip=True), "MMMM D, YYYY", tz="UTC")
        except ValueError:
            published = None
    return {"text": text, "published_at": published}


class PresidencyProjectProvider(HistoricalProvider):
    """Speeches, statements and press conferences from the UCSB archive."""

    key = "presidency_project"
    name = "American Presidency Project"
    default_delay = 2.0

    async def fetch_articles(self, limit: int, store: ProviderStore, cursor: Dict[str, Any]) -> List[HistoricalArticle]:
        """Documents from the current search page."""
        page = int(cursor.get("currentPage", 0))
        response = await self._get_listing(
            f"{BASE_URL}{SEARCH_PATH}",
            params={"items_per_page": ITEMS_PER_PAGE, "page": page},
        )

        articles = []
        for doc in parse_search_results(response.text):
            if len(articles) >= limit:
                break
            url = f"{BASE_URL}{doc['path']}"
            if store.url_exists(url):
                continue

            await self._pause()
            document = await self._get_document(url)
            if document is None:
                continue
            parsed = parse_document(document.text)
            if len(parsed["text"]) < MIN_TEXT_LENGTH:
                continue

            articles.append(
                HistoricalArticle(url=url, title=doc["title"], published_at=parsed["published_at"], text=parsed["text"])
            )

        store.save_cursor({"currentPage": page + 1})
        return articles

    async def test_connection(self) -> ConnectionTest:
        """Load a one-item search page."""
        try:
            response = await self._probe(f"{BASE_URL}{SEARCH_PATH}", params={"items_per_page": 1})
        except Exception as e:
            return ConnectionTest(success=False, message=str(e))
        ok = "presidency.ucsb.edu" in response.text
        return ConnectionTest(success=ok, message="Site accessible" if ok else "Unexpected response")
