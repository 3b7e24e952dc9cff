"""Library of Congress digitized newspapers."""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..extraction import likely_contains_quotes
from .base import ConnectionTest, HistoricalArticle, HistoricalProvider, ProviderStore

logger = logging.getLogger(__name__)

SEARCH_URL = "https://chroniclingamerica.loc.gov/search/pages/results/"
MIN_OCR_LENGTH = 500
MAX_PAGES_PER_TERM = 10

DEFAULT_SEARCH_TERMS = [
    "Abraham Lincoln",
    "Theodore Roosevelt",
    "Frederick Douglass",
    "Susan B. Anthony",
    "Mark Twain",
    "Woodrow Wilson",
    "Franklin Roosevelt",
    "Eleanor Roosevelt",
    "Martin Luther King",
    "Thomas Edison",
    "Andrew Carnegie",
    "Booker T. Washington",
]


def parse_issue_date(value: Optional[str]) -> Optional[datetime]:
    """Issue dates come as YYYYMMDD."""
    if not value:
        return None
    try:
        return datetime.strptime(value[:8], "%Y%m%d").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def advance_cursor(index: int, page: int, total_pages: int, term_count: int) -> Dict[str, int]:
    """Next page of the same term, or the first page of the next term."""
    next_page = page + 1
    if next_page > total_pages or next_page > MAX_PAGES_PER_TERM:
        return {"currentIndex": (index + 1) % term_count, "currentPage": 1}
    return {"currentIndex": index, "currentPage": next_page}


class ChroniclingAmericaProvider(HistoricalProvider):
    """OCR newspaper pages that mention a rotating list of public figures."""

    key = "chronicling_america"
    name = "Chronicling America"

    def __init__(self, search_terms: Optional[List[str]] = None, **kwargs: Any) -> None:
        """Initialize provider."""
        super().__init__(**kwargs)
        self.search_terms = search_terms or DEFAULT_SEARCH_TERMS

    async def fetch_articles(self, limit: int, store: ProviderStore, cursor: Dict[str, Any]) -> List[HistoricalArticle]:
        """Pages for the current search term that contain attributed quotes."""
        terms = cursor.get("searchTerms") or self.search_terms
        index = int(cursor.get("currentIndex", 0)) % len(terms)
        page = max(1, int(cursor.get("currentPage", 1)))
        term = terms[index]

        response = await self._get_listing(SEARCH_URL, params={"andtext": term, "format": "json", "page": page})
        data = response.json()

        articles = []
        for item in data.get("items", []):
            if len(articles) >= limit:
                break
            url = item.get("url")
            ocr_text = item.get("ocr_eng") or ""
            if not url or len(ocr_text) < MIN_OCR_LENGTH or not likely_contains_quotes(ocr_text):
                continue
            if store.url_exists(url):
                continue
            articles.append(
                HistoricalArticle(
                    url=url,
                    title=f"{item.get('title') or 'Newspaper page'} ({term})",
                    published_at=parse_issue_date(item.get("date")),
                    text=ocr_text,
                )
            )

        per_page = data.get("itemsPerPage") or 20
        total_pages = math.ceil((data.get("totalItems") or 0) / per_page)
        store.save_cursor({"searchTerms": terms, **advance_cursor(index, page, total_pages, len(terms))})
        return articles

    async def test_connection(self) -> ConnectionTest:
        """Run a one-page search."""
        try:
            response = await self._probe(SEARCH_URL, params={"andtext": "president", "format": "json", "page": 1})
            total = response.json().get("totalItems", 0)
        except Exception as e:
            return ConnectionTest(success=False, message=str(e))
        return ConnectionTest(success=total > 0, message=f"Found {total} newspaper pages")
