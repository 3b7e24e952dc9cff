"""Article fetcher and text extractor."""

import logging
from typing import Optional

import httpx
import trafilatura
from bs4 import BeautifulSoup
from readability import Document
from readability.readability import Unparseable

from ..logs import log_event
from .models import ExtractionOutcome

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 200
TEXT_TOO_SHORT = "Text too short or extraction failed"


def html_to_text(html: str) -> str:
    """Visible text of an HTML fragment, one block per line."""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    lines = (line.strip() for line in soup.get_text("\n").splitlines())
    return "\n".join(line for line in lines if line)


class ArticleTextExtractor:
    """Fetch article HTML once, then try trafilatura and a readability fallback."""

    def __init__(
        self,
        timeout: float = 15.0,
        user_agent: str = "QuoteFeed/1.0",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize article text extractor."""
        self.timeout = timeout
        self.user_agent = user_agent
        self._client = client

    async def fetch_html(self, url: str) -> str:
        """Download the article page."""
        headers = {"User-Agent": self.user_agent, "Accept": "text/html,application/xhtml+xml"}
        if self._client is not None:
            response = await self._client.get(url, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True, headers=headers) as client:
                response = await client.get(url)
        response.raise_for_status()
        return response.text

    def extract_primary(self, html: str, url: str) -> Optional[str]:
        """Main-content extraction with trafilatura."""
        return trafilatura.extract(
            html,
            url=url,
            include_comments=False,
            include_tables=False,
            deduplicate=True,
        )

    def extract_fallback(self, html: str) -> Optional[str]:
        """Readability's DOM heuristics, rendered to plain text."""
        try:
            summary = Document(html).summary(html_partial=True)
        except (Unparseable, ValueError) as e:
            logger.debug("Readability failed: %s", e)
            return None
        return html_to_text(summary)

    async def extract(self, url: str) -> ExtractionOutcome:
        """Run the extraction chain; ``text`` is None when nothing reaches the minimum length."""
        try:
            html = await self.fetch_html(url)
        except httpx.HTTPStatusError as e:
            return ExtractionOutcome(error=f"HTTP {e.response.status_code}")
        except httpx.TimeoutException:
            return ExtractionOutcome(error="Timeout")
        except httpx.HTTPError as e:
            return ExtractionOutcome(error=f"HTTP error: {e}")

        text = self.extract_primary(html, url)
        if text and len(text) >= MIN_TEXT_LENGTH:
            return ExtractionOutcome(text=text, method="primary")

        text = self.extract_fallback(html)
        if text and len(text) >= MIN_TEXT_LENGTH:
            log_event(logger, logging.DEBUG, "processor", "fallback_extraction", url=url)
            return ExtractionOutcome(text=text, method="fallback")

        return ExtractionOutcome(error=TEXT_TOO_SHORT)
