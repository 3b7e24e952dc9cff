"""Archived pages of the configured sources from the Wayback Machine."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..ingestion import MIN_TEXT_LENGTH, ArticleTextExtractor
from .base import ConnectionTest, HistoricalArticle, HistoricalProvider, ProviderStore

logger = logging.getLogger(__name__)

CDX_API = "https://web.archive.org/cdx/search/cdx"
CDX_TIMEOUT = 20.0

DECADES = [
    {"from": "20100101", "to": "20191231", "label": "2010s"},
    {"from": "20000101", "to": "20091231", "label": "2000s"},
    {"from": "19900101", "to": "19991231", "label": "1990s"},
    {"from": "19800101", "to": "19891231", "label": "1980s"},
]


def parse_timestamp(timestamp: str) -> Optional[datetime]:
    """Capture date from a 14-digit CDX timestamp."""
    try:
        return datetime.strptime(timestamp[:8], "%Y%m%d").replace(tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def advance_cursor(domain_index: int, decade_index: int, domain_count: int) -> Dict[str, int]:
    """Walk every decade of one domain before moving to the next domain."""
    next_decade = decade_index + 1
    if next_decade >= len(DECADES):
        return {"currentDomainIndex": (domain_index + 1) % max(domain_count, 1), "currentDecadeIndex": 0}
    return {"currentDomainIndex": domain_index, "currentDecadeIndex": next_decade}


def snapshot_url(timestamp: str, original: str) -> str:
    """Raw capture URL; ``id_`` strips the Wayback toolbar and link rewriting."""
    return f"https://web.archive.org/web/{timestamp}id_/{original}"


class WaybackProvider(HistoricalProvider):
    """Archived captures, with text taken from the snapshot rather than the live page."""

    key = "wayback"
    name = "Wayback Machine"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        """Initialize provider."""
        super().__init__(*args, **kwargs)
        self.extractor = ArticleTextExtractor(timeout=self.timeout, user_agent=self.user_agent)

    def snapshot_text(self, html: str, url: str) -> Optional[str]:
        """Main text of a captured page, or None when too short."""
        text = self.extractor.extract_primary(html, url)
        if not text or len(text) < MIN_TEXT_LENGTH:
            text = self.extractor.extract_fallback(html)
        if not text or len(text) < MIN_TEXT_LENGTH:
            return None
        return text

    async def fetch_articles(self, limit: int, store: ProviderStore, cursor: Dict[str, Any]) -> List[HistoricalArticle]:
        """Captures of the current domain within the current decade."""
        domains = store.enabled_source_domains()
        if not domains:
            return []

        domain_index = int(cursor.get("currentDomainIndex", 0)) % len(domains)
        decade_index = int(cursor.get("currentDecadeIndex", 0)) % len(DECADES)
        domain = domains[domain_index]
        decade = DECADES[decade_index]

        response = await self._get_listing(
            CDX_API,
            params=[
                ("url", f"{domain}/*"),
                ("output", "json"),
                ("fl", "timestamp,original,statuscode,mimetype"),
                ("filter", "statuscode:200"),
                ("filter", "mimetype:text/html"),
                ("limit", limit * 3),
                ("from", decade["from"]),
                ("to", decade["to"]),
            ],
            timeout=CDX_TIMEOUT,
        )
        rows = response.json()

        articles = []
        for row in rows[1:] if isinstance(rows, list) else []:
            if len(articles) >= limit:
                break
            if len(row) < 3:
                continue
            timestamp, original, status = row[0], row[1], row[2]
            if not original or status != "200":
                continue
            if store.url_exists(original):
                continue

            await self._pause()
            snapshot = snapshot_url(timestamp, original)
            document = await self._get_document(snapshot)
            if document is None:
                continue
            text = self.snapshot_text(document.text, original)
            if text is None:
                logger.debug("wayback: snapshot too short: %s", snapshot)
                continue

            articles.append(
                HistoricalArticle(
                    url=original,
                    title=f"{domain} via Wayback ({decade['label']}) - {snapshot}",
                    published_at=parse_timestamp(timestamp),
                    text=text,
                )
            )

        store.save_cursor(advance_cursor(domain_index, decade_index, len(domains)))
        return articles

    async def test_connection(self) -> ConnectionTest:
        """One-row CDX query."""
        try:
            response = await self._probe(CDX_API, params={"url": "cnn.com", "output": "json", "limit": 1})
            rows = response.json()
        except Exception as e:
            return ConnectionTest(success=False, message=str(e))
        ok = isinstance(rows, list) and len(rows) > 0
        return ConnectionTest(success=ok, message=f"CDX API responsive, {len(rows) if ok else 0} rows returned")
