"""Collected quotes of notable people from Wikiquote."""

import logging
import re
from typing import Any, Dict, List
from urllib.parse import quote

from .base import ConnectionTest, HistoricalArticle, HistoricalProvider, ProviderStore

logger = logging.getLogger(__name__)

API_URL = "https://en.wikiquote.org/w/api.php"
MIN_QUOTE_CHARS = 20
MAX_QUOTE_CHARS = 2000

_TEMPLATE = re.compile(r"\{\{[^}]*\}\}")
_PIPED_LINK = re.compile(r"\[\[[^\]]*\|([^\]]*)\]\]")
_LINK = re.compile(r"\[\[([^\]]*)\]\]")
_EMPHASIS = re.compile(r"'{2,3}")
_REF = re.compile(r"<ref[^>]*>.*?</ref>", re.DOTALL)
_TAG = re.compile(r"<[^>]+>")
_SPACES = re.compile(r"\s+")


def strip_wiki_markup(text: str) -> str:
    """Plain text of a wikitext fragment."""
    text = _TEMPLATE.sub("", text)
    text = _PIPED_LINK.sub(r"\1", text)
    text = _LINK.sub(r"\1", text)
    text = _EMPHASIS.sub("", text)
    text = _REF.sub("", text)
    text = _TAG.sub("", text)
    return _SPACES.sub(" ", text.replace("&nbsp;", " ")).strip()


def extract_quotes(wikitext: str) -> List[str]:
    """Top-level bullet lines; nested bullets are sources and commentary."""
    quotes = []
    for line in wikitext.splitlines():
        line = line.strip()
        if not line.startswith("*") or line.startswith("**"):
            continue
        text = strip_wiki_markup(line.lstrip("*").strip())
        if MIN_QUOTE_CHARS < len(text) < MAX_QUOTE_CHARS:
            quotes.append(text)
    return quotes


def build_document(person: str, quotes: List[str]) -> str:
    """Pseudo-article attributing each quote to the page's subject."""
    body = "\n\n".join(f'"{q}" - {person}' for q in quotes)
    return f"The following are quotes attributed to {person}:\n\n{body}"


class WikiquoteProvider(HistoricalProvider):
    """Walks Category:People with the API continuation token."""

    key = "wikiquote"
    name = "Wikiquote"

    async def fetch_articles(self, limit: int, store: ProviderStore, cursor: Dict[str, Any]) -> List[HistoricalArticle]:
        """One pseudo-article per person page with usable quotes."""
        params = {
            "action": "query",
            "list": "categorymembers",
            "cmtitle": "Category:People",
            "cmlimit": limit * 2,
            "cmtype": "page",
            "format": "json",
        }
        if cursor.get("cmcontinue"):
            params["cmcontinue"] = cursor["cmcontinue"]

        response = await self._get_listing(API_URL, params=params)
        data = response.json()
        members = data.get("query", {}).get("categorymembers", [])
        store.save_cursor({"cmcontinue": data.get("continue", {}).get("cmcontinue", "")})

        articles = []
        for member in members:
            if len(articles) >= limit:
                break
            title = member.get("title")
            if not title:
                continue
            url = f"https://en.wikiquote.org/wiki/{quote(title.replace(' ', '_'))}"
            if store.url_exists(url):
                continue

            await self._pause()
            page = await self._get_document(
                API_URL, params={"action": "parse", "page": title, "prop": "wikitext", "format": "json"}
            )
            if page is None:
                continue
            wikitext = page.json().get("parse", {}).get("wikitext", {}).get("*", "")
            quotes = extract_quotes(wikitext)
            if not quotes:
                continue

            articles.append(
                HistoricalArticle(url=url, title=f"Wikiquote: {title}", published_at=None, text=build_document(title, quotes))
            )
        return articles

    async def test_connection(self) -> ConnectionTest:
        """Site info query."""
        try:
            response = await self._probe(API_URL, params={"action": "query", "meta": "siteinfo", "format": "json"})
            site_name = response.json().get("query", {}).get("general", {}).get("sitename")
        except Exception as e:
            return ConnectionTest(success=False, message=str(e))
        if not site_name:
            return ConnectionTest(success=False, message="Invalid response")
        return ConnectionTest(success=True, message=f"Connected to {site_name}")
