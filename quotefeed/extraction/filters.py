"""Checks applied around the extraction collaborator."""

import re
from datetime import date, datetime
from typing import List, Optional

from .models import ExtractedQuote

QUOTE_CHARS = re.compile(r"[\"“”]")
ATTRIBUTION_VERBS = re.compile(
    r"\b(said|stated|told|claimed|argued|noted|added|explained|warned|insisted|remarked|"
    r"commented|declared|announced|responded|replied|acknowledged|admitted|confirmed|denied|"
    r"emphasized|stressed|suggested|urged|asked|demanded|revealed|disclosed|predicted|"
    r"recalled|testified|wrote|tweeted|posted)\b",
    re.IGNORECASE,
)
_NON_WORD = re.compile(r"[^\w\s]")
_SPACES = re.compile(r"\s+")


def likely_contains_quotes(text: str) -> bool:
    """Cheap check for quotation marks plus an attribution verb."""
    return bool(QUOTE_CHARS.search(text)) and bool(ATTRIBUTION_VERBS.search(text))


def is_fragment(text: str) -> bool:
    """Truncated excerpts and mid-sentence starts are fragments."""
    trimmed = (text or "").strip()
    if not trimmed:
        return True
    if trimmed.startswith(("...", "…")) or trimmed.endswith(("...", "…")):
        return True
    return trimmed[0].isalpha() and trimmed[0].islower()


def _squash(value: str) -> str:
    return _SPACES.sub(" ", _NON_WORD.sub("", value.lower())).strip()


def quote_in_article(quote_text: str, article_text: str) -> bool:
    """Whether the quote occurs in the article; long quotes match on their first or last ten words."""
    quote = _squash(quote_text)
    article = _squash(article_text)
    if not quote:
        return False
    if len(quote) > 50:
        words = quote.split(" ")
        return " ".join(words[:10]) in article or " ".join(words[-10:]) in article
    return quote in article


def speaker_in_article(speaker: str, article_text: str) -> bool:
    """Whether the speaker's last name occurs in the article."""
    parts = speaker.split()
    return bool(parts) and parts[-1].lower() in article_text.lower()


def filter_quotes(quotes: List[ExtractedQuote], article_text: str, min_words: int = 5) -> List[ExtractedQuote]:
    """Keep direct, long-enough quotes that can be found in the article."""
    kept = []
    for quote in quotes:
        if quote.quote_type != "direct":
            continue
        if len(quote.text.split()) < min_words:
            continue
        if not quote.speaker.strip():
            continue
        if not quote_in_article(quote.text, article_text):
            continue
        if not speaker_in_article(quote.speaker, article_text):
            continue
        kept.append(quote)
    return kept


def resolve_quote_date(raw: Optional[str], published_at: Optional[datetime]) -> Optional[date]:
    """ISO date from the collaborator, else the article's publication date."""
    if raw and raw.lower() != "unknown":
        try:
            return date.fromisoformat(raw[:10])
        except ValueError:
            pass
    return published_at.date() if published_at else None


def is_visible(quote: ExtractedQuote, min_significance: int = 5) -> bool:
    """Public quotes are significant and complete."""
    return quote.significance >= min_significance and not is_fragment(quote.text)
