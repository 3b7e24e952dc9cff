"""Quote extraction collaborator."""

from .base import MockQuoteExtractor, QuoteExtractor
from .filters import filter_quotes, is_fragment, is_visible, likely_contains_quotes, resolve_quote_date
from .models import ExtractedEntity, ExtractedQuote
from .openai_extractor import OpenAIQuoteExtractor, parse_quotes

__all__ = [
    "ExtractedEntity",
    "ExtractedQuote",
    "MockQuoteExtractor",
    "OpenAIQuoteExtractor",
    "QuoteExtractor",
    "filter_quotes",
    "is_fragment",
    "is_visible",
    "likely_contains_quotes",
    "parse_quotes",
    "resolve_quote_date",
]
