"""Data models."""

from .article import Article, ArticleStatus, Quote
from .run import BackfillAttempt, BackfillStatus, Run
from .source import HistoricalSource, ProviderStatus, Source
from .taxonomy import (
    Confidence,
    Keyword,
    SuggestionSource,
    SuggestionStatus,
    SuggestionType,
    TaxonomySuggestion,
    Topic,
    TopicStatus,
)

__all__ = [
    "Article",
    "ArticleStatus",
    "BackfillAttempt",
    "BackfillStatus",
    "Confidence",
    "HistoricalSource",
    "Keyword",
    "ProviderStatus",
    "Quote",
    "Run",
    "Source",
    "SuggestionSource",
    "SuggestionStatus",
    "SuggestionType",
    "TaxonomySuggestion",
    "Topic",
    "TopicStatus",
]
