"""Quote extraction collaborator interface."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..models import Article
from .models import ExtractedQuote


class QuoteExtractor(ABC):
    """Abstract base class for quote extraction collaborators."""

    @abstractmethod
    async def extract(self, text: str, article: Article) -> List[ExtractedQuote]:
        """
        Extract attributed quotes from article text.

        Args:
            text: Full article text
            article: Article the text belongs to

        Returns:
            Extracted quotes with entities, topics and significance
        """
        pass

    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        return {}


class MockQuoteExtractor(QuoteExtractor):
    """Extractor returning canned quotes, keyed by article URL."""

    def __init__(
        self,
        quotes: Optional[List[ExtractedQuote]] = None,
        by_url: Optional[Dict[str, List[ExtractedQuote]]] = None,
    ) -> None:
        """Initialize mock extractor."""
        self.quotes = quotes or []
        self.by_url = by_url or {}
        self.calls = 0

    async def extract(self, text: str, article: Article) -> List[ExtractedQuote]:
        """Return configured quotes."""
        self.calls += 1
        return list(self.by_url.get(article.url, self.quotes))

    def get_usage_stats(self) -> Dict:
        """Get mock usage statistics."""
        return {"calls": self.calls, "total_tokens": 0}
