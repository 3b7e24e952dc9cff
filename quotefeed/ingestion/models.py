"""Data models for ingestion."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models import ArticleStatus


class FeedItem(BaseModel):
    """Candidate article parsed from a feed."""

    url: str = Field(..., description="Article URL")
    title: Optional[str] = Field(None, description="Article title")
    published: Optional[datetime] = Field(None, description="Publication date")


class FeedResult(BaseModel):
    """Result of fetching a source's feed."""

    source_domain: str = Field(..., description="Source domain")
    feed_url: str = Field(..., description="Feed URL that was fetched")
    success: bool = Field(..., description="Whether fetch was successful")
    items: List[FeedItem] = Field(default_factory=list, description="Candidate items")
    error: Optional[str] = Field(None, description="Error message if failed")

    @property
    def item_count(self) -> int:
        """Number of candidate items."""
        return len(self.items)


class ExtractionOutcome(BaseModel):
    """Article text and the step that produced it."""

    text: Optional[str] = Field(None, description="Extracted text, None when too short")
    method: Optional[str] = Field(None, description="prefetched, primary or fallback")
    error: Optional[str] = Field(None, description="Why extraction produced nothing")


class ProcessResult(BaseModel):
    """Outcome of processing one article."""

    article_id: int
    status: ArticleStatus
    quote_ids: List[int] = Field(default_factory=list)
    method: Optional[str] = None
    error: Optional[str] = None

    @property
    def quote_count(self) -> int:
        """Quotes stored for the article."""
        return len(self.quote_ids)
