"""Article and quote models."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import DBModel


class ArticleStatus(str, Enum):
    """Processing status of an article."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    NO_QUOTES = "no_quotes"


class Article(DBModel):
    """A discovered document awaiting or finished processing."""

    url: str = Field(..., description="Canonical article URL")
    source_id: Optional[int] = Field(None, description="Live source, if discovered from a feed")
    historical_source_id: Optional[int] = Field(None, description="Provider, if discovered from an archive")
    title: Optional[str] = Field(None, description="Article title")
    published_at: Optional[datetime] = Field(None, description="Publication timestamp")
    prefetched_text: Optional[str] = Field(None, description="Text delivered by a provider")
    status: ArticleStatus = Field(ArticleStatus.PENDING, description="Processing status")
    error: Optional[str] = Field(None, description="Failure reason")
    quote_count: int = Field(0, ge=0)
    processed_at: Optional[datetime] = None
    domain: Optional[str] = Field(None, description="Domain of the owning live source (joined)")


class Quote(DBModel):
    """An extracted quote."""

    article_id: int = Field(..., description="Article the quote came from")
    speaker: str = Field(..., description="Attributed speaker")
    text: str = Field(..., description="Quote text")
    context: Optional[str] = Field(None, description="Surrounding context")
    quote_date: Optional[date] = Field(None, description="Date the quote was made")
    significance: int = Field(5, ge=1, le=10)
    is_visible: bool = Field(True, description="Whether the quote is public")
