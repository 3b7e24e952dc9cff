"""Keyword, topic and suggestion models."""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from .base import DBModel


class Confidence(str, Enum):
    """Confidence tier of a quote-keyword link."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TopicStatus(str, Enum):
    """Lifecycle status of a topic."""

    ACTIVE = "active"
    ARCHIVED = "archived"
    DRAFT = "draft"


class SuggestionType(str, Enum):
    """Kind of vocabulary change a suggestion proposes."""

    NEW_KEYWORD = "new_keyword"
    NEW_TOPIC = "new_topic"
    KEYWORD_ALIAS = "keyword_alias"
    TOPIC_KEYWORD = "topic_keyword"
    TOPIC_ALIAS = "topic_alias"


class SuggestionSource(str, Enum):
    """Where a suggestion came from."""

    PER_EXTRACTION = "per_extraction"
    BATCH_EVOLUTION = "batch_evolution"
    CONFIDENCE_REVIEW = "confidence_review"


class SuggestionStatus(str, Enum):
    """Review status of a suggestion."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EDITED = "edited"


class Keyword(DBModel):
    """Curated keyword, usually a named entity."""

    name: str = Field(..., description="Display name")
    name_normalized: str = Field(..., description="Normalized name, unique")
    keyword_type: Optional[str] = Field(None, description="Entity type such as person or organization")


class Topic(DBModel):
    """A theme grouping keywords, optionally bounded in time."""

    name: str = Field(..., description="Display name")
    slug: str = Field(..., description="URL-safe unique name")
    description: Optional[str] = None
    status: TopicStatus = Field(TopicStatus.ACTIVE)
    start_date: Optional[date] = Field(None, description="Earliest quote date in scope")
    end_date: Optional[date] = Field(None, description="Latest quote date in scope")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")


class TaxonomySuggestion(DBModel):
    """A proposed vocabulary change awaiting review."""

    suggestion_type: SuggestionType
    suggested_data: Dict[str, Any] = Field(default_factory=dict)
    name_normalized: Optional[str] = Field(None, description="Normalized name the suggestion is about")
    source: SuggestionSource
    status: SuggestionStatus = Field(SuggestionStatus.PENDING)
    quote_id: Optional[int] = Field(None, description="Quote that produced a per-extraction suggestion")
    reviewed_at: Optional[datetime] = None
