"""Live feed sources and historical provider rows."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from .base import DBModel


class ProviderStatus(str, Enum):
    """Health status of a historical provider."""

    WORKING = "working"
    FAILED = "failed"
    DISABLED = "disabled"
    UNKNOWN = "unknown"


class Source(DBModel):
    """Live publisher feed source."""

    domain: str = Field(..., description="Publisher domain")
    name: str = Field(..., description="Display name")
    rss_url: Optional[str] = Field(None, description="Feed URL, Google News search when empty")
    enabled: bool = Field(True, description="Whether the source is fetched")
    consecutive_failures: int = Field(0, description="Failed discovery attempts in a row", ge=0)
    is_top_story: bool = Field(False, description="Whether the source feeds top stories")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")


class HistoricalSource(DBModel):
    """Persisted state of one historical provider."""

    provider_key: str = Field(..., description="Registry key of the provider")
    name: str = Field(..., description="Display name")
    enabled: bool = Field(False, description="Whether the provider runs each cycle")
    status: ProviderStatus = Field(ProviderStatus.UNKNOWN, description="Provider health")
    consecutive_failures: int = Field(0, ge=0)
    total_articles_fetched: int = Field(0, ge=0)
    last_fetch_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None
    last_error: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict, description="Provider cursor document")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")
