"""Cycle run and backfill attempt models."""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from .base import DBModel


class BackfillStatus(str, Enum):
    """Status of a backfill attempt."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Run(DBModel):
    """One orchestrator cycle."""

    started_at: datetime = Field(..., description="When the cycle started")
    finished_at: Optional[datetime] = Field(None, description="When the cycle finished")
    status: str = Field("running", description="Run status (running, success, partial, failed)")
    trigger: str = Field("timer", description="What started the cycle (timer, manual)")
    stats_json: Optional[Dict[str, Any]] = Field(None, description="Per-phase statistics")


class BackfillAttempt(DBModel):
    """One attempt to fill a missing day."""

    target_date: date
    status: BackfillStatus = Field(BackfillStatus.PROCESSING)
    articles_found: int = Field(0, ge=0)
    quotes_extracted: int = Field(0, ge=0)
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
