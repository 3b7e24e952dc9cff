"""Immediate approval of a quote's own vocabulary."""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence, Tuple

from psycopg import Connection

from ..db import TaxonomyStore
from ..logs import log_event
from ..models import Confidence, SuggestionSource, SuggestionType
from ..text import normalize_name
from .matcher import topics_in_range
from .suggestions import SuggestionService

logger = logging.getLogger(__name__)

EXISTING = "existing"
APPROVED = "approved"
CREATED = "created"


@dataclass
class AutoApproveResult:
    """What auto-approval resolved for one quote."""

    keyword_ids: List[int] = field(default_factory=list)
    topic_ids: List[int] = field(default_factory=list)
    approved_suggestions: int = 0
    created: int = 0


class AutoApprover:
    """
    Resolve each keyword and topic string of a quote to a live entry.

    Resolution order per string: an existing entry, then a pending
    per-extraction suggestion for the same name (approved on the spot),
    then a newly created entry.
    """

    def __init__(
        self,
        store: Optional[TaxonomyStore] = None,
        suggestions: Optional[SuggestionService] = None,
    ) -> None:
        """Initialize auto-approver."""
        self.store = store or TaxonomyStore()
        self.suggestions = suggestions or SuggestionService(self.store)

    def resolve_keyword(self, conn: Connection, name: str) -> Tuple[int, str]:
        """Keyword ID for a name and how it was obtained."""
        normalized = normalize_name(name)
        keyword_id = self.store.find_keyword_id(conn, normalized)
        if keyword_id is not None:
            return keyword_id, EXISTING

        pending = self.store.find_pending_suggestion(
            conn, SuggestionType.NEW_KEYWORD, normalized, SuggestionSource.PER_EXTRACTION
        )
        if pending is not None:
            approval = self.suggestions.approve_suggestion(conn, pending.id)
            if approval.keyword_id is not None:
                return approval.keyword_id, APPROVED

        return self.store.create_keyword(conn, name.strip()), CREATED

    def resolve_topic(self, conn: Connection, name: str) -> Tuple[int, str]:
        """Topic ID for a name and how it was obtained."""
        topic_id = self.store.find_topic_id(conn, name)
        if topic_id is not None:
            return topic_id, EXISTING

        pending = self.store.find_pending_suggestion(
            conn, SuggestionType.NEW_TOPIC, normalize_name(name), SuggestionSource.PER_EXTRACTION
        )
        if pending is not None:
            approval = self.suggestions.approve_suggestion(conn, pending.id)
            if approval.topic_id is not None:
                return approval.topic_id, APPROVED

        return self.store.create_topic(conn, name.strip()), CREATED

    def apply(
        self,
        conn: Connection,
        quote_id: int,
        quote_date: Optional[date],
        keywords: Sequence[str],
        topics: Sequence[str],
    ) -> AutoApproveResult:
        """Resolve and link a quote's keywords (high confidence) and topics."""
        result = AutoApproveResult()

        links = []
        for name in keywords:
            if not normalize_name(name):
                continue
            keyword_id, how = self.resolve_keyword(conn, name)
            self._count(result, how)
            if keyword_id not in result.keyword_ids:
                result.keyword_ids.append(keyword_id)
                links.append((keyword_id, Confidence.HIGH.value, name))
        self.store.link_quote_keywords(conn, quote_id, links)

        direct_ids = []
        for name in topics:
            if not normalize_name(name):
                continue
            topic_id, how = self.resolve_topic(conn, name)
            self._count(result, how)
            if topic_id not in direct_ids:
                direct_ids.append(topic_id)

        known = {topic.id: topic for topic in self.store.get_topics(conn)}
        candidates = [known[topic_id] for topic_id in direct_ids if topic_id in known]
        candidates += self.store.get_topics_for_keywords(conn, result.keyword_ids)
        for topic in topics_in_range(candidates, quote_date):
            if topic.id not in result.topic_ids:
                result.topic_ids.append(topic.id)
        self.store.link_quote_topics(conn, quote_id, result.topic_ids)

        if result.approved_suggestions or result.created:
            log_event(
                logger,
                logging.INFO,
                "taxonomy",
                "auto_approved",
                quote_id=quote_id,
                approved=result.approved_suggestions,
                created=result.created,
            )
        return result

    @staticmethod
    def _count(result: AutoApproveResult, how: str) -> None:
        if how == APPROVED:
            result.approved_suggestions += 1
        elif how == CREATED:
            result.created += 1
