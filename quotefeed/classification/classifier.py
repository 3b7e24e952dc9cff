"""Per-quote classification."""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

from psycopg import Connection

from ..db import TaxonomyStore
from ..extraction import ExtractedEntity
from ..logs import log_event
from ..models import Confidence
from .matcher import KeywordMatch, Vocabulary, match_entities, match_topics, topics_in_range
from .suggestions import SuggestionService

logger = logging.getLogger(__name__)

_TIER_ORDER = {Confidence.HIGH: 0, Confidence.MEDIUM: 1, Confidence.LOW: 2}


@dataclass
class ClassificationResult:
    """What classifying one quote produced."""

    quote_id: int
    keyword_ids: List[int] = field(default_factory=list)
    topic_ids: List[int] = field(default_factory=list)
    flagged: int = 0
    unmatched: List[str] = field(default_factory=list)
    suggestions_queued: int = 0


def dedupe_matches(matches: Sequence[KeywordMatch]) -> List[KeywordMatch]:
    """One match per keyword, keeping the most confident."""
    best = {}
    for match in sorted(matches, key=lambda m: (_TIER_ORDER[m.confidence], -m.score)):
        best.setdefault(match.keyword_id, match)
    return list(best.values())


class QuoteClassifier:
    """Link a quote to keywords and topics and queue what did not match."""

    def __init__(
        self,
        store: Optional[TaxonomyStore] = None,
        suggestions: Optional[SuggestionService] = None,
    ) -> None:
        """Initialize classifier."""
        self.store = store or TaxonomyStore()
        self.suggestions = suggestions or SuggestionService(self.store)

    def load_vocabulary(self, conn: Connection) -> Vocabulary:
        """Current keywords and aliases."""
        return Vocabulary.from_rows(self.store.get_keywords(conn), self.store.get_keyword_aliases(conn))

    def classify_quote(
        self,
        conn: Connection,
        quote_id: int,
        quote_date: Optional[date],
        entities: Sequence[ExtractedEntity],
        topic_names: Sequence[str] = (),
    ) -> ClassificationResult:
        """
        Classify one quote.

        Keyword links carry the match tier. Topics come from two routes:
        topics that contain a matched keyword, and exact matches of the
        quote's own topic names. Both respect the topic's date window.
        """
        result = ClassificationResult(quote_id=quote_id)

        matches = match_entities(entities, self.load_vocabulary(conn))
        kept = dedupe_matches(matches.matched)
        self.store.link_quote_keywords(
            conn,
            quote_id,
            [(m.keyword_id, m.confidence.value, m.entity.name) for m in kept],
        )
        result.keyword_ids = [m.keyword_id for m in kept]
        result.flagged = len(matches.flagged)
        result.unmatched = [entity.name for entity in matches.unmatched]

        via_keywords = topics_in_range(self.store.get_topics_for_keywords(conn, result.keyword_ids), quote_date)
        direct = match_topics(
            topic_names,
            self.store.get_topics(conn, active_only=True),
            self.store.get_topic_aliases(conn),
        )
        direct_topics = topics_in_range(direct.matched, quote_date)

        topic_ids = []
        for topic in via_keywords + direct_topics:
            if topic.id not in topic_ids:
                topic_ids.append(topic.id)
        self.store.link_quote_topics(conn, quote_id, topic_ids)
        result.topic_ids = topic_ids

        result.suggestions_queued = self.suggestions.queue_unmatched_entities(
            conn, quote_id, matches.unmatched, matches.closest
        ) + self.suggestions.queue_unmatched_topics(conn, quote_id, direct.unmatched)

        if matches.flagged:
            log_event(
                logger,
                logging.DEBUG,
                "taxonomy",
                "medium_confidence_match",
                quote_id=quote_id,
                matches=[(m.entity.name, m.keyword_name, round(m.score, 3)) for m in matches.flagged],
            )
        return result
