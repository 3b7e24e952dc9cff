"""Rebuild the quote-topic cache from keyword links."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Set, Tuple

from psycopg import Connection

from ..db import TaxonomyStore
from ..logs import log_event
from ..models import Topic
from .matcher import topic_in_range

logger = logging.getLogger(__name__)


@dataclass
class MaterializeResult:
    """Outcome of a rebuild."""

    topics_processed: int
    links_created: int


def derive_quote_topics(
    topics: Iterable[Topic],
    topic_keyword_pairs: Iterable[Dict],
    quote_keywords: Iterable[Dict],
    respect_date_windows: bool = False,
) -> Set[Tuple[int, int]]:
    """
    (quote_id, topic_id) pairs for quotes sharing a keyword with a topic.

    ``quote_keywords`` must already be restricted to visible quotes. Topic
    date windows are ignored unless ``respect_date_windows`` is set.
    """
    keywords_by_topic: Dict[int, Set[int]] = defaultdict(set)
    for row in topic_keyword_pairs:
        keywords_by_topic[row["topic_id"]].add(row["keyword_id"])

    quotes_by_keyword: Dict[int, Set[Tuple[int, object]]] = defaultdict(set)
    for row in quote_keywords:
        quotes_by_keyword[row["keyword_id"]].add((row["quote_id"], row.get("quote_date")))

    pairs = set()
    for topic in topics:
        for keyword_id in keywords_by_topic.get(topic.id, ()):
            for quote_id, quote_date in quotes_by_keyword.get(keyword_id, ()):
                if respect_date_windows and not topic_in_range(topic.start_date, topic.end_date, quote_date):
                    continue
                pairs.add((quote_id, topic.id))
    return pairs


class TopicMaterializer:
    """Replace quote-topic rows with the set derived from keyword links."""

    def __init__(self, store: Optional[TaxonomyStore] = None, respect_date_windows: bool = False) -> None:
        """Initialize materializer."""
        self.store = store or TaxonomyStore()
        self.respect_date_windows = respect_date_windows

    def materialize_all(self, conn: Connection) -> MaterializeResult:
        """Rebuild every topic in one transaction."""
        topics = self.store.get_topics(conn)
        pairs = derive_quote_topics(
            topics,
            self.store.get_topic_keyword_pairs(conn),
            self.store.get_visible_quote_keywords(conn),
            respect_date_windows=self.respect_date_windows,
        )
        created = self.store.replace_quote_topics(conn, pairs)
        result = MaterializeResult(topics_processed=len(topics), links_created=created)
        log_event(
            logger,
            logging.INFO,
            "taxonomy",
            "topics_materialized",
            topics=result.topics_processed,
            links=result.links_created,
        )
        return result

    def materialize_topic(self, conn: Connection, topic_id: int) -> MaterializeResult:
        """Rebuild one topic's rows, leaving other topics untouched."""
        topics = [topic for topic in self.store.get_topics(conn) if topic.id == topic_id]
        pairs = derive_quote_topics(
            topics,
            self.store.get_topic_keyword_pairs(conn, topic_id),
            self.store.get_visible_quote_keywords(conn),
            respect_date_windows=self.respect_date_windows,
        )
        created = self.store.replace_quote_topics(conn, pairs, topic_id=topic_id)
        return MaterializeResult(topics_processed=len(topics), links_created=created)


def materialize_topics(conn: Connection, store: Optional[TaxonomyStore] = None) -> MaterializeResult:
    """Global rebuild of the quote-topic cache."""
    return TopicMaterializer(store).materialize_all(conn)


def materialize_single_topic(conn: Connection, topic_id: int, store: Optional[TaxonomyStore] = None) -> MaterializeResult:
    """Rebuild the quote-topic rows of one topic."""
    return TopicMaterializer(store).materialize_topic(conn, topic_id)
