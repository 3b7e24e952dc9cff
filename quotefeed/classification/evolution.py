"""Batch taxonomy evolution.

Per-extraction suggestions are individually noisy. This pass promotes the
ones that recur: a name seen in at least three quotes within the window
becomes a batch suggestion, and a keyword that keeps receiving
medium-confidence matches gets an alias proposal built from the surface
forms that matched it.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from psycopg import Connection

from ..db import TaxonomyStore
from ..logs import log_event
from ..models import SuggestionSource, SuggestionType, TaxonomySuggestion
from ..text import normalize_name

logger = logging.getLogger(__name__)

MIN_OCCURRENCES = 3
MIN_MEDIUM_MATCHES = 2


@dataclass
class EvolutionResult:
    """Suggestions created by one evolution pass."""

    new_keyword_suggestions: int = 0
    new_topic_suggestions: int = 0
    alias_suggestions: int = 0

    @property
    def total(self) -> int:
        """All suggestions created."""
        return self.new_keyword_suggestions + self.new_topic_suggestions + self.alias_suggestions


def group_by_name(suggestions: List[TaxonomySuggestion]) -> Dict[str, List[TaxonomySuggestion]]:
    """Group suggestions by normalized name."""
    groups: Dict[str, List[TaxonomySuggestion]] = defaultdict(list)
    for suggestion in suggestions:
        key = suggestion.name_normalized or normalize_name(suggestion.suggested_data.get("name", ""))
        if key:
            groups[key].append(suggestion)
    return groups


def _most_common(values: List[Optional[str]]) -> Optional[str]:
    present = [v for v in values if v]
    return Counter(present).most_common(1)[0][0] if present else None


class TaxonomyEvolution:
    """Promote recurring evidence into reviewable suggestions."""

    def __init__(
        self,
        store: Optional[TaxonomyStore] = None,
        min_occurrences: int = MIN_OCCURRENCES,
        min_medium_matches: int = MIN_MEDIUM_MATCHES,
    ) -> None:
        """Initialize evolution pass."""
        self.store = store or TaxonomyStore()
        self.min_occurrences = min_occurrences
        self.min_medium_matches = min_medium_matches

    def run(self, conn: Connection, days: int = 7, now: Optional[datetime] = None) -> EvolutionResult:
        """Run all promotions. Running twice on the same data creates nothing new."""
        since = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        result = EvolutionResult(
            new_keyword_suggestions=self.promote_unmatched_entities(conn, since),
            new_topic_suggestions=self.promote_unmatched_topics(conn, since),
            alias_suggestions=self.suggest_alias_expansions(conn),
        )
        log_event(
            logger,
            logging.INFO,
            "taxonomy",
            "evolution_complete",
            days=days,
            new_keywords=result.new_keyword_suggestions,
            new_topics=result.new_topic_suggestions,
            aliases=result.alias_suggestions,
        )
        return result

    def promote_unmatched_entities(self, conn: Connection, since: datetime) -> int:
        """Recurring unmatched entity names become batch ``new_keyword`` suggestions."""
        pending = self.store.get_pending_since(
            conn, SuggestionType.NEW_KEYWORD, SuggestionSource.PER_EXTRACTION, since
        )
        created = 0
        for name, rows in group_by_name(pending).items():
            if len(rows) < self.min_occurrences:
                continue
            if self.store.find_keyword_id(conn, name) is not None:
                continue
            if self.store.find_pending_suggestion(
                conn, SuggestionType.NEW_KEYWORD, name, SuggestionSource.BATCH_EVOLUTION
            ):
                continue

            surface_forms = [row.suggested_data.get("name") for row in rows]
            data = {
                "name": _most_common(surface_forms) or name,
                "type": _most_common([row.suggested_data.get("type") for row in rows]),
                "occurrence_count": len(rows),
                "suggested_aliases": sorted({form for form in surface_forms if form}),
            }
            self.store.insert_suggestion(
                conn, SuggestionType.NEW_KEYWORD, data, SuggestionSource.BATCH_EVOLUTION, name_normalized=name
            )
            created += 1
        return created

    def promote_unmatched_topics(self, conn: Connection, since: datetime) -> int:
        """Recurring unmatched topic names become batch ``new_topic`` suggestions."""
        pending = self.store.get_pending_since(conn, SuggestionType.NEW_TOPIC, SuggestionSource.PER_EXTRACTION, since)
        created = 0
        for name, rows in group_by_name(pending).items():
            if len(rows) < self.min_occurrences:
                continue
            display = _most_common([row.suggested_data.get("name") for row in rows]) or name
            if self.store.find_topic_id(conn, display) is not None:
                continue
            if self.store.find_pending_suggestion(
                conn, SuggestionType.NEW_TOPIC, name, SuggestionSource.BATCH_EVOLUTION
            ):
                continue

            data = {"name": display, "occurrence_count": len(rows), "suggested_aliases": []}
            self.store.insert_suggestion(
                conn, SuggestionType.NEW_TOPIC, data, SuggestionSource.BATCH_EVOLUTION, name_normalized=name
            )
            created += 1
        return created

    def suggest_alias_expansions(self, conn: Connection) -> int:
        """Keywords with repeated medium-confidence matches get ``keyword_alias`` suggestions."""
        created = 0
        for row in self.store.get_medium_confidence_counts(conn, self.min_medium_matches):
            keyword_id = row["keyword_id"]
            if self.store.find_pending_suggestion(
                conn, SuggestionType.KEYWORD_ALIAS, row["name_normalized"], SuggestionSource.CONFIDENCE_REVIEW
            ):
                continue

            # Forms that already resolve to this keyword need no alias
            candidates = sorted(
                {
                    form
                    for form in row.get("surface_forms") or []
                    if self.store.find_keyword_id(conn, normalize_name(form)) != keyword_id
                }
            )
            if not candidates:
                continue

            data = {
                "keyword_id": keyword_id,
                "keyword_name": row["keyword_name"],
                "match_count": row["match_count"],
                "aliases": candidates,
            }
            self.store.insert_suggestion(
                conn,
                SuggestionType.KEYWORD_ALIAS,
                data,
                SuggestionSource.CONFIDENCE_REVIEW,
                name_normalized=row["name_normalized"],
            )
            created += 1
        return created


def run_taxonomy_evolution(
    conn: Connection,
    days: int = 7,
    store: Optional[TaxonomyStore] = None,
    now: Optional[datetime] = None,
) -> EvolutionResult:
    """Run one batch evolution pass over the last ``days`` of evidence."""
    return TaxonomyEvolution(store).run(conn, days=days, now=now)
