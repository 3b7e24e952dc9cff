"""Taxonomy suggestion queue and review actions."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from psycopg import Connection

from ..db import TaxonomyStore
from ..exceptions import SuggestionNotFoundError, SuggestionStateError
from ..extraction import ExtractedEntity
from ..logs import log_event
from ..models import SuggestionSource, SuggestionStatus, SuggestionType, TaxonomySuggestion
from ..text import normalize_name

logger = logging.getLogger(__name__)


@dataclass
class ApprovalResult:
    """Vocabulary entries touched by an approval."""

    suggestion_id: int
    status: SuggestionStatus
    keyword_ids: List[int] = field(default_factory=list)
    topic_ids: List[int] = field(default_factory=list)
    aliases_added: int = 0
    duplicates_resolved: int = 0

    @property
    def keyword_id(self) -> Optional[int]:
        """The primary keyword created or extended."""
        return self.keyword_ids[0] if self.keyword_ids else None

    @property
    def topic_id(self) -> Optional[int]:
        """The primary topic created or extended."""
        return self.topic_ids[0] if self.topic_ids else None


class SuggestionService:
    """Queue, list, approve and reject taxonomy suggestions."""

    def __init__(self, store: Optional[TaxonomyStore] = None) -> None:
        """Initialize suggestion service."""
        self.store = store or TaxonomyStore()

    def queue_unmatched_entities(
        self,
        conn: Connection,
        quote_id: Optional[int],
        entities: Iterable[ExtractedEntity],
        closest: Optional[Mapping[str, Any]] = None,
    ) -> int:
        """
        Record unmatched entities as per-extraction ``new_keyword`` suggestions.

        One row per (name, quote): each row is one occurrence of evidence
        for batch evolution. Names that are already live keywords, or
        already queued for this quote, are skipped.
        """
        closest = closest or {}
        queued = 0
        seen = set()
        for entity in entities:
            normalized = normalize_name(entity.name)
            if not normalized or normalized in seen:
                continue
            seen.add(normalized)

            if self.store.find_keyword_id(conn, normalized) is not None:
                continue
            if self.store.find_pending_suggestion(
                conn, SuggestionType.NEW_KEYWORD, normalized, SuggestionSource.PER_EXTRACTION, quote_id=quote_id
            ):
                continue

            near = closest.get(normalized)
            data = {
                "name": entity.name.strip(),
                "type": entity.type,
                "closest_match": (
                    {"keyword_id": near.keyword_id, "keyword_name": near.keyword_name, "score": round(near.score, 4)}
                    if near is not None
                    else None
                ),
                "suggested_aliases": [entity.name.strip()],
            }
            self.store.insert_suggestion(
                conn,
                SuggestionType.NEW_KEYWORD,
                data,
                SuggestionSource.PER_EXTRACTION,
                name_normalized=normalized,
                quote_id=quote_id,
            )
            queued += 1
        return queued

    def queue_unmatched_topics(self, conn: Connection, quote_id: Optional[int], topic_names: Iterable[str]) -> int:
        """Record unmatched topic names as per-extraction ``new_topic`` suggestions."""
        queued = 0
        seen = set()
        for name in topic_names:
            normalized = normalize_name(name)
            if not normalized or normalized in seen:
                continue
            seen.add(normalized)

            if self.store.find_topic_id(conn, name) is not None:
                continue
            if self.store.find_pending_suggestion(
                conn, SuggestionType.NEW_TOPIC, normalized, SuggestionSource.PER_EXTRACTION, quote_id=quote_id
            ):
                continue

            self.store.insert_suggestion(
                conn,
                SuggestionType.NEW_TOPIC,
                {"name": name.strip(), "suggested_aliases": []},
                SuggestionSource.PER_EXTRACTION,
                name_normalized=normalized,
                quote_id=quote_id,
            )
            queued += 1
        return queued

    def list_suggestions(
        self,
        conn: Connection,
        suggestion_type: Optional[SuggestionType] = None,
        status: Optional[SuggestionStatus] = SuggestionStatus.PENDING,
        limit: int = 50,
        offset: int = 0,
    ) -> List[TaxonomySuggestion]:
        """Suggestions filtered by type and status."""
        return self.store.list_suggestions(conn, suggestion_type, status, limit, offset)

    def approve_suggestion(
        self,
        conn: Connection,
        suggestion_id: int,
        edited_data: Optional[Dict[str, Any]] = None,
    ) -> ApprovalResult:
        """
        Apply a pending suggestion to the vocabulary.

        Existing quote classifications are left as they are; the new entries
        only take effect for quotes classified afterwards.
        """
        suggestion = self._get_pending(conn, suggestion_id)
        data = {**suggestion.suggested_data, **(edited_data or {})}
        status = SuggestionStatus.EDITED if edited_data else SuggestionStatus.APPROVED
        result = ApprovalResult(suggestion_id=suggestion_id, status=status)

        with conn.transaction():
            handler = self._handlers()[suggestion.suggestion_type]
            handler(conn, data, result)
            self.store.set_suggestion_status(conn, suggestion_id, status, data if edited_data else None)
            if suggestion.name_normalized:
                result.duplicates_resolved = self.store.resolve_duplicate_suggestions(
                    conn,
                    suggestion.suggestion_type,
                    suggestion.name_normalized,
                    suggestion_id,
                    SuggestionStatus.APPROVED,
                )

        log_event(
            logger,
            logging.INFO,
            "taxonomy",
            "suggestion_approved",
            suggestion_id=suggestion_id,
            suggestion_type=suggestion.suggestion_type.value,
            status=status.value,
            duplicates_resolved=result.duplicates_resolved,
        )
        return result

    def reject_suggestion(self, conn: Connection, suggestion_id: int) -> None:
        """Reject a pending suggestion without touching the vocabulary."""
        self._get_pending(conn, suggestion_id)
        self.store.set_suggestion_status(conn, suggestion_id, SuggestionStatus.REJECTED)
        log_event(logger, logging.INFO, "taxonomy", "suggestion_rejected", suggestion_id=suggestion_id)

    def _get_pending(self, conn: Connection, suggestion_id: int) -> TaxonomySuggestion:
        suggestion = self.store.get_suggestion(conn, suggestion_id)
        if suggestion is None:
            raise SuggestionNotFoundError(f"Suggestion {suggestion_id} not found")
        if suggestion.status != SuggestionStatus.PENDING:
            raise SuggestionStateError(f"Suggestion {suggestion_id} is already {suggestion.status.value}")
        return suggestion

    def _handlers(self):
        return {
            SuggestionType.NEW_KEYWORD: self._apply_new_keyword,
            SuggestionType.NEW_TOPIC: self._apply_new_topic,
            SuggestionType.KEYWORD_ALIAS: self._apply_keyword_alias,
            SuggestionType.TOPIC_KEYWORD: self._apply_topic_keyword,
            SuggestionType.TOPIC_ALIAS: self._apply_topic_alias,
        }

    def _resolve_keyword(self, conn: Connection, name: str, keyword_type: Optional[str] = None) -> int:
        existing = self.store.find_keyword_id(conn, normalize_name(name))
        if existing is not None:
            return existing
        return self.store.create_keyword(conn, name, keyword_type)

    def _resolve_topic(self, conn: Connection, name: str) -> int:
        existing = self.store.find_topic_id(conn, name)
        if existing is not None:
            return existing
        return self.store.create_topic(conn, name)

    def _apply_new_keyword(self, conn: Connection, data: Dict[str, Any], result: ApprovalResult) -> None:
        keyword_id = self._resolve_keyword(conn, data["name"], data.get("type"))
        result.keyword_ids.append(keyword_id)
        result.aliases_added += self.store.add_keyword_aliases(conn, keyword_id, data.get("suggested_aliases") or [])

    def _apply_new_topic(self, conn: Connection, data: Dict[str, Any], result: ApprovalResult) -> None:
        topic_id = self._resolve_topic(conn, data["name"])
        result.topic_ids.append(topic_id)
        result.aliases_added += self.store.add_topic_aliases(conn, topic_id, data.get("suggested_aliases") or [])
        for keyword_name in data.get("keywords") or []:
            keyword_id = self._resolve_keyword(conn, keyword_name)
            self.store.link_topic_keyword(conn, topic_id, keyword_id)
            result.keyword_ids.append(keyword_id)

    def _apply_keyword_alias(self, conn: Connection, data: Dict[str, Any], result: ApprovalResult) -> None:
        keyword_id = data.get("keyword_id") or self._resolve_keyword(conn, data["keyword_name"])
        result.keyword_ids.append(keyword_id)
        result.aliases_added += self.store.add_keyword_aliases(conn, keyword_id, data.get("aliases") or [])

    def _apply_topic_keyword(self, conn: Connection, data: Dict[str, Any], result: ApprovalResult) -> None:
        topic_id = data.get("topic_id") or self._resolve_topic(conn, data["topic_name"])
        keyword_id = data.get("keyword_id") or self._resolve_keyword(conn, data["keyword_name"])
        self.store.link_topic_keyword(conn, topic_id, keyword_id)
        result.topic_ids.append(topic_id)
        result.keyword_ids.append(keyword_id)

    def _apply_topic_alias(self, conn: Connection, data: Dict[str, Any], result: ApprovalResult) -> None:
        topic_id = data.get("topic_id") or self._resolve_topic(conn, data["topic_name"])
        result.topic_ids.append(topic_id)
        result.aliases_added += self.store.add_topic_aliases(conn, topic_id, data.get("aliases") or [])
