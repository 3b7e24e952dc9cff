"""Keyword, topic, classification link and suggestion storage."""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from psycopg import Connection
from psycopg.types.json import Jsonb

from ..models import (
    Keyword,
    SuggestionSource,
    SuggestionStatus,
    SuggestionType,
    TaxonomySuggestion,
    Topic,
    TopicStatus,
)
from ..text import normalize_name, slugify


class TaxonomyStore:
    """All reads and writes of the vocabulary and its links to quotes."""

    # Keywords

    def get_keywords(self, conn: Connection) -> List[Dict[str, Any]]:
        """Every keyword as {id, name, name_normalized}."""
        with conn.cursor() as cur:
            cur.execute("SELECT id, name, name_normalized FROM keywords ORDER BY id")
            return cur.fetchall()

    def get_keyword_aliases(self, conn: Connection) -> List[Dict[str, Any]]:
        """Every keyword alias as {keyword_id, keyword_name, alias_normalized}."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT ka.keyword_id, k.name AS keyword_name, ka.alias_normalized
                FROM keyword_aliases ka
                JOIN keywords k ON k.id = ka.keyword_id
                ORDER BY ka.id
                """
            )
            return cur.fetchall()

    def get_keyword(self, conn: Connection, keyword_id: int) -> Optional[Keyword]:
        """Keyword by ID."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM keywords WHERE id = %s", (keyword_id,))
            row = cur.fetchone()
            return Keyword.model_validate(row) if row else None

    def find_keyword_id(self, conn: Connection, name_normalized: str) -> Optional[int]:
        """Keyword whose name or one of whose aliases matches exactly."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT id FROM keywords WHERE name_normalized = %s
                UNION ALL
                SELECT keyword_id FROM keyword_aliases WHERE alias_normalized = %s
                LIMIT 1
                """,
                (name_normalized, name_normalized),
            )
            row = cur.fetchone()
            return row["id"] if row else None

    def create_keyword(self, conn: Connection, name: str, keyword_type: Optional[str] = None) -> int:
        """Insert a keyword, or return the existing one with the same normalized name."""
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO keywords (name, name_normalized, keyword_type)
                VALUES (%s, %s, %s)
                ON CONFLICT (name_normalized) DO UPDATE SET name = keywords.name
                RETURNING id
                """,
                (name.strip(), normalize_name(name), keyword_type),
            )
            return cur.fetchone()["id"]

    def add_keyword_aliases(self, conn: Connection, keyword_id: int, aliases: Iterable[str]) -> int:
        """Attach aliases to a keyword, skipping duplicates and the keyword's own name."""
        added = 0
        with conn.cursor() as cur:
            for alias in aliases:
                normalized = normalize_name(alias)
                if not normalized:
                    continue
                cur.execute(
                    """
                    INSERT INTO keyword_aliases (keyword_id, alias, alias_normalized)
                    SELECT %s, %s, %s
                    WHERE NOT EXISTS (
                        SELECT 1 FROM keywords WHERE id = %s AND name_normalized = %s
                    )
                    ON CONFLICT (keyword_id, alias_normalized) DO NOTHING
                    """,
                    (keyword_id, alias.strip(), normalized, keyword_id, normalized),
                )
                added += cur.rowcount
        return added

    # Topics

    def get_topics(self, conn: Connection, active_only: bool = False) -> List[Topic]:
        """All topics, or only active ones."""
        with conn.cursor() as cur:
            if active_only:
                cur.execute("SELECT * FROM topics WHERE status = 'active' ORDER BY id")
            else:
                cur.execute("SELECT * FROM topics ORDER BY id")
            return [Topic.model_validate(row) for row in cur.fetchall()]

    def get_topic_aliases(self, conn: Connection) -> List[Dict[str, Any]]:
        """Every topic alias as {topic_id, alias_normalized}."""
        with conn.cursor() as cur:
            cur.execute("SELECT topic_id, alias_normalized FROM topic_aliases ORDER BY id")
            return cur.fetchall()

    def find_topic_id(self, conn: Connection, name: str) -> Optional[int]:
        """Topic whose slug or one of whose aliases matches the name."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT id FROM topics WHERE slug = %s
                UNION ALL
                SELECT topic_id FROM topic_aliases WHERE alias_normalized = %s
                LIMIT 1
                """,
                (slugify(name), normalize_name(name)),
            )
            row = cur.fetchone()
            return row["id"] if row else None

    def create_topic(
        self,
        conn: Connection,
        name: str,
        description: Optional[str] = None,
        status: TopicStatus = TopicStatus.ACTIVE,
    ) -> int:
        """Insert a topic, or return the existing one with the same slug."""
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO topics (name, slug, description, status)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (slug) DO UPDATE SET name = topics.name
                RETURNING id
                """,
                (name.strip(), slugify(name), description, status.value),
            )
            return cur.fetchone()["id"]

    def add_topic_aliases(self, conn: Connection, topic_id: int, aliases: Iterable[str]) -> int:
        """Attach aliases to a topic."""
        added = 0
        with conn.cursor() as cur:
            for alias in aliases:
                normalized = normalize_name(alias)
                if not normalized:
                    continue
                cur.execute(
                    """
                    INSERT INTO topic_aliases (topic_id, alias, alias_normalized)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (topic_id, alias_normalized) DO NOTHING
                    """,
                    (topic_id, alias.strip(), normalized),
                )
                added += cur.rowcount
        return added

    def link_topic_keyword(self, conn: Connection, topic_id: int, keyword_id: int) -> bool:
        """Add a keyword to a topic."""
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO topic_keywords (topic_id, keyword_id)
                VALUES (%s, %s)
                ON CONFLICT DO NOTHING
                """,
                (topic_id, keyword_id),
            )
            return cur.rowcount > 0

    def get_topics_for_keywords(self, conn: Connection, keyword_ids: List[int]) -> List[Topic]:
        """Active topics linked to any of the given keywords."""
        if not keyword_ids:
            return []
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT DISTINCT t.*
                FROM topics t
                JOIN topic_keywords tk ON tk.topic_id = t.id
                WHERE tk.keyword_id = ANY(%s) AND t.status = 'active'
                ORDER BY t.id
                """,
                (list(keyword_ids),),
            )
            return [Topic.model_validate(row) for row in cur.fetchall()]

    def get_topic_keyword_pairs(self, conn: Connection, topic_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """(topic_id, keyword_id) rows, optionally for one topic."""
        with conn.cursor() as cur:
            if topic_id is None:
                cur.execute("SELECT topic_id, keyword_id FROM topic_keywords")
            else:
                cur.execute("SELECT topic_id, keyword_id FROM topic_keywords WHERE topic_id = %s", (topic_id,))
            return cur.fetchall()

    # Quote links

    def link_quote_keywords(
        self,
        conn: Connection,
        quote_id: int,
        links: Iterable[Tuple[int, str, Optional[str]]],
    ) -> int:
        """Store (keyword_id, confidence, matched_text) links; existing links are kept."""
        created = 0
        with conn.cursor() as cur:
            for keyword_id, confidence, matched_text in links:
                cur.execute(
                    """
                    INSERT INTO quote_keywords (quote_id, keyword_id, confidence, matched_text)
                    VALUES (%s, %s, %s, %s)
                    ON CONFLICT (quote_id, keyword_id) DO NOTHING
                    """,
                    (quote_id, keyword_id, confidence, matched_text),
                )
                created += cur.rowcount
        return created

    def link_quote_topics(self, conn: Connection, quote_id: int, topic_ids: Iterable[int]) -> int:
        """Store quote-topic links."""
        created = 0
        with conn.cursor() as cur:
            for topic_id in topic_ids:
                cur.execute(
                    """
                    INSERT INTO quote_topics (quote_id, topic_id)
                    VALUES (%s, %s)
                    ON CONFLICT DO NOTHING
                    """,
                    (quote_id, topic_id),
                )
                created += cur.rowcount
        return created

    def get_medium_confidence_counts(self, conn: Connection, min_count: int) -> List[Dict[str, Any]]:
        """Keywords with at least ``min_count`` medium-confidence links, with observed surface forms."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT k.id AS keyword_id, k.name AS keyword_name, k.name_normalized,
                       COUNT(*) AS match_count,
                       ARRAY_REMOVE(ARRAY_AGG(DISTINCT qk.matched_text), NULL) AS surface_forms
                FROM quote_keywords qk
                JOIN keywords k ON k.id = qk.keyword_id
                WHERE qk.confidence = 'medium'
                GROUP BY k.id, k.name, k.name_normalized
                HAVING COUNT(*) >= %s
                ORDER BY match_count DESC
                """,
                (min_count,),
            )
            return cur.fetchall()

    def get_visible_quote_keywords(self, conn: Connection) -> List[Dict[str, Any]]:
        """Keyword links of visible quotes as {quote_id, keyword_id, quote_date}."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT qk.quote_id, qk.keyword_id, q.quote_date
                FROM quote_keywords qk
                JOIN quotes q ON q.id = qk.quote_id
                WHERE q.is_visible
                """
            )
            return cur.fetchall()

    def replace_quote_topics(
        self,
        conn: Connection,
        pairs: Iterable[Tuple[int, int]],
        topic_id: Optional[int] = None,
    ) -> int:
        """Replace all quote-topic rows (or one topic's rows) in a single transaction."""
        rows = sorted(set(pairs))
        with conn.transaction():
            with conn.cursor() as cur:
                if topic_id is None:
                    cur.execute("DELETE FROM quote_topics")
                else:
                    cur.execute("DELETE FROM quote_topics WHERE topic_id = %s", (topic_id,))
                if rows:
                    cur.executemany(
                        "INSERT INTO quote_topics (quote_id, topic_id) VALUES (%s, %s)",
                        rows,
                    )
        return len(rows)

    def count_quote_topics(self, conn: Connection) -> int:
        """Rows in the quote-topic cache."""
        with conn.cursor() as cur:
            cur.execute("SELECT COUNT(*) AS n FROM quote_topics")
            return cur.fetchone()["n"]

    # Suggestions

    def insert_suggestion(
        self,
        conn: Connection,
        suggestion_type: SuggestionType,
        data: Dict[str, Any],
        source: SuggestionSource,
        name_normalized: Optional[str] = None,
        quote_id: Optional[int] = None,
    ) -> int:
        """Queue a pending suggestion."""
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO taxonomy_suggestions (suggestion_type, suggested_data, name_normalized, source, quote_id)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id
                """,
                (suggestion_type.value, Jsonb(data), name_normalized, source.value, quote_id),
            )
            return cur.fetchone()["id"]

    def find_pending_suggestion(
        self,
        conn: Connection,
        suggestion_type: SuggestionType,
        name_normalized: str,
        source: Optional[SuggestionSource] = None,
        quote_id: Optional[int] = None,
    ) -> Optional[TaxonomySuggestion]:
        """Oldest pending suggestion of this type and name, optionally narrowed by source and quote."""
        query = """
            SELECT * FROM taxonomy_suggestions
            WHERE status = 'pending' AND suggestion_type = %s AND name_normalized = %s
        """
        params: List[Any] = [suggestion_type.value, name_normalized]
        if source is not None:
            query += " AND source = %s"
            params.append(source.value)
        if quote_id is not None:
            query += " AND quote_id = %s"
            params.append(quote_id)
        query += " ORDER BY created_at, id LIMIT 1"
        with conn.cursor() as cur:
            cur.execute(query, params)
            row = cur.fetchone()
            return TaxonomySuggestion.model_validate(row) if row else None

    def get_pending_since(
        self,
        conn: Connection,
        suggestion_type: SuggestionType,
        source: SuggestionSource,
        since: datetime,
    ) -> List[TaxonomySuggestion]:
        """Pending suggestions of one type and source created after ``since``."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT * FROM taxonomy_suggestions
                WHERE status = 'pending' AND suggestion_type = %s AND source = %s AND created_at >= %s
                ORDER BY created_at, id
                """,
                (suggestion_type.value, source.value, since),
            )
            return [TaxonomySuggestion.model_validate(row) for row in cur.fetchall()]

    def get_suggestion(self, conn: Connection, suggestion_id: int) -> Optional[TaxonomySuggestion]:
        """Suggestion by ID."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM taxonomy_suggestions WHERE id = %s", (suggestion_id,))
            row = cur.fetchone()
            return TaxonomySuggestion.model_validate(row) if row else None

    def list_suggestions(
        self,
        conn: Connection,
        suggestion_type: Optional[SuggestionType] = None,
        status: Optional[SuggestionStatus] = SuggestionStatus.PENDING,
        limit: int = 50,
        offset: int = 0,
    ) -> List[TaxonomySuggestion]:
        """Suggestions for review, newest first."""
        query = "SELECT * FROM taxonomy_suggestions WHERE TRUE"
        params: List[Any] = []
        if suggestion_type is not None:
            query += " AND suggestion_type = %s"
            params.append(suggestion_type.value)
        if status is not None:
            query += " AND status = %s"
            params.append(status.value)
        query += " ORDER BY created_at DESC, id DESC LIMIT %s OFFSET %s"
        params.extend([limit, offset])
        with conn.cursor() as cur:
            cur.execute(query, params)
            return [TaxonomySuggestion.model_validate(row) for row in cur.fetchall()]

    def set_suggestion_status(
        self,
        conn: Connection,
        suggestion_id: int,
        status: SuggestionStatus,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record a review decision."""
        with conn.cursor() as cur:
            if data is None:
                cur.execute(
                    """
                    UPDATE taxonomy_suggestions
                    SET status = %s, reviewed_at = CURRENT_TIMESTAMP
                    WHERE id = %s
                    """,
                    (status.value, suggestion_id),
                )
            else:
                cur.execute(
                    """
                    UPDATE taxonomy_suggestions
                    SET status = %s, suggested_data = %s, reviewed_at = CURRENT_TIMESTAMP
                    WHERE id = %s
                    """,
                    (status.value, Jsonb(data), suggestion_id),
                )

    def resolve_duplicate_suggestions(
        self,
        conn: Connection,
        suggestion_type: SuggestionType,
        name_normalized: str,
        keep_id: int,
        status: SuggestionStatus,
    ) -> int:
        """Give other pending suggestions of the same type and name the decision made on ``keep_id``."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE taxonomy_suggestions
                SET status = %s, reviewed_at = CURRENT_TIMESTAMP
                WHERE status = 'pending' AND suggestion_type = %s AND name_normalized = %s AND id <> %s
                """,
                (status.value, suggestion_type.value, name_normalized, keep_id),
            )
            return cur.rowcount
