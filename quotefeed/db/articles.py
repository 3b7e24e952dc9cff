"""Article storage and management."""

from datetime import datetime
from typing import Dict, List, Optional

from psycopg import Connection

from ..models import Article, ArticleStatus


class ArticleStorage:
    """Store discovered articles and track their processing status."""

    def insert_article(
        self,
        conn: Connection,
        url: str,
        title: Optional[str] = None,
        published_at: Optional[datetime] = None,
        source_id: Optional[int] = None,
        historical_source_id: Optional[int] = None,
        prefetched_text: Optional[str] = None,
    ) -> Optional[int]:
        """
        Insert a pending article.

        Returns:
            New article ID, or None if the URL was already known
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO articles (
                    url, title, published_at, source_id, historical_source_id, prefetched_text, status
                )
                VALUES (%s, %s, %s, %s, %s, %s, 'pending')
                ON CONFLICT (url) DO NOTHING
                RETURNING id
                """,
                (url, title, published_at, source_id, historical_source_id, prefetched_text),
            )
            row = cur.fetchone()
            return row["id"] if row else None

    def url_exists(self, conn: Connection, url: str) -> bool:
        """Whether an article with this URL is already stored."""
        with conn.cursor() as cur:
            cur.execute("SELECT 1 FROM articles WHERE url = %s", (url,))
            return cur.fetchone() is not None

    def get_article(self, conn: Connection, article_id: int) -> Optional[Article]:
        """Get article by ID, with its source domain."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT a.*, s.domain
                FROM articles a
                LEFT JOIN sources s ON s.id = a.source_id
                WHERE a.id = %s
                """,
                (article_id,),
            )
            row = cur.fetchone()
            return Article.model_validate(row) if row else None

    def get_pending_for_processing(
        self,
        conn: Connection,
        per_source_limit: int,
        per_provider_limit: int,
    ) -> List[Article]:
        """
        Select pending articles with a cap per origin.

        Live sources and historical providers are capped independently so a
        large archive backlog cannot crowd out fresh feed items.
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                WITH ranked AS (
                    SELECT a.*, s.domain,
                           ROW_NUMBER() OVER (
                               PARTITION BY a.source_id, a.historical_source_id
                               ORDER BY a.published_at DESC NULLS LAST, a.id
                           ) AS origin_rank
                    FROM articles a
                    LEFT JOIN sources s ON s.id = a.source_id
                    WHERE a.status = 'pending'
                )
                SELECT * FROM ranked
                WHERE (historical_source_id IS NULL AND origin_rank <= %s)
                   OR (historical_source_id IS NOT NULL AND origin_rank <= %s)
                ORDER BY published_at DESC NULLS LAST, id
                """,
                (per_source_limit, per_provider_limit),
            )
            return [Article.model_validate(row) for row in cur.fetchall()]

    def mark_processing(self, conn: Connection, article_id: int) -> None:
        """Flag an article as being processed."""
        self._set_status(conn, article_id, ArticleStatus.PROCESSING)

    def mark_failed(self, conn: Connection, article_id: int, error: str) -> None:
        """Record a processing failure."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE articles
                SET status = 'failed', error = %s, processed_at = CURRENT_TIMESTAMP
                WHERE id = %s
                """,
                (error[:2000], article_id),
            )

    def mark_processed(self, conn: Connection, article_id: int, quote_count: int) -> ArticleStatus:
        """Record a finished article; status depends on whether quotes were found."""
        status = ArticleStatus.COMPLETED if quote_count > 0 else ArticleStatus.NO_QUOTES
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE articles
                SET status = %s, quote_count = %s, error = NULL, processed_at = CURRENT_TIMESTAMP
                WHERE id = %s
                """,
                (status.value, quote_count, article_id),
            )
        return status

    def reset_stale_processing(self, conn: Connection) -> int:
        """Return articles left in 'processing' by an interrupted run to the queue."""
        with conn.cursor() as cur:
            cur.execute("UPDATE articles SET status = 'pending' WHERE status = 'processing'")
            return cur.rowcount

    def count_by_status(self, conn: Connection) -> Dict[str, int]:
        """Article counts keyed by status."""
        with conn.cursor() as cur:
            cur.execute("SELECT status, COUNT(*) AS n FROM articles GROUP BY status")
            return {row["status"]: row["n"] for row in cur.fetchall()}

    def _set_status(self, conn: Connection, article_id: int, status: ArticleStatus) -> None:
        with conn.cursor() as cur:
            cur.execute("UPDATE articles SET status = %s WHERE id = %s", (status.value, article_id))
