"""Quote storage."""

from datetime import date
from typing import List, Optional, Set

from psycopg import Connection

from ..models import Quote


class QuoteStorage:
    """Persist extracted quotes."""

    def insert_quote(
        self,
        conn: Connection,
        article_id: int,
        speaker: str,
        text: str,
        context: Optional[str] = None,
        quote_date: Optional[date] = None,
        significance: int = 5,
        is_visible: bool = True,
    ) -> int:
        """Insert a quote and return its ID."""
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO quotes (article_id, speaker, text, context, quote_date, significance, is_visible)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (article_id, speaker, text, context, quote_date, significance, is_visible),
            )
            return cur.fetchone()["id"]

    def get_quotes_for_article(self, conn: Connection, article_id: int) -> List[Quote]:
        """Quotes extracted from one article."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM quotes WHERE article_id = %s ORDER BY id", (article_id,))
            return [Quote.model_validate(row) for row in cur.fetchall()]

    def get_covered_dates(self, conn: Connection, since: date) -> Set[date]:
        """Days on or after ``since`` with at least one visible quote."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT DISTINCT COALESCE(quote_date, created_at::date) AS day
                FROM quotes
                WHERE is_visible AND COALESCE(quote_date, created_at::date) >= %s
                """,
                (since,),
            )
            return {row["day"] for row in cur.fetchall()}
