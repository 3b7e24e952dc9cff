"""Backfill attempt log."""

from datetime import date
from typing import List, Set

from psycopg import Connection

from ..models import BackfillAttempt


class BackfillLog:
    """Record one attempt per target day."""

    def get_attempted_dates(self, conn: Connection, since: date) -> Set[date]:
        """Days on or after ``since`` that already have an attempt row."""
        with conn.cursor() as cur:
            cur.execute("SELECT target_date FROM backfill_log WHERE target_date >= %s", (since,))
            return {row["target_date"] for row in cur.fetchall()}

    def start(self, conn: Connection, target_date: date) -> None:
        """Write the 'processing' row before any work begins."""
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO backfill_log (target_date, status, started_at)
                VALUES (%s, 'processing', CURRENT_TIMESTAMP)
                ON CONFLICT (target_date) DO UPDATE SET
                    status = 'processing',
                    started_at = CURRENT_TIMESTAMP,
                    completed_at = NULL,
                    error = NULL
                """,
                (target_date,),
            )

    def complete(self, conn: Connection, target_date: date, articles_found: int, quotes_extracted: int) -> None:
        """Mark an attempt finished."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE backfill_log
                SET status = 'completed', articles_found = %s, quotes_extracted = %s,
                    completed_at = CURRENT_TIMESTAMP
                WHERE target_date = %s
                """,
                (articles_found, quotes_extracted, target_date),
            )

    def fail(self, conn: Connection, target_date: date, error: str) -> None:
        """Mark an attempt failed."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE backfill_log
                SET status = 'failed', error = %s, completed_at = CURRENT_TIMESTAMP
                WHERE target_date = %s
                """,
                (error[:2000], target_date),
            )

    def get_recent(self, conn: Connection, limit: int = 20) -> List[BackfillAttempt]:
        """Most recent attempts first."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM backfill_log ORDER BY target_date DESC LIMIT %s", (limit,))
            return [BackfillAttempt.model_validate(row) for row in cur.fetchall()]
