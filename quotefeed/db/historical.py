"""Historical provider state in database."""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from psycopg import Connection
from psycopg.types.json import Jsonb

from ..models import HistoricalSource


class HistoricalSourceManager:
    """Manage historical provider rows: enablement, health and cursors."""

    def sync_providers(self, conn: Connection, providers: Iterable[Tuple[str, str]]) -> int:
        """Ensure a row exists for every (key, name). Returns rows created."""
        created = 0
        with conn.cursor() as cur:
            for key, name in providers:
                cur.execute(
                    """
                    INSERT INTO historical_sources (provider_key, name)
                    VALUES (%s, %s)
                    ON CONFLICT (provider_key) DO NOTHING
                    """,
                    (key, name),
                )
                created += cur.rowcount
        return created

    def get_all(self, conn: Connection) -> List[HistoricalSource]:
        """All provider rows."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM historical_sources ORDER BY provider_key")
            return [HistoricalSource.model_validate(row) for row in cur.fetchall()]

    def get_by_key(self, conn: Connection, provider_key: str) -> Optional[HistoricalSource]:
        """Provider row by key."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM historical_sources WHERE provider_key = %s", (provider_key,))
            row = cur.fetchone()
            return HistoricalSource.model_validate(row) if row else None

    def save_cursor(self, conn: Connection, provider_key: str, cursor: Dict[str, Any]) -> None:
        """Persist a provider's pagination cursor."""
        with conn.cursor() as cur:
            cur.execute(
                "UPDATE historical_sources SET config = %s WHERE provider_key = %s",
                (Jsonb(cursor), provider_key),
            )

    def set_enabled(self, conn: Connection, provider_key: str, enabled: bool) -> bool:
        """Enable (resetting health) or disable a provider."""
        with conn.cursor() as cur:
            if enabled:
                cur.execute(
                    """
                    UPDATE historical_sources
                    SET enabled = TRUE, status = 'unknown', consecutive_failures = 0
                    WHERE provider_key = %s
                    """,
                    (provider_key,),
                )
            else:
                cur.execute(
                    """
                    UPDATE historical_sources
                    SET enabled = FALSE, status = 'disabled'
                    WHERE provider_key = %s
                    """,
                    (provider_key,),
                )
            return cur.rowcount > 0

    def record_success(self, conn: Connection, provider_key: str, inserted: int) -> None:
        """Reset health after a successful fetch and add to the running total."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE historical_sources
                SET consecutive_failures = 0,
                    status = 'working',
                    total_articles_fetched = total_articles_fetched + %s,
                    last_fetch_at = CURRENT_TIMESTAMP,
                    last_success_at = CURRENT_TIMESTAMP,
                    last_error = NULL
                WHERE provider_key = %s
                """,
                (inserted, provider_key),
            )

    def record_failure(self, conn: Connection, provider_key: str, error: str) -> int:
        """Increment the failure counter and return the new value."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE historical_sources
                SET consecutive_failures = consecutive_failures + 1,
                    last_fetch_at = CURRENT_TIMESTAMP,
                    last_error = %s
                WHERE provider_key = %s
                RETURNING consecutive_failures
                """,
                (error[:2000], provider_key),
            )
            row = cur.fetchone()
            return row["consecutive_failures"] if row else 0

    def mark_failed(self, conn: Connection, provider_key: str) -> None:
        """Auto-disable a provider that crossed the failure threshold."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE historical_sources
                SET enabled = FALSE, status = 'failed'
                WHERE provider_key = %s
                """,
                (provider_key,),
            )
