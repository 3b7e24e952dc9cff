"""Source management in database."""

from typing import Dict, List, Optional

from psycopg import Connection

from ..config import SourceConfig
from ..models import Source


class SourceManager:
    """Manage live feed sources in database."""

    def sync_sources(
        self,
        conn: Connection,
        sources: List[SourceConfig],
    ) -> Dict[str, int]:
        """
        Upsert seed sources by domain.

        Returns:
            Mapping of domain to database ID
        """
        source_map = {}

        with conn.cursor() as cur:
            for source in sources:
                cur.execute(
                    """
                    INSERT INTO sources (domain, name, rss_url, enabled, is_top_story)
                    VALUES (%s, %s, %s, %s, %s)
                    ON CONFLICT (domain) DO UPDATE SET
                        name = EXCLUDED.name,
                        rss_url = EXCLUDED.rss_url,
                        is_top_story = EXCLUDED.is_top_story
                    RETURNING id
                    """,
                    (
                        source.domain.lower(),
                        source.name,
                        source.rss_url,
                        source.enabled,
                        source.is_top_story,
                    ),
                )
                source_map[source.domain.lower()] = cur.fetchone()["id"]

        return source_map

    def add_source(
        self,
        conn: Connection,
        domain: str,
        name: str,
        rss_url: Optional[str] = None,
    ) -> Optional[int]:
        """Insert a source. Returns None if the domain already exists."""
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO sources (domain, name, rss_url)
                VALUES (%s, %s, %s)
                ON CONFLICT (domain) DO NOTHING
                RETURNING id
                """,
                (domain.lower(), name, rss_url),
            )
            row = cur.fetchone()
            return row["id"] if row else None

    def get_sources(self, conn: Connection) -> List[Source]:
        """Get all sources from database."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM sources ORDER BY name")
            return [Source.model_validate(row) for row in cur.fetchall()]

    def get_enabled_sources(self, conn: Connection) -> List[Source]:
        """Get sources that take part in discovery."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM sources WHERE enabled ORDER BY name")
            return [Source.model_validate(row) for row in cur.fetchall()]

    def get_source_by_domain(self, conn: Connection, domain: str) -> Optional[Source]:
        """Look up a source by domain."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM sources WHERE domain = %s", (domain.lower(),))
            row = cur.fetchone()
            return Source.model_validate(row) if row else None

    def set_enabled(self, conn: Connection, source_id: int, enabled: bool) -> bool:
        """Enable or disable a source. Enabling clears the failure counter."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE sources
                SET enabled = %s,
                    consecutive_failures = CASE WHEN %s THEN 0 ELSE consecutive_failures END
                WHERE id = %s
                """,
                (enabled, enabled, source_id),
            )
            return cur.rowcount > 0

    def record_failure(self, conn: Connection, source_id: int) -> int:
        """Increment the failure counter and return the new value."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE sources
                SET consecutive_failures = consecutive_failures + 1
                WHERE id = %s
                RETURNING consecutive_failures
                """,
                (source_id,),
            )
            row = cur.fetchone()
            return row["consecutive_failures"] if row else 0

    def reset_failures(self, conn: Connection, source_id: int) -> None:
        """Clear the failure counter after a successful fetch."""
        with conn.cursor() as cur:
            cur.execute(
                "UPDATE sources SET consecutive_failures = 0 WHERE id = %s AND consecutive_failures <> 0",
                (source_id,),
            )

    def disable(self, conn: Connection, source_id: int) -> None:
        """Take a source out of discovery."""
        with conn.cursor() as cur:
            cur.execute("UPDATE sources SET enabled = FALSE WHERE id = %s", (source_id,))
