"""Run management in database."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from psycopg import Connection
from psycopg.types.json import Jsonb

from ..models import Run


class RunManager:
    """Record orchestrator cycles."""

    def create_run(self, conn: Connection, trigger: str = "timer", started_at: Optional[datetime] = None) -> int:
        """
        Create a new run record.

        Returns:
            Run ID
        """
        if started_at is None:
            started_at = datetime.now(timezone.utc)

        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO runs (started_at, status, trigger)
                VALUES (%s, 'running', %s)
                RETURNING id
                """,
                (started_at, trigger),
            )
            return cur.fetchone()["id"]

    def update_run_status(
        self,
        conn: Connection,
        run_id: int,
        status: str,
        stats_json: Optional[Dict[str, Any]] = None,
        finished_at: Optional[datetime] = None,
    ) -> None:
        """Update run status and statistics."""
        if finished_at is None and status != "running":
            finished_at = datetime.now(timezone.utc)

        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE runs
                SET status = %s, finished_at = %s, stats_json = %s
                WHERE id = %s
                """,
                (status, finished_at, Jsonb(stats_json) if stats_json else None, run_id),
            )

    def get_active_run(self, conn: Connection, stale_after: timedelta) -> Optional[Run]:
        """Most recent run still marked running and started within ``stale_after``."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT * FROM runs
                WHERE status = 'running' AND started_at > %s
                ORDER BY started_at DESC
                LIMIT 1
                """,
                (datetime.now(timezone.utc) - stale_after,),
            )
            row = cur.fetchone()
            return Run.model_validate(row) if row else None

    def get_recent_runs(self, conn: Connection, limit: int = 10) -> List[Run]:
        """Get recent runs."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM runs ORDER BY started_at DESC LIMIT %s", (limit,))
            return [Run.model_validate(row) for row in cur.fetchall()]
