"""Run management in database."""

import json
from datetime import date, datetime
from typing import Dict, List, Optional

import pendulum
from psycopg import Connection

from ..models import Run


class RunManager:
    """Manage pipeline runs in database."""

    def create_run(
        self,
        conn: Connection,
        run_date: date,
        started_at: Optional[datetime] = None,
    ) -> int:
        """
        Create a new run record.

        Returns:
            Run ID
        """
        if started_at is None:
            started_at = pendulum.now()

        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO runs (run_date, started_at, status)
                VALUES (%s, %s, 'running')
                RETURNING id
                """,
                (run_date, started_at),
            )
            run_id = cur.fetchone()["id"]

        conn.commit()
        return run_id

    def update_run_status(
        self,
        conn: Connection,
        run_id: int,
        status: str,
        stats_json: Optional[Dict] = None,
        finished_at: Optional[datetime] = None,
    ) -> None:
        """Update run status and statistics."""
        if finished_at is None and status in ["success", "failed"]:
            finished_at = pendulum.now()

        with conn.cursor() as cur:
            stats_json_str = json.dumps(stats_json) if stats_json else None

            cur.execute(
                """
                UPDATE runs
                SET
                    status = %s,
                    finished_at = %s,
                    stats_json = %s
                WHERE id = %s
                """,
                (status, finished_at, stats_json_str, run_id),
            )

        conn.commit()

    def get_run(self, conn: Connection, run_id: int) -> Optional[Run]:
        """Get run by ID."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM runs WHERE id = %s", (run_id,))
            row = cur.fetchone()
        return Run.model_validate(row) if row else None
