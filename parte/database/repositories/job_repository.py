from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from parte.database.connection import connection_scope, get_connection
from parte.database.models import JobRecord

_JOB_COLUMNS = """
    id, death_notice_id, kind, status, attempts, payload, error_message,
    available_at, locked_at, created_at, updated_at
"""


class JobRepository:
    """Database operations for the extraction_jobs table."""

    def __init__(self, max_attempts: int) -> None:
        self._max_attempts = max_attempts

    def claim_next_job(self, conn: psycopg.Connection[Any]) -> JobRecord | None:
        """Claim the next due pending job using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_JOB_COLUMNS}
                FROM extraction_jobs
                WHERE status = 'pending'
                  AND attempts < %s
                  AND available_at <= NOW()
                ORDER BY available_at, id
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (self._max_attempts,),
            )
            row = cur.fetchone()

        if row is None:
            conn.commit()
            return None

        conn.execute(
            """
            UPDATE extraction_jobs
            SET status = 'processing', locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        job = self._to_record(row)
        job.status = "processing"
        return job

    def enqueue(
        self,
        death_notice_id: int,
        kind: str,
        payload: dict[str, Any] | None = None,
        conn: psycopg.Connection[Any] | None = None,
    ) -> int:
        """Insert a pending job and return its id."""
        with connection_scope(conn) as scoped:
            with scoped.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO extraction_jobs (death_notice_id, kind, payload)
                    VALUES (%s, %s, %s)
                    RETURNING id
                    """,
                    (death_notice_id, kind, Jsonb(payload or {})),
                )
                row = cur.fetchone()
        assert row is not None
        return int(row[0])

    def mark_done(self, job_id: int) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE extraction_jobs
                SET status = 'done', error_message = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (job_id,),
            )
            conn.commit()

    def mark_failed(self, job_id: int, error: str) -> None:
        """Mark a job as permanently failed."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE extraction_jobs
                SET status = 'failed', attempts = attempts + 1,
                    error_message = %s, locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (error, job_id),
            )
            conn.commit()

    def schedule_retry(self, job_id: int, error: str, backoff_seconds: int) -> None:
        """Count the attempt and return the job to pending after a fixed delay."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE extraction_jobs
                SET attempts = attempts + 1, status = 'pending', error_message = %s,
                    available_at = NOW() + make_interval(secs => %s),
                    locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (error, backoff_seconds, job_id),
            )
            conn.commit()

    def find_by_id(self, job_id: int) -> JobRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_JOB_COLUMNS} FROM extraction_jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()
        return self._to_record(row) if row is not None else None

    @staticmethod
    def _to_record(row: dict[str, Any]) -> JobRecord:
        return JobRecord(
            id=row["id"],
            death_notice_id=row["death_notice_id"],
            kind=row["kind"],
            status=row["status"],
            attempts=row["attempts"],
            payload=row["payload"] or {},
            error_message=row["error_message"],
            available_at=row["available_at"],
            locked_at=row["locked_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
