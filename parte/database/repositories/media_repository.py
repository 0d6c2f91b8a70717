from pathlib import Path
from typing import Any

import psycopg

from parte.database.connection import connection_scope, get_connection


class MediaRepository:
    """Database operations for the notice_media table (one file per collection)."""

    def attach(
        self,
        death_notice_id: int,
        collection: str,
        path: Path,
        mime_type: str,
        conn: psycopg.Connection[Any] | None = None,
    ) -> None:
        """Record ``path`` as the notice's file for ``collection``, replacing any previous one."""
        with connection_scope(conn) as scoped:
            scoped.execute(
                """
                INSERT INTO notice_media (death_notice_id, collection, path, mime_type)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (death_notice_id, collection)
                DO UPDATE SET path = EXCLUDED.path, mime_type = EXCLUDED.mime_type,
                              created_at = NOW()
                """,
                (death_notice_id, collection, str(path), mime_type),
            )

    def find_path(self, death_notice_id: int, collection: str) -> Path | None:
        with get_connection() as conn:
            row = conn.execute(
                """
                SELECT path FROM notice_media
                WHERE death_notice_id = %s AND collection = %s
                """,
                (death_notice_id, collection),
            ).fetchone()
        return Path(row[0]) if row is not None else None
