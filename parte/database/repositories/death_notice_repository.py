from collections.abc import Mapping
from datetime import date
from typing import Any, ClassVar

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from parte.database.connection import connection_scope, get_connection
from parte.database.exceptions import DuplicateNoticeError
from parte.database.models import DeathNoticeRecord

_NOTICE_COLUMNS = """
    id, hash, full_name, opening_quote, death_date, funeral_date, source,
    source_url, announcement_text, has_photo, photo_bbox, created_at, updated_at
"""


class DeathNoticeRepository:
    """Database operations for the death_notices table."""

    UPDATABLE_COLUMNS: ClassVar[frozenset[str]] = frozenset(
        {
            "full_name",
            "opening_quote",
            "death_date",
            "funeral_date",
            "announcement_text",
            "has_photo",
            "photo_bbox",
        }
    )

    def find_by_hash(self, notice_hash: str) -> DeathNoticeRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_NOTICE_COLUMNS} FROM death_notices WHERE hash = %s",
                    (notice_hash,),
                )
                row = cur.fetchone()
        return self._to_record(row) if row is not None else None

    def insert(
        self,
        conn: psycopg.Connection[Any],
        *,
        notice_hash: str,
        full_name: str,
        source: str,
        source_url: str,
        funeral_date: date | None = None,
        death_date: date | None = None,
    ) -> DeathNoticeRecord:
        """Insert a new notice inside the caller's transaction.

        Raises:
            DuplicateNoticeError: if another writer already stored this hash.
        """
        if not full_name:
            raise ValueError("A death notice requires a full_name")
        try:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO death_notices
                    (hash, full_name, source, source_url, funeral_date, death_date)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    RETURNING {_NOTICE_COLUMNS}
                    """,
                    (notice_hash, full_name, source, source_url, funeral_date, death_date),
                )
                row = cur.fetchone()
        except psycopg.errors.UniqueViolation as exc:
            raise DuplicateNoticeError(f"Death notice {notice_hash} already exists") from exc
        assert row is not None
        return self._to_record(row)

    def find_by_id(self, notice_id: int) -> DeathNoticeRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_NOTICE_COLUMNS} FROM death_notices WHERE id = %s",
                    (notice_id,),
                )
                row = cur.fetchone()
        return self._to_record(row) if row is not None else None

    def apply_update(
        self,
        notice_id: int,
        changes: Mapping[str, Any],
        conn: psycopg.Connection[Any] | None = None,
    ) -> None:
        """Write all changed fields in a single UPDATE statement.

        Raises:
            ValueError: for columns outside UPDATABLE_COLUMNS or a null full_name.
        """
        if not changes:
            return
        unknown = set(changes) - self.UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update death_notices columns: {sorted(unknown)}")
        if "full_name" in changes and not changes["full_name"]:
            raise ValueError("full_name cannot be cleared")

        columns = sorted(changes)
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in columns
        )
        query = sql.SQL(
            "UPDATE death_notices SET {assignments}, updated_at = NOW() WHERE id = %s"
        ).format(assignments=assignments)
        values = [self._adapt(column, changes[column]) for column in columns]

        with connection_scope(conn) as scoped:
            scoped.execute(query, (*values, notice_id))

    @staticmethod
    def _adapt(column: str, value: Any) -> Any:
        if column == "photo_bbox" and value is not None:
            return Jsonb(value)
        return value

    @staticmethod
    def _to_record(row: dict[str, Any]) -> DeathNoticeRecord:
        return DeathNoticeRecord(
            id=row["id"],
            hash=row["hash"],
            full_name=row["full_name"],
            source=row["source"],
            source_url=row["source_url"],
            opening_quote=row["opening_quote"],
            death_date=row["death_date"],
            funeral_date=row["funeral_date"],
            announcement_text=row["announcement_text"],
            has_photo=row["has_photo"],
            photo_bbox=row["photo_bbox"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
