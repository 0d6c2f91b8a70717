import os
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest
from psycopg.types.json import Jsonb

from parte.config.settings import Settings
from parte.database.connection import close_pool, get_connection, init_pool
from parte.database.models import DeathNoticeRecord, JobRecord

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "parte" / "database" / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "parte_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
    except Exception as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run these tests")
    try:
        with get_connection() as conn:
            conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
            conn.commit()
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[int], None, None]:
    """Notice ids to delete after the test; media rows and jobs cascade."""
    notice_ids: list[int] = []
    yield notice_ids
    if not notice_ids:
        return
    with get_connection() as conn:
        conn.execute("DELETE FROM death_notices WHERE id = ANY(%s)", (notice_ids,))
        conn.commit()


@pytest.fixture
def unique_hash() -> str:
    return uuid.uuid4().hex[:12]


@pytest.fixture
def seed_notice(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[int],
    unique_hash: str,
) -> DeathNoticeRecord:
    row = db_conn.execute(
        """
        INSERT INTO death_notices (hash, full_name, source, source_url)
        VALUES (%s, %s, %s, %s)
        RETURNING id
        """,
        (unique_hash, "Jan Dvořák", "parte.cz", f"https://parte.cz/{unique_hash}"),
    ).fetchone()
    assert row is not None
    db_conn.commit()
    integration_cleanup.append(row[0])
    return DeathNoticeRecord(
        id=row[0],
        hash=unique_hash,
        full_name="Jan Dvořák",
        source="parte.cz",
        source_url=f"https://parte.cz/{unique_hash}",
    )


def insert_job(
    conn: psycopg.Connection[Any],
    notice_id: int,
    kind: str = "name_funeral",
    attempts: int = 0,
    payload: dict[str, Any] | None = None,
) -> JobRecord:
    row = conn.execute(
        """
        INSERT INTO extraction_jobs (death_notice_id, kind, attempts, payload)
        VALUES (%s, %s, %s, %s)
        RETURNING id
        """,
        (notice_id, kind, attempts, Jsonb(payload or {})),
    ).fetchone()
    assert row is not None
    conn.commit()
    return JobRecord(
        id=row[0],
        death_notice_id=notice_id,
        kind=kind,
        status="pending",
        attempts=attempts,
        payload=payload or {},
    )


@pytest.fixture
def seed_job(db_conn: psycopg.Connection[Any], seed_notice: DeathNoticeRecord) -> JobRecord:
    return insert_job(db_conn, seed_notice.id)


@pytest.fixture
def job_factory(db_conn: psycopg.Connection[Any]) -> Any:
    def create(
        notice_id: int,
        kind: str = "name_funeral",
        attempts: int = 0,
        payload: dict[str, Any] | None = None,
    ) -> JobRecord:
        return insert_job(db_conn, notice_id, kind, attempts, payload)

    return create
