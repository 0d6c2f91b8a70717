from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg_pool import ConnectionPool

from parte.config.settings import Settings

_pool: ConnectionPool | None = None


def build_conninfo(settings: Settings) -> str:
    return make_conninfo(
        host=settings.db_host,
        port=settings.db_port,
        dbname=settings.db_database,
        user=settings.db_username,
        password=settings.db_password,
    )


def init_pool(settings: Settings) -> None:
    """Open the process-wide connection pool and wait until it can connect."""
    global _pool  # noqa: PLW0603
    _pool = ConnectionPool(
        build_conninfo(settings),
        min_size=1,
        max_size=settings.db_pool_max_size,
        open=True,
    )
    _pool.wait()


def close_pool() -> None:
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close()
        _pool = None


@contextmanager
def get_connection() -> Generator[psycopg.Connection[Any], None, None]:
    """Yield a pooled connection. Caller manages commit/rollback."""
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")
    with _pool.connection() as conn:
        yield conn


@contextmanager
def transaction() -> Generator[psycopg.Connection[Any], None, None]:
    """Yield a pooled connection inside a transaction that commits on success."""
    with get_connection() as conn:
        with conn.transaction():
            yield conn


@contextmanager
def connection_scope(
    conn: psycopg.Connection[Any] | None = None,
) -> Generator[psycopg.Connection[Any], None, None]:
    """Reuse ``conn`` when the caller owns a transaction, else borrow and commit."""
    if conn is not None:
        yield conn
        return
    with get_connection() as pooled:
        yield pooled
        pooled.commit()
