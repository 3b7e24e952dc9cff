"""Postgres connection pool shared by the CLI and the orchestrator."""

from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

_pool: Optional[ConnectionPool] = None
_pool_conninfo: Optional[str] = None


def build_conninfo(config: Dict[str, Any]) -> str:
    """
    libpq connection string for the postgres config section.

    ``config`` is the dict from ``Config.get_db_config``, so the password
    has already been resolved from ``password_env``.
    """
    return make_conninfo(
        host=config.get("host", "localhost"),
        port=config.get("port", 5432),
        dbname=config.get("database", "quotefeed"),
        user=config.get("user", "quotefeed_user"),
        password=config.get("password") or None,
    )


def get_connection_pool(config: Dict[str, Any]) -> ConnectionPool:
    """Pool for ``config``; reopened when the target database changes."""
    global _pool, _pool_conninfo
    conninfo = build_conninfo(config)
    if _pool is not None and _pool_conninfo != conninfo:
        close_connection_pool()

    if _pool is None:
        # Autocommit: every statement stands alone; bulk rewrites use conn.transaction()
        _pool = ConnectionPool(
            conninfo,
            min_size=1,
            max_size=config.get("pool_max_size", 10),
            kwargs={"row_factory": dict_row, "autocommit": True},
            open=True,
        )
        _pool_conninfo = conninfo
    return _pool


def close_connection_pool() -> None:
    """Close the pool, if one was opened."""
    global _pool, _pool_conninfo
    if _pool is not None:
        _pool.close()
    _pool = None
    _pool_conninfo = None


@contextmanager
def get_connection(config: Dict[str, Any]) -> Generator[psycopg.Connection, None, None]:
    """Borrow a connection from the pool."""
    with get_connection_pool(config).connection() as conn:
        yield conn
