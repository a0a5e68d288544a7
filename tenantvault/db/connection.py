"""
PostgreSQL connection pooling.

A ``Database`` owns one psycopg2 threaded pool. It is built once at startup
and passed to whatever needs it; there is no module-level handle.

Usage:
    from tenantvault.db import Database

    db = Database(get_config().db)
    with db.connection() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
    db.close()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator
from contextlib import contextmanager

import psycopg2
import psycopg2.pool

from tenantvault.config import DatabaseConfig
from tenantvault.errors import StoreError

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, config: DatabaseConfig) -> None:
        self.config = config
        self._pool: psycopg2.pool.ThreadedConnectionPool | None = None
        self._lock = threading.Lock()

    def get_pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        """Get or lazily create the connection pool."""
        if self._pool is not None and not self._pool.closed:
            return self._pool

        with self._lock:
            if self._pool is not None and not self._pool.closed:
                return self._pool

            cfg = self.config
            logger.info(
                "Creating connection pool: %s@%s:%s/%s (min=%d, max=%d)",
                cfg.user,
                cfg.host or "<socket>",
                cfg.port,
                cfg.name,
                cfg.pool_min,
                cfg.pool_max,
            )
            try:
                self._pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=cfg.pool_min,
                    maxconn=cfg.pool_max,
                    **cfg.dict,
                )
            except psycopg2.OperationalError as e:
                logger.error(
                    "Cannot connect to PostgreSQL at %s:%s/%s: %s", cfg.host, cfg.port, cfg.name, e
                )
                raise StoreError() from e
            return self._pool

    @contextmanager
    def connection(
        self,
        autocommit: bool = False,
    ) -> Generator[psycopg2.extensions.connection, None, None]:
        """Borrow a connection from the pool.

        Commits when the block exits normally, rolls back if it raises.
        The connection always goes back to the pool.
        """
        pool = self.get_pool()
        try:
            conn = pool.getconn()
        except psycopg2.pool.PoolError as e:
            logger.error("Connection pool exhausted: %s", e)
            raise StoreError() from e
        try:
            if autocommit:
                conn.autocommit = True
            yield conn
            if not autocommit:
                conn.commit()
        except Exception:
            if not autocommit and not conn.closed:
                conn.rollback()
            raise
        finally:
            if autocommit and not conn.closed:
                conn.autocommit = False
            pool.putconn(conn, close=bool(conn.closed))

    def close(self) -> None:
        """Close all connections in the pool."""
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
