"""
Wouch: Database Connection Management

This module provides connection pooling and convenience helpers for
connecting to the catalog and runtime PostgreSQL databases. It uses
psycopg2's ``ThreadedConnectionPool`` with a thin wrapper that exposes
context managers for acquiring connections. Driver errors raised while a
connection is borrowed are rolled back and surfaced as
:class:`PersistenceFailure`.

Key responsibilities:
- Maintain connection pools for catalog_db and runtime_db
- Provide context managers to acquire/release connections safely
- Encapsulate connection string construction from configuration

External dependencies:
- psycopg2-binary: PostgreSQL client and connection pooling

Database tables accessed:
- None directly (this module is infrastructure only)

Thread safety: Safe to share across threads. Pools are created under a
lock and handed out by ``ThreadedConnectionPool``. The DatabaseManager
should be treated as a process-wide singleton.

Author: Wouch Team
Created: 2025-11-24
Last Modified: 2025-12-08
Status: Development
Version: v0.1.0
"""

# ============================================================================
# Imports
# ============================================================================

from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Generator, Optional

import psycopg2
from psycopg2 import pool
from psycopg2.extensions import connection as PsycopgConnection

from wouch.core.config import DatabaseConfig, WouchConfig, get_config
from wouch.core.errors import PersistenceFailure
from wouch.core.logging import get_logger

# ============================================================================
# Module Setup
# ============================================================================

logger = get_logger(__name__)


class DatabaseManager:
    """Manage connection pools for Wouch databases.

    The catalog database holds the externally edited content (questions,
    score definitions, rules, modules). The runtime database holds the
    score ledger, registers, flags, flow state, audit events, responses
    and intervention progress.

    Typical usage::

        from wouch.core.database import get_db_manager

        db = get_db_manager()
        with db.get_runtime_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            result = cursor.fetchone()
            cursor.close()

    Attributes:
        config: Global Wouch configuration instance.
        _catalog_pool: Connection pool for the catalog DB.
        _runtime_pool: Connection pool for the runtime DB.
    """

    def __init__(self, config: WouchConfig) -> None:
        self.config = config
        self._catalog_pool: Optional[pool.ThreadedConnectionPool] = None
        self._runtime_pool: Optional[pool.ThreadedConnectionPool] = None
        self._pool_lock = Lock()
        logger.info("DatabaseManager initialised")

    # ======================================================================
    # Internal helpers
    # ======================================================================

    @staticmethod
    def _create_connection_string(db_config: DatabaseConfig) -> str:
        """Build a PostgreSQL connection string from configuration."""

        return (
            f"host={db_config.host} "
            f"port={db_config.port} "
            f"dbname={db_config.name} "
            f"user={db_config.user} "
            f"password={db_config.password}"
        )

    def _get_or_create_pool(
        self,
        attr_name: str,
        db_config: DatabaseConfig,
    ) -> pool.ThreadedConnectionPool:
        """Return an existing pool or create a new one.

        Args:
            attr_name: Attribute name for the pool ("_catalog_pool" or
                "_runtime_pool").
            db_config: Database configuration for the target database.

        Raises:
            PersistenceFailure: If the pool cannot be created.
        """

        existing = getattr(self, attr_name)
        if existing is not None:
            return existing

        with self._pool_lock:
            existing = getattr(self, attr_name)
            if existing is not None:
                return existing

            dsn = self._create_connection_string(db_config)
            try:
                new_pool = pool.ThreadedConnectionPool(
                    minconn=1,
                    maxconn=db_config.pool_size,
                    dsn=dsn,
                )
            except Exception as exc:  # pragma: no cover - connection errors
                logger.error("Failed to create connection pool: %s", exc)
                raise PersistenceFailure("Failed to create database connection pool") from exc

            setattr(self, attr_name, new_pool)

        logger.info("Created connection pool for database '%s'", db_config.name)
        return new_pool

    @contextmanager
    def _borrow(
        self,
        attr_name: str,
        db_config: DatabaseConfig,
        label: str,
    ) -> Generator[PsycopgConnection, None, None]:
        pool_obj = self._get_or_create_pool(attr_name, db_config)
        try:
            conn = pool_obj.getconn()
        except Exception as exc:  # pragma: no cover - connection errors
            logger.error("Failed to acquire %s connection: %s", label, exc)
            raise PersistenceFailure(f"Failed to acquire {label} connection") from exc

        try:
            yield conn
        except psycopg2.Error as exc:
            # An aborted transaction must not travel back into the pool.
            self._rollback_quietly(conn, label)
            logger.error("Query on %s failed: %s", label, exc)
            raise PersistenceFailure(f"Query on {label} failed: {exc}") from exc
        except BaseException:
            self._rollback_quietly(conn, label)
            raise
        finally:
            pool_obj.putconn(conn)

    @staticmethod
    def _rollback_quietly(conn: PsycopgConnection, label: str) -> None:
        try:
            conn.rollback()
        except psycopg2.Error as exc:
            logger.warning("Rollback on %s failed: %s", label, exc)

    # ======================================================================
    # Public context managers
    # ======================================================================

    @contextmanager
    def get_catalog_connection(self) -> Generator[PsycopgConnection, None, None]:
        """Yield a connection to the catalog database.

        Raises:
            PersistenceFailure: If a connection cannot be acquired or a
                query on it fails.
        """

        with self._borrow("_catalog_pool", self.config.catalog_db, "catalog_db") as conn:
            yield conn

    @contextmanager
    def get_runtime_connection(self) -> Generator[PsycopgConnection, None, None]:
        """Yield a connection to the runtime database.

        Raises:
            PersistenceFailure: If a connection cannot be acquired or a
                query on it fails.
        """

        with self._borrow("_runtime_pool", self.config.runtime_db, "runtime_db") as conn:
            yield conn

    # ======================================================================
    # Lifecycle
    # ======================================================================

    def close_all(self) -> None:
        """Close all connection pools during graceful shutdown."""

        if self._catalog_pool is not None:
            self._catalog_pool.closeall()
            self._catalog_pool = None
            logger.info("Closed catalog_db connection pool")

        if self._runtime_pool is not None:
            self._runtime_pool.closeall()
            self._runtime_pool = None
            logger.info("Closed runtime_db connection pool")


# ============================================================================
# Global Accessor
# ============================================================================

_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Return the global :class:`DatabaseManager` singleton."""

    global _db_manager
    if _db_manager is None:
        config = get_config()
        _db_manager = DatabaseManager(config)
    return _db_manager
