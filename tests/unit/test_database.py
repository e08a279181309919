"""
Wouch: Tests for Database Connection Management

Test suite for ``wouch.core.database``. Covers:
- Connection string construction
- Failure translation when a pool cannot be created or a query fails
- Rollback before a connection returns to the pool
- Basic connection acquisition (integration, optional)
"""

from __future__ import annotations

import threading

import psycopg2
import pytest

from wouch.core.config import DatabaseConfig, WouchConfig, get_config
from wouch.core.database import DatabaseManager
from wouch.core.errors import PersistenceFailure
from wouch.core.types import SubjectKey
from wouch.scoring.storage import ScoreStorage


class _FailingCursor:
    def execute(self, sql, params=None):  # type: ignore[no-untyped-def]
        raise psycopg2.IntegrityError("duplicate key value violates unique constraint")

    def close(self) -> None:
        pass


class _RecordingConnection:
    def __init__(self, log: list) -> None:
        self.log = log

    def cursor(self) -> _FailingCursor:
        return _FailingCursor()

    def rollback(self) -> None:
        self.log.append("rollback")

    def commit(self) -> None:
        self.log.append("commit")


class _StubPool:
    """Stand-in for ThreadedConnectionPool recording borrow order."""

    def __init__(self, *args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        self.log: list = []
        self.conn = _RecordingConnection(self.log)
        self.returned = 0

    def getconn(self) -> _RecordingConnection:
        return self.conn

    def putconn(self, conn) -> None:  # type: ignore[no-untyped-def]
        self.log.append("putconn")
        self.returned += 1

    def closeall(self) -> None:
        pass


class TestDatabaseManagerUnit:
    """Unit-level tests for DatabaseManager internals."""

    def test_create_connection_string(self) -> None:
        """Connection string should embed host, port, db name, user, and password."""

        db_config = DatabaseConfig(
            host="testhost",
            port=5433,
            name="testdb",
            user="testuser",
            password="testpass",
        )

        conn_str = DatabaseManager._create_connection_string(db_config)

        assert "host=testhost" in conn_str
        assert "port=5433" in conn_str
        assert "dbname=testdb" in conn_str
        assert "user=testuser" in conn_str
        assert "password=testpass" in conn_str

    def test_unreachable_database_raises_persistence_failure(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def _refuse(*args, **kwargs):  # type: ignore[no-untyped-def]
            raise psycopg2.OperationalError("connection refused")

        monkeypatch.setattr("wouch.core.database.pool.ThreadedConnectionPool", _refuse)
        db_manager = DatabaseManager(WouchConfig())

        with pytest.raises(PersistenceFailure):
            with db_manager.get_runtime_connection():
                pass

    def test_failed_query_raises_persistence_failure_and_rolls_back(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        created: list = []

        def _make_pool(*args, **kwargs):  # type: ignore[no-untyped-def]
            created.append(_StubPool())
            return created[-1]

        monkeypatch.setattr("wouch.core.database.pool.ThreadedConnectionPool", _make_pool)
        storage = ScoreStorage(db_manager=DatabaseManager(WouchConfig()))

        with pytest.raises(PersistenceFailure) as excinfo:
            storage.list_events(SubjectKey("u1", "s1"))

        assert isinstance(excinfo.value.__cause__, psycopg2.IntegrityError)
        [stub] = created
        assert stub.log == ["rollback", "putconn"]
        assert stub.returned == 1

    def test_non_driver_error_rolls_back_and_propagates(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        stub = _StubPool()
        monkeypatch.setattr("wouch.core.database.pool.ThreadedConnectionPool", lambda *a, **k: stub)
        db_manager = DatabaseManager(WouchConfig())

        with pytest.raises(KeyError):
            with db_manager.get_runtime_connection():
                raise KeyError("score_code")

        assert stub.log == ["rollback", "putconn"]

    def test_pool_is_threaded_and_created_once(self, monkeypatch: pytest.MonkeyPatch) -> None:
        created: list = []

        def _make_pool(*args, **kwargs):  # type: ignore[no-untyped-def]
            created.append(kwargs)
            return _StubPool()

        monkeypatch.setattr("wouch.core.database.pool.ThreadedConnectionPool", _make_pool)
        db_manager = DatabaseManager(WouchConfig())

        def _borrow() -> None:
            with db_manager.get_runtime_connection():
                pass

        threads = [threading.Thread(target=_borrow) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(created) == 1
        assert created[0]["maxconn"] == db_manager.config.runtime_db.pool_size


@pytest.mark.integration
class TestDatabaseManagerIntegration:
    """Integration tests that require a running PostgreSQL instance.

    These tests expect that the catalog and runtime databases are
    reachable using the credentials provided in the environment (.env).
    """

    def test_get_runtime_connection_executes_simple_query(self) -> None:
        db_manager = DatabaseManager(get_config())

        with db_manager.get_runtime_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            result = cursor.fetchone()
            cursor.close()

        assert result is not None
        assert result[0] == 1

    def test_get_catalog_connection_executes_simple_query(self) -> None:
        db_manager = DatabaseManager(get_config())

        with db_manager.get_catalog_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            result = cursor.fetchone()
            cursor.close()

        assert result is not None
        assert result[0] == 1
