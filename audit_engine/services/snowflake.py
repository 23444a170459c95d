"""
Snowflake Connection Pool - Food Safety Audit Engine
audit_engine/services/snowflake.py

Injected, bounded connection pool with an explicit lifecycle:
open() at application startup, close() at shutdown.

- connection():  borrow one connection (blocks up to DB_POOL_ACQUIRE_TIMEOUT)
- transaction(): BEGIN ... COMMIT, ROLLBACK on any error

Connection-establish timeout (login_timeout) and the per-statement timeout
(STATEMENT_TIMEOUT_IN_SECONDS) come from Settings. A statement that times out
raises inside the transaction and is rolled back like any other failure.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Generator, List, Optional

import snowflake.connector
from snowflake.connector import DictCursor
from snowflake.connector.errors import Error as SnowflakeError
from snowflake.connector.errors import InterfaceError, OperationalError

from audit_engine.config import Settings, get_settings
from audit_engine.core.exceptions import (
    DatabaseConnectionException,
    PersistenceFailureException,
)

logger = logging.getLogger(__name__)


def get_snowflake_connection(settings: Optional[Settings] = None):
    """
    Open a single Snowflake connection from Settings.
    Used by the pool as its default connection factory.
    """
    settings = settings or get_settings()
    return snowflake.connector.connect(**settings.snowflake_connect_kwargs)


class SnowflakeConnectionPool:
    """Bounded pool of Snowflake connections."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        connect: Optional[Callable[[], Any]] = None,
    ):
        self.settings = settings or get_settings()
        self.max_size = self.settings.DB_POOL_MAX_SIZE
        self.acquire_timeout = self.settings.DB_POOL_ACQUIRE_TIMEOUT
        self._connect = connect or (lambda: get_snowflake_connection(self.settings))
        self._idle: List[Any] = []
        self._slots = threading.BoundedSemaphore(self.max_size)
        self._lock = threading.Lock()
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        """Mark the pool usable. Connections are created on first borrow."""
        with self._lock:
            self._open = True
        logger.info("snowflake_pool_opened", extra={"max_size": self.max_size})

    def close(self) -> None:
        """Close every idle connection and refuse further borrows."""
        with self._lock:
            self._open = False
            idle, self._idle = self._idle, []
        for conn in idle:
            self._discard(conn)
        logger.info("snowflake_pool_closed", extra={"closed_connections": len(idle)})

    # -------------------------
    # Borrow / return
    # -------------------------
    def _acquire(self):
        if not self._open:
            raise DatabaseConnectionException("Connection pool is not open")

        if not self._slots.acquire(timeout=self.acquire_timeout):
            raise DatabaseConnectionException(
                f"Timed out after {self.acquire_timeout}s waiting for a database connection"
            )

        with self._lock:
            conn = self._idle.pop() if self._idle else None

        if conn is None:
            try:
                conn = self._connect()
            except SnowflakeError as e:
                self._slots.release()
                raise DatabaseConnectionException(f"Failed to connect to Snowflake: {e}") from e
        return conn

    def _release(self, conn, broken: bool = False) -> None:
        try:
            with self._lock:
                keep = self._open and not broken and not conn.is_closed()
                if keep:
                    self._idle.append(conn)
            if not keep:
                self._discard(conn)
        finally:
            self._slots.release()

    def _discard(self, conn) -> None:
        try:
            conn.close()
        except SnowflakeError as e:
            logger.warning("snowflake_close_failed", extra={"error": str(e)})

    @contextmanager
    def connection(self) -> Generator[Any, None, None]:
        """Context manager borrowing one pooled connection."""
        conn = self._acquire()
        broken = False
        try:
            yield conn
        except (InterfaceError, OperationalError):
            broken = True
            raise
        except PersistenceFailureException as e:
            broken = isinstance(e.__cause__, (InterfaceError, OperationalError))
            raise
        finally:
            self._release(conn, broken=broken)

    @contextmanager
    def transaction(self) -> Generator[Any, None, None]:
        """
        Run the body inside one explicit transaction.

        Yields a DictCursor. Commits when the body completes, rolls back on
        any exception. Driver errors surface as PersistenceFailureException.
        """
        with self.connection() as conn:
            cursor = conn.cursor(DictCursor)
            try:
                cursor.execute("BEGIN")
                yield cursor
                conn.commit()
            except Exception as e:
                self._rollback(conn)
                if isinstance(e, SnowflakeError):
                    raise PersistenceFailureException(f"Transaction rolled back: {e}") from e
                raise
            finally:
                cursor.close()

    def _rollback(self, conn) -> None:
        try:
            conn.rollback()
        except SnowflakeError as e:
            logger.error("snowflake_rollback_failed", extra={"error": str(e)})

    def ping(self) -> str:
        """Round-trip check used by the health endpoint."""
        with self.connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute("SELECT CURRENT_USER()")
                row = cursor.fetchone()
            finally:
                cursor.close()
        return row[0] if row else ""
