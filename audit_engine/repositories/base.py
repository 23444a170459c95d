"""
Base Repository - Food Safety Audit Engine
audit_engine/repositories/base.py

Base repository class over the injected Snowflake pool, with common utilities.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Generator, Optional

from snowflake.connector import DictCursor
from snowflake.connector.errors import DatabaseError, ProgrammingError

from audit_engine.core.exceptions import PersistenceFailureException
from audit_engine.services.snowflake import SnowflakeConnectionPool


class BaseRepository:
    """Base repository with pooled Snowflake access."""

    def __init__(self, pool: SnowflakeConnectionPool):
        self.pool = pool

    @contextmanager
    def transaction(self) -> Generator[Any, None, None]:
        """One explicit transaction; yields the cursor to pass to write methods."""
        with self.pool.transaction() as cursor:
            yield cursor

    @contextmanager
    def get_cursor(self) -> Generator[Any, None, None]:
        """Context manager for a DictCursor on a borrowed connection."""
        with self.pool.connection() as conn:
            cursor = conn.cursor(DictCursor)
            try:
                yield cursor
            finally:
                cursor.close()

    def execute_query(
        self,
        sql: str,
        params: Optional[tuple] = None,
        fetch_one: bool = False,
        fetch_all: bool = False,
        cursor: Optional[Any] = None,
    ) -> Optional[Any]:
        """
        Execute a SQL query with error handling.

        Args:
            sql: SQL query string
            params: Query parameters
            fetch_one: Return single row
            fetch_all: Return all rows
            cursor: Cursor of an open transaction; when omitted the
                statement runs on its own borrowed connection

        Returns:
            Query results or the affected row count
        """
        if cursor is not None:
            return self._run(cursor, sql, params, fetch_one, fetch_all)

        with self.get_cursor() as own_cursor:
            return self._run(own_cursor, sql, params, fetch_one, fetch_all)

    def _run(self, cursor, sql, params, fetch_one, fetch_all):
        try:
            cursor.execute(sql, params or ())

            if fetch_one:
                return cursor.fetchone()
            elif fetch_all:
                return cursor.fetchall()

            return cursor.rowcount

        except ProgrammingError as e:
            raise PersistenceFailureException(f"Query error: {e}") from e
        except DatabaseError as e:
            raise PersistenceFailureException(f"Database error: {e}") from e

    def normalize_timestamp(self, dt: Optional[datetime]) -> Optional[datetime]:
        """Ensure timestamp is UTC-aware."""
        if dt is None:
            return None
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    def row_to_dict(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Convert Snowflake row (uppercase keys) to lowercase dict."""
        if row is None:
            return {}
        return {k.lower(): v for k, v in row.items()}

    @staticmethod
    def in_clause(values) -> str:
        """Placeholder list for an IN (...) clause."""
        return ", ".join(["%s"] * len(values))
