"""
PostgreSQL unit-of-work helper shared by every adapter.

One connection per call, one explicit transaction, bounded in time:
  - connect_timeout caps connection setup
  - statement_timeout is set server-side for the session

A unit of work returns a Result. A Failure rolls the transaction back
(psycopg.Rollback) before it is handed to the caller; a driver exception
rolls back and becomes DATABASE_ERROR, or TIMEOUT_ERROR when the statement
was cancelled by the timeout.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import psycopg
import structlog
from psycopg.rows import dict_row
from railway import ErrorCode
from railway.result import Result

log = structlog.get_logger()

T = TypeVar("T")

Connection = psycopg.Connection[dict[str, Any]]


class Database:
    def __init__(
        self,
        dsn: str,
        connect_timeout_seconds: int = 5,
        statement_timeout_ms: int = 5000,
    ) -> None:
        self._dsn = dsn
        self._connect_timeout = connect_timeout_seconds
        self._statement_timeout_ms = statement_timeout_ms

    def connect(self) -> Connection:
        return psycopg.connect(
            self._dsn,
            connect_timeout=self._connect_timeout,
            options=f"-c statement_timeout={self._statement_timeout_ms}",
            row_factory=dict_row,
        )

    def transact(
        self,
        work: Callable[[Connection], Result[T]],
        error_message: str,
    ) -> Result[T]:
        """Run `work` inside a single transaction, committing only on Success."""
        try:
            with self.connect() as conn:
                with conn.transaction():
                    outcome = work(conn)
                    if outcome.is_failure():
                        raise psycopg.Rollback()
                return outcome
        except psycopg.errors.QueryCanceled as e:
            log.error("database.timeout", operation=error_message, error=str(e))
            return Result.failure(ErrorCode.TIMEOUT_ERROR, error_message, e)
        except psycopg.Error as e:
            log.error("database.error", operation=error_message, error=str(e))
            return Result.failure(ErrorCode.DATABASE_ERROR, error_message, e)

    def ping(self) -> Result[bool]:
        return self.transact(
            lambda conn: Result.success(conn.execute("SELECT 1").fetchone() is not None),
            "Database ping failed",
        )
