"""
PostgreSQL repository adapters - Implement CodeStore and VerificationLog.

This module provides the PostgreSQL implementations of the domain's
persistence ports using psycopg3 with raw SQL.

All SQL uses parameterized queries. Driver errors are wrapped in
StorageError so callers never see psycopg types or messages.

Concurrency:
------------
Verification reads one code row and inserts one log row. Neither needs
row locks: reads are idempotent and log inserts never conflict. Log
ordering relies on the BIGSERIAL id as a tie-breaker for equal
timestamps.
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import psycopg
from psycopg import errors
from psycopg_pool import ConnectionPool

from activation_service.domain.exceptions import DuplicateCode, StorageError
from activation_service.domain.models import (
    ActivationCode,
    CodeQuery,
    CodeStatus,
    LogQuery,
    VerificationLogEntry,
    VerifyOutcome,
)

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

_CODE_COLUMNS = "code, product_key, verify_interval_hours, status, notes, created_at"
_LOG_COLUMNS = 'code, device_id, result, "timestamp", ip_address'


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    """Translate psycopg failures into the domain's StorageError."""
    try:
        yield
    except psycopg.Error as e:
        logger.error("Database error during %s: %s", operation, e)
        raise StorageError(f"{operation} failed") from e


def _row_to_code(row: Sequence[Any]) -> ActivationCode:
    return ActivationCode(
        code=row[0],
        product_key=row[1],
        verify_interval_hours=row[2],
        status=CodeStatus(row[3]),
        notes=row[4],
        created_at=row[5],
    )


def _row_to_entry(row: Sequence[Any]) -> VerificationLogEntry:
    return VerificationLogEntry(
        code=row[0],
        device_id=row[1],
        result=VerifyOutcome(row[2]),
        timestamp=row[3],
        ip_address=row[4],
    )


class PostgresCodeStore:
    """
    Implements CodeStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def find(self, code: str, product_key: str) -> ActivationCode | None:
        sql = f"""
            SELECT {_CODE_COLUMNS}
            FROM activation_codes
            WHERE code = %s AND product_key = %s AND status = %s
        """
        with _storage_errors("code lookup"), self._pool.connection() as conn:
            row = conn.execute(sql, (code, product_key, CodeStatus.ACTIVE.value)).fetchone()
        return _row_to_code(row) if row is not None else None

    def get(self, code: str, product_key: str) -> ActivationCode | None:
        sql = f"""
            SELECT {_CODE_COLUMNS}
            FROM activation_codes
            WHERE code = %s AND product_key = %s
        """
        with _storage_errors("code fetch"), self._pool.connection() as conn:
            row = conn.execute(sql, (code, product_key)).fetchone()
        return _row_to_code(row) if row is not None else None

    def insert(self, record: ActivationCode) -> None:
        """
        Insert a new code.

        The UNIQUE (code, product_key) constraint is the source of truth
        for duplicates, so concurrent inserts cannot both succeed.
        """
        sql = f"""
            INSERT INTO activation_codes ({_CODE_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s)
        """
        params = (
            record.code,
            record.product_key,
            record.verify_interval_hours,
            record.status.value,
            record.notes,
            record.created_at,
        )
        with _storage_errors("code insert"):
            try:
                with self._pool.connection() as conn:
                    conn.execute(sql, params)
            except errors.UniqueViolation:
                raise DuplicateCode(f"{record.code} ({record.product_key})") from None

    def update(
        self,
        code: str,
        product_key: str,
        *,
        verify_interval_hours: int | None = None,
        notes: str | None = None,
        status: CodeStatus | None = None,
    ) -> bool:
        """
        Update mutable fields.

        Uses COALESCE so None leaves a column unchanged in one statement.
        """
        if verify_interval_hours is not None and verify_interval_hours <= 0:
            raise ValueError("verify_interval_hours must be a positive integer")

        sql = """
            UPDATE activation_codes
            SET verify_interval_hours = COALESCE(%s, verify_interval_hours),
                notes = COALESCE(%s, notes),
                status = COALESCE(%s, status)
            WHERE code = %s AND product_key = %s
        """
        status_value = CodeStatus(status).value if status is not None else None
        with _storage_errors("code update"), self._pool.connection() as conn:
            cursor = conn.execute(sql, (verify_interval_hours, notes, status_value, code, product_key))
            return cursor.rowcount == 1

    def delete(self, code: str, product_key: str) -> bool:
        sql = "DELETE FROM activation_codes WHERE code = %s AND product_key = %s"
        with _storage_errors("code delete"), self._pool.connection() as conn:
            cursor = conn.execute(sql, (code, product_key))
            return cursor.rowcount == 1

    def list_all(self) -> list[ActivationCode]:
        return self.search(CodeQuery())

    def search(self, query: CodeQuery) -> list[ActivationCode]:
        """
        Search codes. Substring matching uses strpos() so user input is
        never interpreted as a LIKE pattern.
        """
        conditions: list[str] = []
        params: list[Any] = []
        if query.code is not None:
            conditions.append("strpos(code, %s) > 0")
            params.append(query.code)
        if query.product_key is not None:
            conditions.append("strpos(product_key, %s) > 0")
            params.append(query.product_key)
        if query.status is not None:
            conditions.append("status = %s")
            params.append(CodeStatus(query.status).value)

        sql = f"SELECT {_CODE_COLUMNS} FROM activation_codes"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += " ORDER BY created_at DESC, id DESC"

        with _storage_errors("code search"), self._pool.connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_code(row) for row in rows]

    def count_active(self) -> int:
        sql = "SELECT COUNT(*) FROM activation_codes WHERE status = %s"
        with _storage_errors("active code count"), self._pool.connection() as conn:
            row = conn.execute(sql, (CodeStatus.ACTIVE.value,)).fetchone()
        return row[0]

    def ping(self) -> None:
        with _storage_errors("health check"), self._pool.connection() as conn:
            conn.execute("SELECT 1")


class PostgresVerificationLog:
    """
    Implements VerificationLog protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def append(self, entry: VerificationLogEntry) -> None:
        sql = f"INSERT INTO verification_logs ({_LOG_COLUMNS}) VALUES (%s, %s, %s, %s, %s)"
        params = (
            entry.code,
            entry.device_id,
            entry.result.value,
            entry.timestamp,
            entry.ip_address,
        )
        with _storage_errors("log append"), self._pool.connection() as conn:
            conn.execute(sql, params)

    def query(self, limit: int, filters: LogQuery | None = None) -> list[VerificationLogEntry]:
        where, params = _log_conditions(filters)
        sql = f"SELECT {_LOG_COLUMNS} FROM verification_logs{where} ORDER BY \"timestamp\" DESC, id DESC LIMIT %s"
        with _storage_errors("log query"), self._pool.connection() as conn:
            rows = conn.execute(sql, [*params, limit]).fetchall()
        return [_row_to_entry(row) for row in rows]

    def count(self, filters: LogQuery | None = None) -> int:
        where, params = _log_conditions(filters)
        sql = f"SELECT COUNT(*) FROM verification_logs{where}"
        with _storage_errors("log count"), self._pool.connection() as conn:
            row = conn.execute(sql, params).fetchone()
        return row[0]

    def delete_older_than(self, cutoff: datetime) -> int:
        sql = 'DELETE FROM verification_logs WHERE "timestamp" < %s'
        with _storage_errors("log retention sweep"), self._pool.connection() as conn:
            cursor = conn.execute(sql, (cutoff,))
            return cursor.rowcount


def _log_conditions(filters: LogQuery | None) -> tuple[str, list[Any]]:
    """Build the WHERE clause shared by log query() and count()."""
    if filters is None:
        return "", []

    conditions: list[str] = []
    params: list[Any] = []
    if filters.code is not None:
        conditions.append("strpos(code, %s) > 0")
        params.append(filters.code)
    if filters.result is not None:
        conditions.append("result = %s")
        params.append(VerifyOutcome(filters.result).value)
    if filters.start is not None:
        conditions.append('"timestamp" >= %s')
        params.append(filters.start)
    if filters.end is not None:
        conditions.append('"timestamp" < %s')
        params.append(filters.end)

    if not conditions:
        return "", []
    return " WHERE " + " AND ".join(conditions), params


def run_migrations(pool: ConnectionPool, directory: Path = MIGRATIONS_DIR) -> list[str]:
    """
    Apply the schema files in ``directory`` in filename order.

    Every file must be idempotent (IF NOT EXISTS); all of them run on
    each startup and the CLI runs them before any command.

    Returns:
        Names of the files executed

    Raises:
        StorageError: If a file fails; later files are not attempted
    """
    if not directory.exists():
        logger.warning("Migrations directory not found: %s", directory)
        return []

    applied: list[str] = []
    for sql_file in sorted(directory.glob("*.sql")):
        with _storage_errors(f"migration {sql_file.name}"), pool.connection() as conn:
            conn.execute(sql_file.read_text())
        applied.append(sql_file.name)
        logger.info("Applied migration %s", sql_file.name)

    logger.info("Schema up to date (%d migration file(s))", len(applied))
    return applied
