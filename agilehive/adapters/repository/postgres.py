"""
PostgreSQL repository adapter - Implements AccountRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Storage Design:
---------------
1. **accounts.email UNIQUE**: The database constraint is the only guard
   against two concurrent verifications creating the same account. The
   losing INSERT raises UniqueViolation, translated to DuplicateAccount.

2. **Retention window**: PostgreSQL has no TTL index, so expiry is enforced
   in every lookup (created_at > NOW() - ttl) using database time, and
   expired rows are purged whenever a new code is stored.

3. **Error translation**: psycopg errors never leave this module. They are
   re-raised as StorageError so the domain stays driver-agnostic.
"""

import logging
import uuid
from datetime import timedelta
from importlib.resources import files
from importlib.resources.abc import Traversable

import psycopg
from psycopg import errors
from psycopg_pool import ConnectionPool

from agilehive.domain.exceptions import DuplicateAccount, StorageError
from agilehive.domain.ports import Account, PendingVerification, Role

logger = logging.getLogger(__name__)

_ACCOUNT_COLUMNS = "id, email, password_hash, role, created_at"


def _row_to_account(row: tuple) -> Account:
    return Account(
        id=str(row[0]),
        email=row[1],
        password_hash=row[2],
        role=Role(row[3]),
        created_at=row[4],
    )


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool, otp_ttl_seconds: int = 600) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
            otp_ttl_seconds: Retention window for pending verifications
        """
        self._pool = pool
        self._ttl = timedelta(seconds=otp_ttl_seconds)

    def get_account_by_email(self, email: str) -> Account | None:
        sql = f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE email = %s"
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (email,))
                row = cursor.fetchone()
        except psycopg.Error as exc:
            raise StorageError("Failed to load account") from exc
        return _row_to_account(row) if row is not None else None

    def get_account_by_id(self, account_id: str) -> Account | None:
        try:
            key = uuid.UUID(str(account_id))
        except ValueError:
            return None

        sql = f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE id = %s"
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (key,))
                row = cursor.fetchone()
        except psycopg.Error as exc:
            raise StorageError("Failed to load account") from exc
        return _row_to_account(row) if row is not None else None

    def create_account(self, email: str, password_hash: str, role: Role) -> Account:
        """
        Insert a new account in a single statement.

        The account only becomes visible once the INSERT commits, so a
        failure never leaves a partial account behind.
        """
        sql = f"""
            INSERT INTO accounts (email, password_hash, role)
            VALUES (%s, %s, %s)
            RETURNING {_ACCOUNT_COLUMNS}
        """
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (email, password_hash, Role(role).value))
                row = cursor.fetchone()
                conn.commit()
        except errors.UniqueViolation as exc:
            raise DuplicateAccount(email) from exc
        except psycopg.Error as exc:
            raise StorageError("Failed to create account") from exc
        return _row_to_account(row)

    def delete_pending(self, email: str) -> int:
        sql = "DELETE FROM pending_verifications WHERE email = %s"
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (email,))
                conn.commit()
                return cursor.rowcount
        except psycopg.Error as exc:
            raise StorageError("Failed to delete pending verifications") from exc

    def save_pending(self, email: str, code: str) -> PendingVerification:
        """
        Store a new pending verification and purge expired ones.

        Both statements run in one transaction.
        """
        purge_sql = "DELETE FROM pending_verifications WHERE created_at <= NOW() - %s"
        insert_sql = """
            INSERT INTO pending_verifications (email, code, created_at)
            VALUES (%s, %s, NOW())
            RETURNING email, code, created_at
        """
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(purge_sql, (self._ttl,))
                cursor.execute(insert_sql, (email, code))
                row = cursor.fetchone()
                conn.commit()
        except psycopg.Error as exc:
            raise StorageError("Failed to store pending verification") from exc
        return PendingVerification(email=row[0], code=row[1], created_at=row[2])

    def find_pending(self, email: str, code: str) -> PendingVerification | None:
        sql = """
            SELECT email, code, created_at
            FROM pending_verifications
            WHERE email = %s
              AND code = %s
              AND created_at > NOW() - %s
            ORDER BY created_at DESC
            LIMIT 1
        """
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (email, code, self._ttl))
                row = cursor.fetchone()
        except psycopg.Error as exc:
            raise StorageError("Failed to load pending verification") from exc
        if row is None:
            return None
        return PendingVerification(email=row[0], code=row[1], created_at=row[2])

    def consume_pending(self, email: str, code: str) -> None:
        sql = "DELETE FROM pending_verifications WHERE email = %s AND code = %s"
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (email, code))
                conn.commit()
        except psycopg.Error as exc:
            raise StorageError("Failed to delete pending verification") from exc

    def has_pending(self, email: str) -> bool:
        sql = """
            SELECT 1 FROM pending_verifications
            WHERE email = %s AND created_at > NOW() - %s
            LIMIT 1
        """
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (email, self._ttl))
                return cursor.fetchone() is not None
        except psycopg.Error as exc:
            raise StorageError("Failed to load pending verification") from exc

    def ping(self) -> None:
        """Run a trivial query to check connectivity."""
        with self._pool.connection() as conn:
            conn.execute("SELECT 1")


def migration_files() -> list[Traversable]:
    """Return the packaged SQL migration files, sorted by filename."""
    migrations_dir = files("agilehive").joinpath("migrations")
    if not migrations_dir.is_dir():
        return []
    return sorted(
        (entry for entry in migrations_dir.iterdir() if entry.name.endswith(".sql")),
        key=lambda entry: entry.name,
    )


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files shipped in agilehive/migrations.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance

    Raises:
        RuntimeError: If no migration files are packaged or one fails
    """
    sql_files = migration_files()

    if not sql_files:
        raise RuntimeError("No migration files found in agilehive/migrations")

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text(encoding="utf-8")

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
