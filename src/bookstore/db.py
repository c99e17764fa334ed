from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import psycopg
from psycopg import Connection
from psycopg import errors as pg_errors
from psycopg_pool import ConnectionPool, PoolTimeout

from .config import DbConfig, PoolConfig
from .errors import BookstoreError, ConflictError, StorageUnavailable

logger = logging.getLogger(__name__)


class DbError(StorageUnavailable):
    pass


def translate_storage_error(e: Exception) -> BookstoreError:
    """Map a psycopg / pool failure to the nearest bookstore error."""
    if isinstance(e, PoolTimeout):
        return DbError("No database connection available. The pool is exhausted or PostgreSQL is down.")
    if isinstance(e, pg_errors.ForeignKeyViolation):
        return ConflictError("Referenced customer, book or order does not exist.")
    if isinstance(e, pg_errors.UniqueViolation):
        return ConflictError(f"Duplicate value ({_constraint(e)}).")
    if isinstance(e, pg_errors.CheckViolation):
        return ConflictError(f"Value rejected by constraint {_constraint(e)}.")
    if isinstance(e, psycopg.IntegrityError):
        return ConflictError(f"Data conflict: {e}")
    if isinstance(e, pg_errors.TransactionRollback):
        return ConflictError("Order conflicted with a concurrent transaction. Retry the request.")
    if isinstance(e, psycopg.OperationalError):
        return DbError("Cannot reach database. Check config.toml [db] and that PostgreSQL is running.")
    raise TypeError(f"Not a storage error: {e!r}")


def _constraint(e: psycopg.Error) -> str:
    diag = getattr(e, "diag", None)
    name = getattr(diag, "constraint_name", None) if diag is not None else None
    return name or "unknown constraint"


class Db:
    def __init__(self, cfg: DbConfig, pool_cfg: PoolConfig | None = None) -> None:
        pool_cfg = pool_cfg or PoolConfig()
        self.cfg = cfg
        self.pool_cfg = pool_cfg
        self.pool = ConnectionPool(
            cfg.conninfo(),
            min_size=pool_cfg.min_size,
            max_size=pool_cfg.max_size,
            timeout=pool_cfg.timeout,
            open=False,
        )

    def open(self) -> None:
        try:
            self.pool.open(wait=True, timeout=self.pool_cfg.timeout)
        except PoolTimeout as e:
            self.pool.close()
            raise DbError(
                "Cannot connect to database. Check config.toml [db] and that PostgreSQL is running."
            ) from e
        logger.info(
            "Connected to database %r at %s:%s (pool max_size=%s)",
            self.cfg.name,
            self.cfg.host,
            self.cfg.port,
            self.pool_cfg.max_size,
        )

    def close(self) -> None:
        self.pool.close()

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        try:
            with self.pool.connection() as conn:
                yield conn
        except (PoolTimeout, psycopg.OperationalError, psycopg.IntegrityError) as e:
            raise translate_storage_error(e) from e

    @contextmanager
    def session(self) -> Iterator[Connection]:
        with self._connection() as conn:
            yield conn

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        # rollback happens in conn.transaction() before the error is translated
        with self._connection() as conn:
            with conn.transaction():
                yield conn

    def ping(self) -> bool:
        try:
            with self.session() as conn:
                conn.execute("SELECT 1;")
            return True
        except StorageUnavailable:
            return False
