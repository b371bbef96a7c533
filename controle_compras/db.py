from __future__ import annotations

import atexit
import logging
import sqlite3
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, TypeVar

try:
    import psycopg2
    import psycopg2.extras
    import psycopg2.pool
except ImportError:  # pragma: no cover - optional dependency for postgres
    psycopg2 = None

from flask import current_app, g

from controle_compras.errors import AppError, DuplicateError, PersistenceError, StoreUnavailableError


logger = logging.getLogger(__name__)

T = TypeVar("T")

_PG_UNIQUE_VIOLATION = "23505"
_SQLITE_UNAVAILABLE_MARKERS = ("unable to open", "disk i/o error", "database is locked", "readonly database")


def is_postgres_url(db_path: str | None) -> bool:
    return str(db_path or "").strip().lower().startswith("postgres")


def _truncate_sql(sql: str, size: int = 100) -> str:
    compact = " ".join(str(sql or "").split())
    return compact if len(compact) <= size else compact[:size] + "..."


def translate_store_error(exc: BaseException) -> AppError:
    """Map a driver exception onto the application error taxonomy."""
    if isinstance(exc, AppError):
        return exc
    details = str(exc).strip() or exc.__class__.__name__
    if psycopg2 is not None and isinstance(exc, psycopg2.Error):
        if isinstance(exc, psycopg2.IntegrityError) and getattr(exc, "pgcode", None) == _PG_UNIQUE_VIOLATION:
            return DuplicateError(details=details)
        if isinstance(exc, (psycopg2.OperationalError, psycopg2.InterfaceError, psycopg2.pool.PoolError)):
            return StoreUnavailableError(details=details)
        return PersistenceError(details=details)
    if isinstance(exc, sqlite3.IntegrityError) and "unique constraint failed" in details.lower():
        return DuplicateError(details=details)
    if isinstance(exc, sqlite3.OperationalError) and any(
        marker in details.lower() for marker in _SQLITE_UNAVAILABLE_MARKERS
    ):
        return StoreUnavailableError(details=details)
    return PersistenceError(details=details)


class Database:
    def __init__(self, backend: str, connection, release: Callable[[Any], None] | None = None):
        self.backend = backend
        self._conn = connection
        self._release = release
        self._in_transaction = False

    def execute(self, sql: str, params: Iterable | None = None):
        started = time.perf_counter()
        try:
            if self.backend == "postgres":
                cursor = self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
                if params:
                    cursor.execute(_convert_qmark_to_pg(sql), list(params))
                else:
                    cursor.execute(sql)
            else:
                cursor = self._conn.execute(sql, tuple(params or ()))
        except Exception as exc:
            logger.error(
                "query_failed",
                extra={"sql": _truncate_sql(sql), "error": str(exc), "backend": self.backend},
            )
            raise translate_store_error(exc) from exc

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "query_executed",
                extra={
                    "sql": _truncate_sql(sql),
                    "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
                    "rows": cursor.rowcount,
                },
            )
        return cursor

    @contextmanager
    def transaction(self):
        if self._in_transaction:
            yield self
            return
        self.execute("BEGIN")
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            self._rollback()
            raise
        else:
            self.execute("COMMIT")
        finally:
            self._in_transaction = False

    def with_transaction(self, fn: Callable[["Database"], T]) -> T:
        with self.transaction():
            return fn(self)

    def _rollback(self) -> None:
        try:
            self.execute("ROLLBACK")
        except AppError:
            logger.warning("rollback_failed", exc_info=True)

    def close(self) -> None:
        if self._release is not None:
            self._release(self._conn)
            self._release = None
            return
        self._conn.close()


def _convert_qmark_to_pg(sql: str) -> str:
    return sql.replace("?", "%s")


class ConnectionPool:
    """Bounded psycopg2 pool; callers block for a free slot up to ``acquire_timeout``."""

    def __init__(
        self,
        dsn: str,
        *,
        minconn: int,
        maxconn: int,
        acquire_timeout: float,
        idle_timeout: float,
        connect_timeout: int,
    ) -> None:
        if psycopg2 is None:
            raise RuntimeError("psycopg2 nao instalado.")
        maxconn = max(1, int(maxconn))
        minconn = max(0, min(int(minconn), maxconn))
        self.maxconn = maxconn
        self.acquire_timeout = max(0.0, float(acquire_timeout))
        self.idle_timeout = max(0.0, float(idle_timeout))
        self._slots = threading.BoundedSemaphore(maxconn)
        self._lock = threading.Lock()
        self._returned_at: Dict[int, float] = {}
        try:
            self._pool = psycopg2.pool.ThreadedConnectionPool(
                minconn,
                maxconn,
                dsn,
                connect_timeout=int(connect_timeout),
            )
        except psycopg2.Error as exc:
            raise translate_store_error(exc) from exc

    def _is_stale(self, conn) -> bool:
        if conn.closed:
            return True
        with self._lock:
            returned_at = self._returned_at.pop(id(conn), None)
        if returned_at is None or self.idle_timeout <= 0:
            return False
        return time.monotonic() - returned_at > self.idle_timeout

    def acquire(self):
        if not self._slots.acquire(timeout=self.acquire_timeout):
            raise StoreUnavailableError(details=f"pool esgotado ({self.maxconn} conexoes em uso)")
        try:
            conn = self._pool.getconn()
            if self._is_stale(conn):
                self._pool.putconn(conn, close=True)
                conn = self._pool.getconn()
            conn.autocommit = True
            return conn
        except psycopg2.Error as exc:
            self._slots.release()
            raise translate_store_error(exc) from exc
        except BaseException:
            self._slots.release()
            raise

    def release(self, conn) -> None:
        try:
            if conn.closed:
                self._pool.putconn(conn, close=True)
            else:
                self._pool.putconn(conn)
                with self._lock:
                    self._returned_at[id(conn)] = time.monotonic()
        finally:
            self._slots.release()

    def close(self) -> None:
        self._pool.closeall()


_POOLS: Dict[str, ConnectionPool] = {}
_POOLS_LOCK = threading.Lock()


def _pool_for(config) -> ConnectionPool:
    dsn = str(config["DB_PATH"])
    with _POOLS_LOCK:
        pool = _POOLS.get(dsn)
        if pool is None:
            pool = ConnectionPool(
                dsn,
                minconn=int(config.get("DB_POOL_MIN", 1)),
                maxconn=int(config.get("DB_POOL_MAX", 20)),
                acquire_timeout=float(config.get("DB_POOL_ACQUIRE_TIMEOUT_SECONDS", 10)),
                idle_timeout=float(config.get("DB_IDLE_TIMEOUT_SECONDS", 30)),
                connect_timeout=int(config.get("DB_CONNECT_TIMEOUT_SECONDS", 2)),
            )
            _POOLS[dsn] = pool
            logger.info("db_pool_created", extra={"pool_max": pool.maxconn})
        return pool


def close_pools() -> None:
    with _POOLS_LOCK:
        pools = list(_POOLS.values())
        _POOLS.clear()
    for pool in pools:
        pool.close()


atexit.register(close_pools)


def _connect_database(config) -> Database:
    db_path = str(config["DB_PATH"])
    if is_postgres_url(db_path):
        if psycopg2 is None:
            raise RuntimeError("psycopg2 nao instalado.")
        pool = _pool_for(config)
        return Database("postgres", pool.acquire(), release=pool.release)

    try:
        conn = sqlite3.connect(db_path, timeout=30.0, isolation_level=None, check_same_thread=False)
    except sqlite3.Error as exc:
        raise translate_store_error(exc) from exc
    conn.row_factory = sqlite3.Row
    return Database("sqlite", conn)


def get_db() -> Database:
    if "db" not in g:
        g.db = _connect_database(current_app.config)
    return g.db


def close_db(_error=None) -> None:
    db = g.pop("db", None)
    if db is not None:
        db.close()


def check_connection(db: Database | None = None) -> bool:
    db = db or get_db()
    row = db.execute("SELECT 1 AS ok").fetchone()
    return row is not None
