# =============================================================================
# lib/database.py - Database Connection Manager
# =============================================================================
# Owns the process-wide SQLAlchemy engine (connection pool) and hands out one
# Connection per request.
#
# Rules enforced here:
# - SQL text never contains caller data; values always travel as bound
#   parameters through sqlalchemy.text()
# - Connection failures are logged server-side in full, but clients only
#   see the driver message when APP_DEBUG is on
# - Multi-statement writes run inside begin/commit/rollback, and an
#   exception inside transaction() rolls everything back
#
# Usage:
#   db = Database(settings.database_url, debug=settings.APP_DEBUG)
#   with db.connect() as conn:
#       row = conn.fetch_one("SELECT * FROM users WHERE email = :email", {"email": email})
#       with conn.transaction():
#           conn.query("INSERT INTO orders (...) VALUES (...)", {...})
#           order_id = conn.last_insert_id()
# =============================================================================

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from app.exceptions import DatabaseUnavailableError, StorefrontException

logger = logging.getLogger(__name__)


class DatabaseQueryError(StorefrontException):
    """
    Raised when a statement fails (constraint violation, syntax error, ...).

    The driver message is only included when debug is on.
    """

    def __init__(self, detail: str, debug: bool = False):
        super().__init__(
            message=f"Database error: {detail}" if debug else "A database error occurred.",
            code="DATABASE_ERROR",
            status_code=500,
        )
        self.detail = detail


# =============================================================================
# Query Results
# =============================================================================

class QueryResult:
    """
    Buffered result of one statement.

    Rows are materialized as plain dicts so the result stays usable after the
    surrounding transaction has been committed.
    """

    def __init__(
        self,
        rows: list[dict[str, Any]] | None = None,
        rowcount: int = 0,
        lastrowid: int | None = None,
    ):
        self.rows = rows or []
        self.rowcount = rowcount
        self.lastrowid = lastrowid

    def first(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None

    def scalar(self) -> Any:
        row = self.first()
        if row is None:
            return None
        return next(iter(row.values()), None)

    def __iter__(self):
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)


# =============================================================================
# Connection
# =============================================================================

class Connection:
    """
    One checked-out database connection with explicit transaction control.

    Outside of begin_transaction()/commit() every statement runs in its own
    short transaction and is committed immediately.
    """

    def __init__(self, connection, debug: bool = False):
        self._connection = connection
        self._transaction = None
        self._last_insert_id: int | None = None
        self._debug = debug

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def query(self, sql: str, params: Mapping[str, Any] | None = None) -> QueryResult:
        """
        Execute a parameterized statement.

        Args:
            sql: SQL with named placeholders (":email")
            params: Values bound to the placeholders

        Returns:
            QueryResult with rows (for SELECT), rowcount and lastrowid

        Raises:
            DatabaseQueryError: If the statement fails
        """
        statement = text(sql)
        try:
            if self._transaction is None:
                with self._connection.begin():
                    result = self._buffer(sql, self._connection.execute(statement, dict(params or {})))
            else:
                result = self._buffer(sql, self._connection.execute(statement, dict(params or {})))
        except SQLAlchemyError as e:
            detail = _driver_message(e)
            logger.error(f"Query failed: {detail}")
            raise DatabaseQueryError(detail, debug=self._debug) from e

        if result.lastrowid:
            self._last_insert_id = result.lastrowid
        return result

    def fetch_all(self, sql: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        return self.query(sql, params).rows

    def fetch_one(self, sql: str, params: Mapping[str, Any] | None = None) -> dict[str, Any] | None:
        return self.query(sql, params).first()

    def fetch_value(self, sql: str, params: Mapping[str, Any] | None = None) -> Any:
        return self.query(sql, params).scalar()

    @staticmethod
    def _buffer(sql: str, result) -> QueryResult:
        rows = [dict(row) for row in result.mappings()] if result.returns_rows else []
        lastrowid = None
        if sql.lstrip()[:6].upper() == "INSERT":
            lastrowid = result.lastrowid
        return QueryResult(rows=rows, rowcount=result.rowcount, lastrowid=lastrowid)

    def last_insert_id(self) -> int | None:
        """Id of the most recently inserted row on this connection."""
        return self._last_insert_id

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def begin_transaction(self) -> None:
        if self._transaction is not None:
            raise DatabaseQueryError("A transaction is already active", debug=True)
        self._transaction = self._connection.begin()

    def commit(self) -> None:
        if self._transaction is None:
            raise DatabaseQueryError("No active transaction to commit", debug=True)
        try:
            self._transaction.commit()
        finally:
            self._transaction = None

    def rollback(self) -> None:
        if self._transaction is None:
            return
        try:
            self._transaction.rollback()
        finally:
            self._transaction = None

    def in_transaction(self) -> bool:
        return self._transaction is not None and self._transaction.is_active

    @contextmanager
    def transaction(self) -> Iterator["Connection"]:
        """
        Run a block atomically.

        Commits when the block finishes, rolls back and re-raises on any
        exception.

        Example:
            with conn.transaction():
                conn.query("INSERT INTO orders ...", order)
                conn.query("INSERT INTO order_items ...", item)
        """
        self.begin_transaction()
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()

    def close(self) -> None:
        self.rollback()
        self._connection.close()


# =============================================================================
# Database (engine holder)
# =============================================================================

class Database:
    """
    Lazily-created, memoized connection pool for the process.

    One instance is created at application startup and passed to whatever
    needs a connection; nothing reaches for a module-level global.

    Example:
        db = Database("sqlite:///./dev.db", debug=True)
        with db.connect() as conn:
            conn.fetch_value("SELECT COUNT(*) FROM products")
    """

    def __init__(self, url: str | URL, debug: bool = False, **engine_options: Any):
        self.url = url
        self.debug = debug
        self._engine_options = engine_options
        self._engine: Engine | None = None

    def get_engine(self) -> Engine:
        """
        Get or create the engine.

        MySQL connections use utf8mb4 and pre-ping pooled connections.
        SQLite connections enforce foreign keys.

        Returns:
            Engine: The shared SQLAlchemy engine

        Raises:
            DatabaseUnavailableError: If the engine can't be created
        """
        if self._engine is None:
            try:
                url = make_url(self.url)
                options = {"pool_pre_ping": True, **self._engine_options}
                if url.get_backend_name() == "mysql":
                    options.setdefault("pool_recycle", 3600)
                    url = url.update_query_dict({"charset": "utf8mb4"})
                engine = create_engine(url, **options)
                if url.get_backend_name() == "sqlite":
                    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
                self._engine = engine
                logger.info(f"Database engine initialized ({url.get_backend_name()})")
            except Exception as e:
                raise self._unavailable(e) from e
        return self._engine

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """
        Check out a connection for the duration of a block.

        Any transaction left open when the block exits is rolled back.

        Raises:
            DatabaseUnavailableError: If the server can't be reached
        """
        engine = self.get_engine()
        try:
            raw = engine.connect()
        except SQLAlchemyError as e:
            raise self._unavailable(e) from e

        connection = Connection(raw, debug=self.debug)
        try:
            yield connection
        finally:
            connection.close()

    def ping(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            with self.connect() as conn:
                conn.fetch_value("SELECT 1")
            return True
        except StorefrontException:
            return False

    def close(self) -> None:
        """Dispose of the pool (application shutdown)."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("Database engine disposed")

    def _unavailable(self, error: Exception) -> DatabaseUnavailableError:
        detail = self._sanitize(_driver_message(error))
        logger.error(f"Database connection failed: {detail}")
        return DatabaseUnavailableError(detail, debug=self.debug)

    def _sanitize(self, message: str) -> str:
        try:
            password = make_url(self.url).password
        except Exception:
            password = None
        if password:
            message = message.replace(str(password), "***")
        return message


def _driver_message(error: Exception) -> str:
    """First line of the underlying DBAPI error, without SQLAlchemy's help links."""
    original = getattr(error, "orig", None)
    message = str(original) if original is not None else str(error)
    return message.splitlines()[0] if message else error.__class__.__name__


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
