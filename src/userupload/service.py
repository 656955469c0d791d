"""Abstract DatabaseService interface and its transaction/statement helpers."""

import logging
import re
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator

from userupload.errors import (
    ConstraintError,
    DatabaseError,
    SchemaError,
    TransactionError,
    UserUploadError,
)
from userupload.types import Params, Row

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Transaction:
    """One unit of work on a service's connection.

    Ends with exactly one of commit() or rollback(); any further terminal
    call raises TransactionError.
    """

    def __init__(self, service: "DatabaseService"):
        self._service = service
        self.state = "active"

    @property
    def active(self) -> bool:
        return self.state == "active"

    def _ensure_active(self, action: str) -> None:
        if not self.active:
            raise TransactionError(f"Cannot {action}: transaction already {self.state}")

    def commit(self) -> None:
        self._ensure_active("commit")
        try:
            self._service._commit()
        except UserUploadError:
            self.state = "rolled back"
            self._service._rollback_after_failure()
            raise
        else:
            self.state = "committed"
        finally:
            self._service._end(self)

    def rollback(self) -> None:
        self._ensure_active("roll back")
        try:
            self._service._rollback()
        finally:
            self.state = "rolled back"
            self._service._end(self)

    def rollback_after_failure(self) -> None:
        """Roll back while another error is being raised.

        A failing rollback is logged so the original error is the one
        reported.
        """
        try:
            self.rollback()
        except UserUploadError:
            logger.exception("Rollback failed")


class PreparedInsert:
    """A reusable parameterized INSERT bound to a fixed column list."""

    def __init__(self, service: "DatabaseService", table: str, columns: list[str]):
        self._service = service
        self.table = table
        self.columns = list(columns)
        placeholders = ", ".join(service.placeholder for _ in columns)
        self.sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
        self._cursor = service._cursor()

    def execute(self, params: Params) -> None:
        self._service._require_transaction()
        with self._service._translate_errors():
            self._cursor.execute(self.sql, params)

    def close(self) -> None:
        self._cursor.close()


def check_identifier(name: str) -> str:
    if not _IDENTIFIER_RE.match(name or ""):
        raise SchemaError(f"Invalid table name: {name!r}")
    return name


class DatabaseService(ABC):
    """Database-agnostic interface for all DB operations.

    A service owns a single connection. Use it as a context manager so the
    connection is closed, and any open transaction rolled back, on every
    exit path.
    """

    dialect: str = ""
    placeholder: str = "?"
    # Driver exception classes, set by each backend.
    driver_error: type[Exception] = Exception
    integrity_error: type[Exception] = Exception

    def __init__(self) -> None:
        self._active_transaction: Transaction | None = None

    def __enter__(self) -> "DatabaseService":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._active_transaction is not None:
                logger.warning("Rolling back transaction left open at close")
                self._active_transaction.rollback()
        finally:
            self.close()

    @abstractmethod
    def connect(self) -> None:
        """Open the connection."""

    @abstractmethod
    def close(self) -> None:
        """Close the connection and release resources."""

    @abstractmethod
    def _cursor(self) -> Any:
        """Return a new DB-API cursor on the open connection."""

    @abstractmethod
    def _begin(self) -> None: ...

    @abstractmethod
    def _commit(self) -> None: ...

    @abstractmethod
    def _rollback(self) -> None: ...

    @abstractmethod
    def execute(self, sql: str, params: Params | None = None) -> list[Row]:
        """Execute a single SQL statement and return rows as dicts."""

    @abstractmethod
    def execute_ddl(self, sql: str) -> None:
        """Execute and commit DDL statements outside any transaction."""

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except self.integrity_error as e:
            raise ConstraintError("row", "", reason=f"Constraint violated: {e}") from e
        except self.driver_error as e:
            raise DatabaseError(str(e)) from e

    def _require_transaction(self) -> None:
        if self._active_transaction is None:
            raise TransactionError(
                "No active transaction. Wrap calls in a `with service.transaction():` block."
            )

    def _require_no_transaction(self) -> None:
        if self._active_transaction is not None:
            raise TransactionError("DDL cannot run inside an open transaction")

    def _rollback_after_failure(self) -> None:
        try:
            self._rollback()
        except UserUploadError:
            logger.exception("Rollback after failed commit also failed")

    def _end(self, transaction: Transaction) -> None:
        if self._active_transaction is transaction:
            self._active_transaction = None

    def begin(self) -> Transaction:
        """Open a transaction; only one may be open at a time."""
        if self._active_transaction is not None:
            raise TransactionError("A transaction is already open on this connection")
        with self._translate_errors():
            self._begin()
        self._active_transaction = Transaction(self)
        return self._active_transaction

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Commit on success, roll back on error."""
        txn = self.begin()
        try:
            yield txn
        except BaseException:
            if txn.active:
                txn.rollback_after_failure()
            raise
        if txn.active:
            txn.commit()

    def prepare_insert(self, table: str, columns: list[str]) -> PreparedInsert:
        check_identifier(table)
        for column in columns:
            check_identifier(column)
        return PreparedInsert(self, table, columns)

    def drop_table_if_exists(self, name: str) -> None:
        check_identifier(name)
        try:
            self.execute_ddl(f"DROP TABLE IF EXISTS {name}")
        except DatabaseError as e:
            raise SchemaError(f"Could not drop table {name}: {e}") from e
