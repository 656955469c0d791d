"""SQLite implementation of DatabaseService."""

import sqlite3

from userupload.errors import DatabaseConnectionError
from userupload.service import DatabaseService
from userupload.types import Params, Row


class SQLiteDatabaseService(DatabaseService):
    """SQLite backend using stdlib sqlite3.

    The connection runs with isolation_level=None so transactions are opened
    explicitly by begin() rather than implicitly by the driver.
    """

    dialect = "sqlite"
    placeholder = "?"
    driver_error = sqlite3.Error
    integrity_error = sqlite3.IntegrityError

    def __init__(self, db_path: str):
        super().__init__()
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        try:
            conn = sqlite3.connect(self._db_path, isolation_level=None)
        except sqlite3.Error as e:
            raise DatabaseConnectionError(f"Cannot open SQLite database {self._db_path}: {e}") from e
        self._conn = conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseConnectionError("Not connected. Call connect() first.")
        return self._conn

    def _cursor(self) -> sqlite3.Cursor:
        return self._get_conn().cursor()

    def _begin(self) -> None:
        self._get_conn().execute("BEGIN")

    def _commit(self) -> None:
        with self._translate_errors():
            self._get_conn().commit()

    def _rollback(self) -> None:
        with self._translate_errors():
            self._get_conn().rollback()

    def execute(self, sql: str, params: Params | None = None) -> list[Row]:
        self._require_transaction()
        with self._translate_errors():
            cursor = self._get_conn().execute(sql, params or ())
            if cursor.description is None:
                return []
            columns = [desc[0] for desc in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def execute_ddl(self, sql: str) -> None:
        self._require_no_transaction()
        with self._translate_errors():
            self._get_conn().executescript(sql)
