"""PostgreSQL implementation of DatabaseService."""

import psycopg2
import psycopg2.extensions
import psycopg2.extras

from userupload.config import ConnectionConfig
from userupload.errors import DatabaseConnectionError
from userupload.service import DatabaseService
from userupload.types import Params, Row


class PostgresDatabaseService(DatabaseService):
    """PostgreSQL backend using psycopg2.

    psycopg2 opens a transaction implicitly on the first statement, so
    begin() only marks the boundary; commit and rollback go to the driver.
    """

    dialect = "postgresql"
    placeholder = "%s"
    driver_error = psycopg2.Error
    integrity_error = psycopg2.IntegrityError

    def __init__(self, dsn: str):
        super().__init__()
        self._dsn = dsn
        self._conn = None

    @classmethod
    def from_config(cls, config: ConnectionConfig) -> "PostgresDatabaseService":
        dsn = psycopg2.extensions.make_dsn(
            host=config.host,
            port=config.port,
            user=config.user,
            password=config.password,
            dbname=config.database_name,
        )
        return cls(dsn)

    def connect(self) -> None:
        try:
            conn = psycopg2.connect(self._dsn)
        except psycopg2.Error as e:
            raise DatabaseConnectionError(f"Database connection failed: {e}") from e
        conn.autocommit = False
        self._conn = conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _get_conn(self):
        if self._conn is None:
            raise DatabaseConnectionError("Not connected. Call connect() first.")
        return self._conn

    def _cursor(self):
        return self._get_conn().cursor()

    def _begin(self) -> None:
        # A previous failed statement would leave the session aborted.
        self._get_conn().rollback()

    def _commit(self) -> None:
        with self._translate_errors():
            self._get_conn().commit()

    def _rollback(self) -> None:
        with self._translate_errors():
            self._get_conn().rollback()

    def execute(self, sql: str, params: Params | None = None) -> list[Row]:
        self._require_transaction()
        with self._translate_errors():
            with self._get_conn().cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(sql, params or ())
                if cur.description is None:
                    return []
                return [dict(row) for row in cur.fetchall()]

    def execute_ddl(self, sql: str) -> None:
        self._require_no_transaction()
        conn = self._get_conn()
        try:
            with self._translate_errors():
                with conn.cursor() as cur:
                    for statement in sql.split(";"):
                        statement = statement.strip()
                        if statement:
                            cur.execute(statement)
                conn.commit()
        except Exception:
            conn.rollback()
            raise
