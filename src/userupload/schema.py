"""Users table schema and lifecycle."""

import logging

from userupload.errors import DatabaseError, SchemaError
from userupload.service import DatabaseService

logger = logging.getLogger(__name__)

USERS_TABLE = "users"
USERS_COLUMNS = ["name", "surname", "email"]

USERS_TABLE_DDL = {
    "sqlite": """
CREATE TABLE IF NOT EXISTS users (
    id       INTEGER      PRIMARY KEY AUTOINCREMENT,
    name     VARCHAR(255) NOT NULL,
    surname  VARCHAR(255) NOT NULL,
    email    VARCHAR(255) NOT NULL,
    CONSTRAINT users_email_key UNIQUE (email)
);
""",
    "postgresql": """
CREATE TABLE IF NOT EXISTS users (
    id       SERIAL       PRIMARY KEY,
    name     VARCHAR(255) NOT NULL,
    surname  VARCHAR(255) NOT NULL,
    email    VARCHAR(255) NOT NULL,
    CONSTRAINT users_email_key UNIQUE (email)
);
""",
}


def create_users_table(service: DatabaseService) -> None:
    """Create the users table if it doesn't exist."""
    try:
        ddl = USERS_TABLE_DDL[service.dialect]
    except KeyError:
        raise SchemaError(f"No users table DDL for dialect {service.dialect!r}") from None
    try:
        service.execute_ddl(ddl)
    except DatabaseError as e:
        raise SchemaError(f"Could not create table {USERS_TABLE}: {e}") from e
    logger.info("Table %s created", USERS_TABLE)


def drop_users_table(service: DatabaseService) -> None:
    service.drop_table_if_exists(USERS_TABLE)
    logger.info("Table %s dropped (if it existed)", USERS_TABLE)


def recreate_users_table(service: DatabaseService) -> None:
    """Drop any existing users table and build it again from scratch."""
    drop_users_table(service)
    create_users_table(service)
