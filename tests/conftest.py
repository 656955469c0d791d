"""Shared test fixtures."""

import csv
from pathlib import Path

import pytest

from userupload import create_service
from userupload.schema import create_users_table


@pytest.fixture
def db_service(tmp_path):
    """Provide a fresh, connected SQLite DatabaseService for each test."""
    db_path = tmp_path / "test.db"
    service = create_service(f"sqlite:///{db_path}")
    with service:
        yield service


@pytest.fixture
def users_service(db_service):
    """A service whose database already holds an empty users table."""
    create_users_table(db_service)
    return db_service


@pytest.fixture
def write_csv(tmp_path):
    """Write rows (header first) to a CSV file and return its path."""

    def _write(rows: list[list[str]], name: str = "users.csv") -> Path:
        csv_file = tmp_path / name
        with open(csv_file, "w", newline="", encoding="utf-8") as f:
            csv.writer(f).writerows(rows)
        return csv_file

    return _write


@pytest.fixture
def count_users():
    """Return a helper that counts rows in the users table."""

    def _count(service) -> int:
        with service.transaction():
            rows = service.execute("SELECT COUNT(*) AS cnt FROM users")
        return rows[0]["cnt"]

    return _count
