"""Batched, transactional CSV ingestion into the users table."""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from userupload.errors import ConstraintError, CsvFileError, FormatError
from userupload.normalize import UserRecord, normalize_record
from userupload.schema import USERS_COLUMNS, USERS_TABLE
from userupload.service import DatabaseService, PreparedInsert

logger = logging.getLogger(__name__)

BATCH_SIZE = 1000
REQUIRED_COLUMNS = ("name", "surname", "email")

Batch = list[tuple[int, UserRecord]]


@dataclass(frozen=True)
class ImportResult:
    rows_read: int
    rows_inserted: int
    batches_flushed: int
    dry_run: bool
    committed: bool


def resolve_columns(header: list[str]) -> dict[str, int]:
    """Map each required column to its position in the header row.

    Matching ignores case and surrounding whitespace; extra columns are
    ignored. Raises FormatError naming every missing column.
    """
    positions: dict[str, int] = {}
    for index, cell in enumerate(header):
        key = cell.strip().lower()
        if key in REQUIRED_COLUMNS and key not in positions:
            positions[key] = index

    missing = [col for col in REQUIRED_COLUMNS if col not in positions]
    if missing:
        raise FormatError(f"CSV header is missing column(s): {', '.join(missing)}")
    return positions


def read_records(
    reader: Iterator[list[str]], positions: dict[str, int]
) -> Iterator[tuple[int, UserRecord]]:
    """Yield (line_number, record) for each data row after the header.

    Stops at the first bad row: a short row raises FormatError, an invalid
    field raises ValidationError.
    """
    last = max(positions.values())
    for row_num, row in enumerate(reader, start=2):
        if not row or all(cell.strip() == "" for cell in row):
            logger.debug("Skipping blank row %d", row_num)
            continue
        if len(row) <= last:
            raise FormatError(
                f"Row {row_num} has {len(row)} field(s), expected at least {last + 1}"
            )
        yield row_num, normalize_record(
            row[positions["name"]],
            row[positions["surname"]],
            row[positions["email"]],
            line_number=row_num,
        )


def flush_batch(statement: PreparedInsert, batch: Batch) -> None:
    """Execute the prepared insert once per record in the batch."""
    for row_num, record in batch:
        try:
            statement.execute(record.as_row())
        except ConstraintError as e:
            raise ConstraintError(
                "email",
                record.email,
                row_num,
                reason=f"Duplicate or conflicting record on line {row_num} "
                f"({record.email!r}): {e}",
            ) from e


def _open_csv(file_path: Path):
    if not file_path.exists():
        raise CsvFileError(f"CSV file not found: {file_path}")
    if not file_path.is_file():
        raise CsvFileError(f"Not a regular file: {file_path}")
    try:
        return open(file_path, newline="", encoding="utf-8-sig")
    except OSError as e:
        raise CsvFileError(f"Cannot open {file_path}: {e}") from e


def _load(
    statement: PreparedInsert,
    reader: Iterator[list[str]],
    positions: dict[str, int],
    batch_size: int,
) -> tuple[int, int, int]:
    rows_read = inserted = flushes = 0
    batch: Batch = []
    for item in read_records(reader, positions):
        rows_read += 1
        batch.append(item)
        if len(batch) < batch_size:
            continue
        flush_batch(statement, batch)
        inserted += len(batch)
        flushes += 1
        logger.info("Batch %d: inserted %d rows (total: %d)", flushes, len(batch), inserted)
        batch = []

    if batch:
        flush_batch(statement, batch)
        inserted += len(batch)
        flushes += 1
        logger.info("Batch %d: inserted %d rows (total: %d)", flushes, len(batch), inserted)
    return rows_read, inserted, flushes


def ingest_users(
    service: DatabaseService,
    file_path: str | Path,
    dry_run: bool = False,
    batch_size: int = BATCH_SIZE,
) -> ImportResult:
    """Load every record of a CSV file into the users table.

    The whole file is one transaction: all rows are committed together, or
    nothing is. With dry_run the inserts still run (so constraint violations
    surface) and the transaction is rolled back at the end.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    file_path = Path(file_path)
    with _open_csv(file_path) as f:
        reader = csv.reader(f)
        try:
            header = next(reader, None)
            if header is None:
                raise FormatError(f"CSV file is empty: {file_path}")
            positions = resolve_columns(header)

            txn = service.begin()
            try:
                statement = service.prepare_insert(USERS_TABLE, USERS_COLUMNS)
                try:
                    rows_read, inserted, flushes = _load(statement, reader, positions, batch_size)
                finally:
                    statement.close()
            except BaseException:
                logger.warning("Import failed, rolling back transaction")
                txn.rollback_after_failure()
                raise
        except UnicodeDecodeError as e:
            raise CsvFileError(f"{file_path} is not valid UTF-8: {e}") from e
        except csv.Error as e:
            raise FormatError(f"Malformed CSV in {file_path}: {e}") from e

    if dry_run:
        txn.rollback()
        logger.info("Dry run: %d rows validated, nothing was written", inserted)
    else:
        txn.commit()
        logger.info("Ingestion complete: %d rows committed", inserted)

    return ImportResult(
        rows_read=rows_read,
        rows_inserted=inserted,
        batches_flushed=flushes,
        dry_run=dry_run,
        committed=not dry_run,
    )
