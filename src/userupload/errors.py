"""Error kinds raised by userupload.

Driver exceptions are wrapped into these at the backend boundary so callers
never have to know whether they talk to SQLite or PostgreSQL.
"""


class UserUploadError(Exception):
    """Base class for every error the tool reports."""


class ConfigurationError(UserUploadError):
    """Database credentials are missing or incomplete."""


class DatabaseConnectionError(UserUploadError):
    """The database could not be reached or refused the credentials."""


class CsvFileError(UserUploadError):
    """The CSV file is missing, unreadable or not valid UTF-8."""


class FormatError(UserUploadError):
    """The CSV header or a row does not have the expected shape."""


class ValidationError(UserUploadError):
    """A field failed normalization or validation."""

    def __init__(self, field: str, value: str, line_number: int | None = None, reason: str = ""):
        self.field = field
        self.value = value
        self.line_number = line_number
        where = f" on line {line_number}" if line_number is not None else ""
        message = reason or f"invalid {field} {value!r}{where}"
        super().__init__(message)


class ConstraintError(ValidationError):
    """The database rejected a row because of a uniqueness constraint."""


class SchemaError(UserUploadError):
    """Dropping or creating a table failed."""


class DatabaseError(UserUploadError):
    """Any other failure reported by the database driver."""


class TransactionError(UserUploadError):
    """A transaction was used outside its lifecycle."""
