"""Field normalization and validation for user records."""

import unicodedata
from dataclasses import dataclass

from email_validator import EmailNotValidError, validate_email as _check_email

from userupload.errors import ValidationError

_NAME_EXTRA_CHARS = frozenset(" -")


@dataclass(frozen=True)
class UserRecord:
    name: str
    surname: str
    email: str

    def as_row(self) -> tuple[str, str, str]:
        return (self.name, self.surname, self.email)


def normalize_name(value: str) -> str:
    """Trim, collapse inner whitespace and uppercase the first character.

    Decomposed accents are composed (NFC) first. Only the very first
    character of the whole string is changed:
    "  anne   marie " -> "Anne marie".
    """
    composed = unicodedata.normalize("NFC", value)
    collapsed = " ".join(composed.split())
    return collapsed[:1].upper() + collapsed[1:]


def normalize_email(value: str) -> str:
    return value.strip().lower()


def validate_name(value: str) -> bool:
    """True if value is non-empty and holds only letters, spaces and hyphens."""
    if not value:
        return False
    return all(ch.isalpha() or ch in _NAME_EXTRA_CHARS for ch in value)


def validate_email(value: str) -> bool:
    """True if value is a syntactically valid address with a dotted domain.

    Only the grammar is checked; special-use domains such as .local are
    accepted.
    """
    if not value:
        return False
    try:
        checked = _check_email(value, check_deliverability=False, globally_deliverable=False)
    except EmailNotValidError:
        return False
    return "." in checked.domain


def normalize_record(
    name: str, surname: str, email: str, line_number: int | None = None
) -> UserRecord:
    """Normalize the three fields and validate each one.

    Raises ValidationError for the first field that fails its rule.
    """
    record = UserRecord(
        name=normalize_name(name),
        surname=normalize_name(surname),
        email=normalize_email(email),
    )
    if not validate_name(record.name):
        raise ValidationError("name", record.name, line_number)
    if not validate_name(record.surname):
        raise ValidationError("surname", record.surname, line_number)
    if not validate_email(record.email):
        raise ValidationError("email", record.email, line_number)
    return record
