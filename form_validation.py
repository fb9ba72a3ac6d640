from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Tuple


class FieldKind(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    TEL = "tel"
    TEXTAREA = "textarea"
    DATE = "date"
    CHOICE = "choice"
    CHECKBOX = "checkbox"


@dataclass(frozen=True)
class FieldRule:
    name: str
    label: str
    kind: FieldKind = FieldKind.TEXT
    required: bool = False
    min_length: int = 0
    max_length: Optional[int] = None
    choices: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    message: Optional[str] = None


_OK = ValidationResult(valid=True)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^[+]?[0-9\s\-()]{10,}$")

NOTES_MIN_LENGTH = 10
NOTES_MAX_LENGTH = 1000
NAME_MIN_LENGTH = 2


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match((value or "").strip()))


def is_valid_phone(value: str) -> bool:
    return bool(_PHONE_RE.match((value or "").strip()))


def _is_iso_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def validate_field(rule: FieldRule, value: object) -> ValidationResult:
    """
    Validate a single field value against its rule.

    Returns a result with a user-facing (Dutch) message on failure. The caller decides
    how and where to render it.
    """
    if rule.kind == FieldKind.CHECKBOX:
        if rule.required and value is not True:
            return ValidationResult(valid=False, message=f"{rule.label} is verplicht")
        return _OK

    text = str(value or "").strip()
    if not text:
        if rule.required:
            return ValidationResult(valid=False, message=f"{rule.label} is verplicht")
        return _OK

    if rule.kind == FieldKind.EMAIL and not is_valid_email(text):
        return ValidationResult(valid=False, message="Voer een geldig e-mailadres in")
    if rule.kind == FieldKind.TEL and not is_valid_phone(text):
        return ValidationResult(valid=False, message="Voer een geldig telefoonnummer in")
    if rule.kind == FieldKind.DATE and not _is_iso_date(text):
        return ValidationResult(valid=False, message="Voer een geldige datum in (JJJJ-MM-DD)")
    if rule.kind == FieldKind.CHOICE and rule.choices and text not in rule.choices:
        return ValidationResult(valid=False, message=f"Kies een geldige optie voor {rule.label}")

    if rule.min_length and len(text) < rule.min_length:
        return ValidationResult(
            valid=False,
            message=f"{rule.label} moet minimaal {rule.min_length} tekens bevatten",
        )
    if rule.max_length is not None and len(text) > rule.max_length:
        return ValidationResult(
            valid=False,
            message=f"{rule.label} mag maximaal {rule.max_length} tekens bevatten",
        )
    return _OK
