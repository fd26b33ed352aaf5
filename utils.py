"""
utils.py
Validation, dates, phone normalization, CSV exports.
"""

from __future__ import annotations

import re
from datetime import date, timedelta
import pandas as pd

_NON_DIGITS = re.compile(r"\D")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_phone(phone: str | None) -> str:
    """
    Keep digits only, so "010-1234-5678", "010 1234 5678" and "01012345678" compare equal.
    """
    if not phone:
        return ""
    return _NON_DIGITS.sub("", phone)


def calc_end_date(start: date, duration_days: int | None) -> date | None:
    if not duration_days:
        return None
    return start + timedelta(days=duration_days)


def _optional_int(value, label: str, errors: list[str]) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        # int() would truncate 1.5 to 1
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(value)
        number = int(value)
    except (TypeError, ValueError):
        errors.append(f"{label} must be a whole number.")
        return None
    if number <= 0:
        errors.append(f"{label} must be greater than 0.")
    return number


def validate_member_inputs(name: str, phone: str, email: str | None = None) -> list[str]:
    errors: list[str] = []
    if not name.strip():
        errors.append("Name is required.")
    if not phone.strip():
        errors.append("Phone is required.")
    elif not normalize_phone(phone):
        errors.append("Phone must contain digits.")
    if email and email.strip() and not _EMAIL.match(email.strip()):
        errors.append("Email address is not valid.")
    return errors


def validate_ticket_inputs(ticket_type: str, count, duration_days, price) -> list[str]:
    """
    A plan must bound usage by count, by time, or both.
    """
    errors: list[str] = []
    if not ticket_type.strip():
        errors.append("Ticket name is required.")

    count_val = _optional_int(count, "Visit count", errors)
    duration_val = _optional_int(duration_days, "Duration (days)", errors)
    if count_val is None and duration_val is None and not errors:
        errors.append("Set a visit count, a duration, or both.")

    try:
        if float(price) < 0:
            errors.append("Price cannot be negative.")
    except (TypeError, ValueError):
        errors.append("Price must be numeric.")
    return errors


def members_to_csv_bytes(rows) -> bytes:
    df = pd.DataFrame([dict(r) for r in rows])
    return df.to_csv(index=False).encode("utf-8")


def payments_to_csv_bytes(rows) -> bytes:
    df = pd.DataFrame([dict(r) for r in rows])
    return df.to_csv(index=False).encode("utf-8")
