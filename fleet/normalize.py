"""Normalisation of free-text fields and timestamps before they are stored."""

import re
import string
from datetime import datetime
from typing import Optional

_PHONE_ALLOWED = re.compile(r"[^0-9+\-\s]")


def title_case(value: str) -> str:
    """'  SAN  marcos ' -> 'San Marcos'."""
    return string.capwords(str(value).strip().lower())


def upper_code(value: str) -> str:
    """Plates and license numbers are stored trimmed and upper-case."""
    return str(value).strip().upper()


def clean_email(value: Optional[str]) -> Optional[str]:
    if value is None or not str(value).strip():
        return None
    return str(value).strip().lower()


def clean_phone(value: Optional[str]) -> Optional[str]:
    """Keep digits, '+', '-' and spaces."""
    if value is None or not str(value).strip():
        return None
    return _PHONE_ALLOWED.sub("", str(value)).strip() or None


def format_phone(value: Optional[str]) -> str:
    """Group 8-digit local numbers as NNNN-NNNN."""
    if not value:
        return "Not registered"
    digits = re.sub(r"[^0-9]", "", value)
    if len(digits) == 8:
        return f"{digits[:4]}-{digits[4:]}"
    return value


def local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """
    Timestamps are kept naive in local time, like the fleet clock.

    Aware values are converted to local time and stripped of their zone.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)
