"""Shared date/time and id utilities."""

from __future__ import annotations

import secrets
import string
from datetime import date, datetime, time, timezone

_ID_ALPHABET = string.ascii_lowercase + string.digits


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """Return ``<prefix>_<8 random chars>_<epoch millis>``."""
    random_part = "".join(secrets.choice(_ID_ALPHABET) for _ in range(8))
    millis = int(utc_now().timestamp() * 1000)
    return f"{prefix}_{random_part}_{millis}"


def due_instant(due: date) -> datetime:
    """A due date is reached at midnight UTC of that day."""
    return datetime.combine(due, time.min, tzinfo=timezone.utc)
