"""Shared schema helpers."""

import math
import re
from datetime import date

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


class CamelModel(BaseModel):
    """Base model exposing camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def normalize_slot_date(value: str) -> str:
    """Validate a calendar date and return it as ``YYYY-MM-DD``."""
    try:
        return date.fromisoformat(value.strip()).isoformat()
    except (AttributeError, ValueError):
        raise ValueError("Date must be a valid calendar date in YYYY-MM-DD format") from None


def normalize_slot_time(value: str) -> str:
    """Validate a time of day and return it as zero-padded ``HH:MM``."""
    match = _TIME_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError("Time must be in HH:MM format")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError("Time must be a valid time of day")

    return f"{hour:02d}:{minute:02d}"


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed to show ``total`` items, ``limit`` per page."""
    return math.ceil(total / limit) if limit else 0
