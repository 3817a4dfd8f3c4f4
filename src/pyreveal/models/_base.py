"""Base model and timestamp coercion shared by pyreveal models.

Every persisted record inherits from :class:`RevealBaseModel`, which is
frozen (records are immutable once stored) and accepts both snake_case
field names and the camelCase keys used by the REST backend.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_timestamp(value: Any) -> datetime:
    """Convert an epoch timestamp (seconds **or** milliseconds) to a UTC datetime.

    Datetimes pass through; naive datetimes are assumed to be UTC.
    ISO-8601 strings are accepted as well.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, str):
        text = value.strip()
        try:
            value = float(text)
        except ValueError:
            parsed = datetime.fromisoformat(text)
            return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    ts = float(value)
    if math.isnan(ts):
        raise ValueError("timestamp must not be NaN")
    if ts >= _MS_THRESHOLD:
        ts /= 1000.0
    return datetime.fromtimestamp(ts, tz=UTC)


RevealTimestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
"""Annotated type that coerces epoch ints (seconds or ms) to UTC datetimes."""


def utcnow() -> datetime:
    return datetime.now(UTC)


class RevealBaseModel(BaseModel):
    """Base for persisted pyreveal records."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
