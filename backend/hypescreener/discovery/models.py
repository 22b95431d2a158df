"""
Token record model and the helpers shared by every discovery path.

The record is serialized with camelCase keys because that is the shape
the frontend and the cache have always used.
"""
from __future__ import annotations

import json
import math
import re
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

UNKNOWN_NAME = "Unknown"
AGE_UNKNOWN = "N/A"

_AGE_PATTERN = re.compile(r"^\s*(-?\d+)")


class TokenRecord(BaseModel):
    """A token as shown in the new/featured lists and search results."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    name: str = UNKNOWN_NAME
    symbol: Optional[str] = None
    address: str = Field(..., min_length=1)
    age: str = AGE_UNKNOWN
    market_cap: float = 0.0
    volume: float = 0.0
    liquidity: float = 0.0
    price: float = 0.0
    price_change: float = 0.0
    holders: int = 0
    hype_score: int = 0
    x_mentions: int = 0
    chart_data: List[float] = Field(default_factory=list)
    sponsored: bool = False

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, v: Any) -> Any:
        return text_or_none(v) or UNKNOWN_NAME

    @field_validator("symbol", mode="before")
    @classmethod
    def text_symbol(cls, v: Any) -> Any:
        return text_or_none(v)

    @field_validator("chart_data", mode="before")
    @classmethod
    def decode_chart(cls, v: Any) -> Any:
        # Hash storage keeps the chart as a JSON string
        if isinstance(v, str):
            return json.loads(v) if v else []
        return v

    @field_validator("market_cap", "volume", "liquidity", "price", "price_change", mode="before")
    @classmethod
    def default_number(cls, v: Any) -> Any:
        if v is None or v == "":
            return 0.0
        return v

    def to_public(self) -> dict:
        """Serialize with the camelCase keys used on the wire."""
        return self.model_dump(by_alias=True)


def text_or_none(value: Any) -> Optional[str]:
    """Upstream text field as a string, None for any other JSON type."""
    return value if isinstance(value, str) else None


def format_age(hours: float) -> str:
    """
    Render an age in whole hours, e.g. ``"3h"``.

    Timestamps slightly in the future clamp to ``"0h"``.
    """
    return f"{max(0, math.floor(hours))}h"


def parse_age_hours(age: Optional[str]) -> Optional[int]:
    """
    Read the leading integer of an age string.

    Returns:
        Hours, or None when the age is unknown or unparseable
    """
    if not age:
        return None
    match = _AGE_PATTERN.match(str(age))
    if not match:
        return None
    return int(match.group(1))


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a creation timestamp from an upstream payload.

    Accepts ISO-8601 strings (with or without ``Z``) and epoch
    milliseconds, either numeric or as a digit string. Naive datetimes
    are taken as UTC.

    Returns:
        Aware UTC datetime, or None when the value cannot be parsed
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc)

        text = str(value).strip()
        if not text:
            return None
        if re.fullmatch(r"-?\d+(\.\d+)?", text):
            return datetime.fromtimestamp(float(text) / 1000.0, tz=timezone.utc)

        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    except (ValueError, OverflowError, OSError):
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def age_in_hours(created_at: datetime, now: Optional[datetime] = None) -> float:
    """Hours elapsed between ``created_at`` and ``now``."""
    now = now or datetime.now(timezone.utc)
    return (now - created_at).total_seconds() / 3600.0


def is_fresh(created_at: Optional[datetime], window_hours: float, now: Optional[datetime] = None) -> bool:
    """
    Check whether a creation time falls inside the freshness window.

    Unknown creation times are never fresh.
    """
    if created_at is None:
        return False
    return age_in_hours(created_at, now) < window_hours


def rank_tokens(tokens: Iterable[TokenRecord], limit: Optional[int] = None) -> List[TokenRecord]:
    """
    Order tokens by hype score, highest first.

    Python's sort is stable so equal scores keep their incoming order.

    Args:
        tokens: Tokens to rank
        limit: Optional cap on the number of tokens returned

    Returns:
        New ranked list
    """
    ranked = sorted(tokens, key=lambda t: t.hype_score, reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    return ranked


__all__ = [
    "TokenRecord",
    "UNKNOWN_NAME",
    "AGE_UNKNOWN",
    "text_or_none",
    "format_age",
    "parse_age_hours",
    "parse_timestamp",
    "age_in_hours",
    "is_fresh",
    "rank_tokens",
]
