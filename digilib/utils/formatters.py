"""Display formatters shared by JSON payloads (sizes, prices, dates)."""
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Optional

from digilib.utils.dates import parse_timestamp

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]
NOT_SPECIFIED = "Not specified"
INVALID_DATE = "Invalid date"


def format_size(num_bytes: Optional[int], decimals: int = 2) -> str:
    if not num_bytes:
        return "0 Bytes"
    k = 1024
    index = min(int(math.floor(math.log(num_bytes) / math.log(k))), len(_SIZE_UNITS) - 1)
    value = round(num_bytes / (k ** index), decimals)
    # drop trailing zeros the way a float repr would ("1.5", "2")
    text = f"{value:.{decimals}f}".rstrip("0").rstrip(".") if decimals > 0 else str(int(value))
    return f"{text} {_SIZE_UNITS[index]}"


def format_price(amount: Optional[int]) -> str:
    if not amount:
        return "0 FCFA"
    grouped = f"{int(amount):,}".replace(",", " ")
    return f"{grouped} FCFA"


def _coerce(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    return parse_timestamp(value)


def format_date(value: Any) -> str:
    if not value:
        return NOT_SPECIFIED
    try:
        parsed = _coerce(value)
    except ValueError:
        return INVALID_DATE
    if parsed is None:
        return NOT_SPECIFIED
    return parsed.strftime("%d/%m/%Y")


def format_datetime(value: Any) -> str:
    if not value:
        return NOT_SPECIFIED
    try:
        parsed = _coerce(value)
    except ValueError:
        return INVALID_DATE
    if parsed is None:
        return NOT_SPECIFIED
    return parsed.strftime("%d/%m/%Y %H:%M")


__all__ = ["format_size", "format_price", "format_date", "format_datetime"]
