from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Iterable


def parse_number(raw: str | None) -> float | None:
    """Parse a query-string number; None for blanks, garbage and non-finite values."""
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_integer(raw: str | None) -> int | None:
    value = parse_number(raw)
    if value is None or not value.is_integer():
        return None
    return int(value)


def format_number(value: float | int) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def split_csv(raw: str | None) -> list[str] | None:
    if not raw:
        return None
    items = [part for part in raw.split(",") if part]
    return items or None


def unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def isoformat_z(dt: datetime) -> str:
    return as_utc(dt).isoformat().replace("+00:00", "Z")
