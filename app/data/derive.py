"""Client-side derivations over fetched rows (distinct values, dates, labels)."""
from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional


# "Engineering, Data Science & Law" -> three values
_MULTI_SPLIT = re.compile(r", | & ")


def unique_sorted(values: Iterable[Any], reverse: bool = False) -> list:
    seen = {v for v in values if v is not None and v != ""}
    return sorted(seen, reverse=reverse)


def split_multi(values: Iterable[Optional[str]]) -> list[str]:
    out: list[str] = []
    for v in values:
        if not v:
            continue
        out.extend(part.strip() for part in _MULTI_SPLIT.split(v))
    return unique_sorted(p for p in out if p)


def column_values(rows: list[dict], column: str) -> list:
    return [r.get(column) for r in rows]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a PostgREST timestamp (ISO 8601, possibly 'Z'-suffixed) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    text = str(value).replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def format_relative_time(timestamp: Any, now: Optional[datetime] = None) -> str:
    ts = parse_timestamp(timestamp)
    if ts is None:
        return ""
    now = now or datetime.now(timezone.utc)
    diff = int((now - ts).total_seconds())
    if diff < 60:
        return f"{max(diff, 0)} seconds ago"
    if diff < 3600:
        return f"{diff // 60} minutes ago"
    if diff < 86400:
        return f"{diff // 3600} hours ago"
    if diff < 604800:
        return f"{diff // 86400} days ago"
    return ts.date().isoformat()


def days_until(deadline: Any, today: Optional[date] = None) -> Optional[int]:
    if deadline is None or deadline == "":
        return None
    today = today or date.today()
    if isinstance(deadline, datetime):
        d = deadline.date()
    elif isinstance(deadline, date):
        d = deadline
    else:
        try:
            d = date.fromisoformat(str(deadline)[:10])
        except ValueError:
            return None
    return (d - today).days
