"""Text and date helpers shared by the fetchers and the context builder."""

from __future__ import annotations

import math
from datetime import date, datetime, timezone

ELLIPSIS = "..."


def truncate_text(text: str | None, limit: int) -> str:
    """Clip text to ``limit`` characters, marking the cut with an ellipsis."""
    value = (text or "").strip()
    if limit <= 0:
        return ""
    if len(value) <= limit:
        return value
    return value[:limit].rstrip() + ELLIPSIS


def parse_timestamp(value: object) -> datetime | None:
    """Parse provider timestamps (ISO-8601, ``YYYY-MM-DD HH:MM:SS`` or epoch ms) as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if value > 10_000_000_000 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        candidate = value.strip()
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: object) -> date | None:
    parsed = parse_timestamp(value)
    return parsed.date() if parsed else None


def format_relative_date(value: datetime | None, *, now: datetime | None = None) -> str:
    """Render a timestamp as "3 days ago", "2 weeks ago" or "Mar 4"."""
    if value is None:
        return "Recently"
    reference = now or datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    diff_days = math.ceil(abs((reference - value).total_seconds()) / 86400)
    if diff_days == 1:
        return "1 day ago"
    if diff_days < 7:
        return f"{diff_days} days ago"
    if diff_days < 30:
        return f"{math.ceil(diff_days / 7)} weeks ago"
    return f"{value.strftime('%b')} {value.day}"
