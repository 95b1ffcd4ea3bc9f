"""Date normalizer: loose ``D. M. YYYY at H:MM`` strings and ISO-8601.

Every due date stored on a task goes through :func:`normalize_due`, which
returns either an ISO-8601 string or ``None``.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

LOOSE_DATE_RE = re.compile(
    r"^(\d{1,2})\.\s*(\d{1,2})\.\s*(\d{4})(?:\s+at\s+(\d{1,2}):(\d{2}))?$",
    re.IGNORECASE,
)

NO_DATE_LABEL = "No date"


def _parse_loose(raw: str) -> datetime | None:
    match = LOOSE_DATE_RE.match(raw)
    if not match:
        return None
    day, month, year, hour, minute = match.groups()
    try:
        return datetime(
            int(year),
            int(month),
            int(day),
            int(hour) if hour else 0,
            int(minute) if minute else 0,
        )
    except ValueError:
        # 31. 2. 2025 and friends
        return None


def _parse_iso(raw: str) -> datetime | None:
    candidate = raw
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None


def parse_date(value: str | None) -> datetime | None:
    """Parse a loose or ISO date string. Returns ``None`` when it can't."""
    if not value or not isinstance(value, str):
        return None
    raw = value.strip()
    if not raw:
        return None
    return _parse_loose(raw) or _parse_iso(raw)


def normalize_due(value: object) -> str | None:
    """Return the storable ISO form of *value*, or ``None`` for no deadline."""
    if not isinstance(value, str):
        return None
    parsed = parse_date(value)
    if parsed is None:
        return None
    return parsed.isoformat()


def format_date(value: str | None) -> str:
    """Human readable rendering used by the CLI and Markdown export."""
    if not value or not value.strip():
        return NO_DATE_LABEL
    parsed = parse_date(value)
    if parsed is None:
        return value
    return parsed.strftime("%d %b %Y, %H:%M")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
