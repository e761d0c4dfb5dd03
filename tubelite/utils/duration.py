from __future__ import annotations

import re
from typing import Optional

_DURATION_RE = re.compile(r"^(?:(\d+):)?([0-5]?\d):([0-5]\d)$")


def parse_duration(value: Optional[str]) -> Optional[int]:
    """Parse ``H:MM:SS`` or ``MM:SS`` into seconds; ``None`` when malformed."""
    if not value:
        return None
    match = _DURATION_RE.match(value.strip())
    if match is None:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours or 0) * 3600 + int(minutes) * 60 + int(seconds)


def format_duration(total_seconds: int) -> str:
    hours, remainder = divmod(max(0, total_seconds), 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"
