# app/utils/time.py
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC now, matching how timestamps are stored"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def relative_time(moment: datetime, now: Optional[datetime] = None) -> str:
    """Render a stored timestamp as 'Just now' / 'N minutes ago' / ..."""
    now = now or utcnow()
    minutes = int((now - moment).total_seconds() // 60)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"

    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"

    days = hours // 24
    return f"{days} day{'s' if days > 1 else ''} ago"


def format_duration(seconds: float) -> str:
    """Format elapsed seconds the way history rows show them, e.g. '8m 45s'"""
    total = max(0, int(round(seconds)))
    minutes, secs = divmod(total, 60)
    return f"{minutes}m {secs}s"
