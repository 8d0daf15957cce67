from datetime import datetime, timezone
from typing import Optional


def freshness_score(updated_at: Optional[str], now: Optional[datetime] = None) -> float:
    try:
        updated = datetime.fromisoformat((updated_at or "").replace("Z", "+00:00")).astimezone(timezone.utc)
    except ValueError:
        return 0.2
    days = ((now or datetime.now(timezone.utc)) - updated).days
    if days <= 7:
        return 1.0
    if days <= 30:
        return 0.9
    if days <= 90:
        return 0.75
    if days <= 180:
        return 0.6
    if days <= 1825:
        return 0.5
    return 0.3


def is_recent(updated_at: Optional[str], now: Optional[datetime] = None) -> bool:
    """Updated within the last 90 days."""
    return freshness_score(updated_at, now) >= 0.75


def popularity_bonus(stars: int, forks: int, description: Optional[str]) -> float:
    """Score bump for well-known, documented repositories."""
    bonus = 0.0
    if stars >= 100:
        bonus += 0.1
    if stars >= 1000:
        bonus += 0.1
    if forks >= 50:
        bonus += 0.05
    if len(description or "") >= 50:
        bonus += 0.05
    return bonus
