"""XP, levels and daily streaks."""

import logging
from datetime import date, datetime, timezone

from .. import database
from ..config import settings
from ..models.stats import UserStats

logger = logging.getLogger(__name__)


def level_for_xp(xp: int) -> int:
    return xp // settings.xp_per_level + 1


def next_streak(current: int, last_active: date | None, today: date) -> int:
    """Streak after a completion today."""
    if last_active is None:
        return 1
    gap = (today - last_active).days
    if gap <= 0:
        return max(current, 1)
    if gap == 1:
        return current + 1
    return 1


def record_completion(user_id: str, today: date | None = None) -> tuple[UserStats, bool]:
    """Award XP for one completed task.

    Returns the new stats and whether the user leveled up.
    """
    today = today or datetime.now(timezone.utc).date()
    stats = database.get_user_stats(user_id)

    xp = stats.xp + settings.xp_per_task
    level = level_for_xp(xp)
    updated = UserStats(
        user_id=user_id,
        xp=xp,
        level=level,
        streak=next_streak(stats.streak, stats.last_active_date, today),
        last_active_date=today,
    )
    database.save_user_stats(updated)

    leveled_up = level > stats.level
    if leveled_up:
        logger.info(f"User {user_id} reached level {level}")
    return updated, leveled_up
