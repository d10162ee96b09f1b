"""Gamification stats."""

from datetime import date

from pydantic import BaseModel, Field


class UserStats(BaseModel):
    """XP, level and daily streak for a user."""

    user_id: str
    xp: int = Field(0, ge=0)
    level: int = Field(1, ge=1)
    streak: int = Field(0, ge=0)
    last_active_date: date | None = None
