"""Gamification stats endpoint."""

from fastapi import APIRouter, Depends

from .. import database
from ..dependencies import current_user_id
from ..models.stats import UserStats

router = APIRouter(tags=["stats"])


@router.get("/stats", response_model=UserStats)
def get_stats(user_id: str = Depends(current_user_id)) -> UserStats:
    """XP, level and streak for the caller."""
    return database.get_user_stats(user_id)
