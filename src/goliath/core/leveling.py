"""
XP → level conversion and workout streak bonuses.

Level curve: reaching level n (n > 1) takes round(1000 × 1.15^(n-1)) total XP.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Sequence

from .config import DAILY_STREAK_BONUS, LEVEL_TITLES, WEEKLY_STREAK_BONUS, Tuning, get_tuning
from .models import WorkoutLog
from .muscle_scores import round_half_up


@dataclass(frozen=True)
class LevelInfo:
    level: int
    current_level_xp: int  # XP at which this level started
    next_level_xp: int
    progress: float  # percent within the level, 2 decimals
    xp_to_next: int
    title: str


@dataclass(frozen=True)
class StreakInfo:
    daily_streak: int
    weekly_streak: int
    daily_bonus: int
    weekly_bonus: int


def xp_for_level(level: int, tuning: Tuning | None = None) -> int:
    """Total XP needed to reach a level."""
    if level <= 1:
        return 0
    tuning = tuning or get_tuning()
    return round_half_up(tuning.level_base_xp * tuning.level_scaling ** (level - 1))


def level_title(level: int) -> str:
    """Title of the highest threshold at or below the level."""
    reached = [lvl for lvl in LEVEL_TITLES if lvl <= level]
    return LEVEL_TITLES[max(reached)] if reached else LEVEL_TITLES[1]


def level_from_xp(total_xp: int, tuning: Tuning | None = None) -> LevelInfo:
    level = 1
    while total_xp >= xp_for_level(level + 1, tuning):
        level += 1

    start = xp_for_level(level, tuning)
    nxt = xp_for_level(level + 1, tuning)
    span = nxt - start
    progress = (total_xp - start) / span * 100 if span > 0 else 0.0
    return LevelInfo(
        level=level,
        current_level_xp=start,
        next_level_xp=nxt,
        progress=round(progress, 2),
        xp_to_next=nxt - total_xp,
        title=level_title(level),
    )


def _tier_bonus(streak: int, table: dict[int, int]) -> int:
    for threshold in sorted(table, reverse=True):
        if streak >= threshold:
            return table[threshold]
    return 0


def streaks(logs: Sequence[WorkoutLog], now: datetime | None = None) -> StreakInfo:
    """
    Consecutive-day and consecutive-week streaks ending today.

    Weeks start on Sunday.
    """
    now = now or datetime.now()
    days: set[date] = {log.timestamp.date() for log in logs}
    if not days:
        return StreakInfo(0, 0, 0, 0)

    daily = 0
    cursor = now.date()
    while cursor in days:
        daily += 1
        cursor -= timedelta(days=1)

    def week_start(d: date) -> date:
        return d - timedelta(days=(d.weekday() + 1) % 7)

    weeks = {week_start(d) for d in days}
    weekly = 0
    cursor = week_start(now.date())
    while cursor in weeks:
        weekly += 1
        cursor -= timedelta(days=7)

    return StreakInfo(
        daily_streak=daily,
        weekly_streak=weekly,
        daily_bonus=_tier_bonus(daily, DAILY_STREAK_BONUS),
        weekly_bonus=_tier_bonus(weekly, WEEKLY_STREAK_BONUS),
    )
