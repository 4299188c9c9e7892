"""
Lagging-muscle analysis.

Every muscle named as a target or secondary muscle anywhere in the catalog
is classified into exactly one of:

    lifetime == 0                    → neverTrained  (bonus 100, base 1000)
    lifetime < 100                   → underTrained  (bonus 50,  base 500)
    no activity in trailing 14 days  → neglected     (bonus 25,  base 100)
    otherwise                        → not lagging

priority = base + days_since_trained; the result is sorted by priority
descending, so never-trained muscles always outrank the rest.

Two sources for "lifetime":
  * with a workout-log stream: the explicit lifetime rep total from the logs,
    recency from the newest log touching the muscle;
  * without logs: the decayed weighted window sum of the muscle score,
    recency from its last_updated.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Literal, Mapping, Sequence

from .catalog import parse_muscles
from .config import Tuning, get_tuning
from .models import ExerciseDetails, LaggingMuscle, LaggingType, MuscleScore, WorkoutLog
from .muscle_scores import calendar_days_between, decay_score, raw_weighted_score

Period = Literal["today", "3day", "7day", "14day", "30day", "lifetime"]

PERIOD_DAYS: dict[str, int] = {"3day": 3, "7day": 7, "14day": 14, "30day": 30}


def all_muscles(catalog: Sequence[ExerciseDetails]) -> list[str]:
    """Sorted set of every normalized muscle name in the catalog."""
    names: set[str] = set()
    for exercise in catalog:
        names.update(parse_muscles(exercise))
    return sorted(names)


def _in_period(ts: datetime, period: str, now: datetime) -> bool:
    if period == "lifetime":
        return ts <= now
    if period == "today":
        return ts.date() == now.date() and ts <= now
    days = PERIOD_DAYS.get(period)
    if days is None:
        raise ValueError(f"Unknown period '{period}'")
    return now - timedelta(days=days) <= ts <= now


def _muscles_by_exercise(catalog: Sequence[ExerciseDetails]) -> dict[str, set[str]]:
    return {e.id: set(parse_muscles(e)) for e in catalog}


def muscle_reps_for_period(
    logs: Sequence[WorkoutLog],
    catalog: Sequence[ExerciseDetails],
    muscle: str,
    period: Period = "lifetime",
    now: datetime | None = None,
) -> int:
    """
    Total reps logged for a muscle within a period.

    Logs whose exercise is missing from the catalog are ignored.
    """
    now = now or datetime.now()
    name = muscle.strip().lower()
    worked = _muscles_by_exercise(catalog)
    return sum(
        log.total_reps
        for log in logs
        if name in worked.get(log.exercise_id, ()) and _in_period(log.timestamp, period, now)
    )


def last_trained(
    logs: Sequence[WorkoutLog],
    catalog: Sequence[ExerciseDetails],
    muscle: str,
) -> datetime | None:
    """Timestamp of the newest log that worked the muscle, or None."""
    name = muscle.strip().lower()
    worked = _muscles_by_exercise(catalog)
    dates = [log.timestamp for log in logs if name in worked.get(log.exercise_id, ())]
    return max(dates) if dates else None


def classify_muscle(
    lifetime_reps: int,
    trained_recently: bool,
    tuning: Tuning | None = None,
) -> LaggingType | None:
    """Map a muscle's state to its lagging type, or None if it is not lagging."""
    tuning = tuning or get_tuning()
    if lifetime_reps == 0:
        return "neverTrained"
    if lifetime_reps < tuning.under_trained_threshold:
        return "underTrained"
    if not trained_recently:
        return "neglected"
    return None


def get_lagging_muscles(
    scores: Mapping[str, MuscleScore],
    catalog: Sequence[ExerciseDetails],
    logs: Sequence[WorkoutLog] | None = None,
    now: datetime | None = None,
    tuning: Tuning | None = None,
) -> list[LaggingMuscle]:
    """
    Rank the catalog's muscles that need attention.

    Args:
        scores: Muscle scores (decayed here before use)
        catalog: Exercise catalog; defines the muscle universe
        logs: Optional workout-log stream; switches to the log-based lifetime
        now: Reference time (default: current local time)
        tuning: Optional tunables

    Returns:
        LaggingMuscle list sorted by priority descending, then name
    """
    now = now or datetime.now()
    tuning = tuning or get_tuning()
    cutoff = now - timedelta(days=tuning.neglected_days)
    result: list[LaggingMuscle] = []

    for muscle in all_muscles(catalog):
        if logs is not None:
            lifetime = muscle_reps_for_period(logs, catalog, muscle, "lifetime", now)
            last = last_trained(logs, catalog, muscle)
        else:
            score = scores.get(muscle)
            if score is not None:
                score = decay_score(score, now, tuning)
            lifetime = raw_weighted_score(score, tuning)
            last = score.last_updated if score is not None else None

        trained_recently = last is not None and last >= cutoff
        lagging_type = classify_muscle(lifetime, trained_recently, tuning)
        if lagging_type is None:
            continue

        if last is None:
            days_since = tuning.neglected_days
        else:
            days_since = max(0, calendar_days_between(last, now))

        result.append(
            LaggingMuscle(
                muscle=muscle,
                reps=lifetime,
                lagging_type=lagging_type,
                bonus=tuning.lagging_bonus[lagging_type],
                days_since_trained=days_since,
                priority=tuning.lagging_base_priority[lagging_type] + days_since,
            )
        )

    result.sort(key=lambda m: (-m.priority, m.muscle))
    return result
