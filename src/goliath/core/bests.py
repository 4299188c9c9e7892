"""
Personal-best tracking per exercise over four horizons.

Horizons: current (trailing 30 d), quarter (90 d), year (365 d), allTime.
Each horizon is checked independently on every log and its record replaced
iff the new value beats it or no (unexpired) record exists.

Value precedence (first match wins):
    distance + duration  → pace = duration / distance   (lower is better)
    duration only        → minutes
    reps only            → reps
    weight + reps        → Epley 1RM = weight × (1 + reps / 30)
    weight, reps == 1    → Epley as well (weight × 31/30)
    otherwise            → 0 / unknown
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Mapping

from .config import EPLEY_DIVISOR, Tuning, get_tuning
from .models import (
    HORIZONS,
    BestType,
    ExerciseBests,
    ExerciseDetails,
    PersonalBest,
    SetEntry,
    WorkoutData,
)


@dataclass(frozen=True)
class ExerciseValue:
    """Comparable value extracted from one performance."""

    value: float
    type: BestType
    unit: str


@dataclass(frozen=True)
class Performance:
    """Single-performance input for value extraction (one set or one bout)."""

    weight: float = 0.0
    reps: int = 0
    duration: float = 0.0
    distance: float = 0.0


def epley_one_rep_max(weight: float, reps: int) -> float:
    """Estimated 1RM via Epley: weight × (1 + reps / 30)."""
    return weight * (1 + reps / EPLEY_DIVISOR)


def calculate_exercise_value(
    data: Performance,
    exercise: ExerciseDetails | None = None,
) -> ExerciseValue:
    """
    Extract the comparable value for a performance.

    ``exercise`` is informational only; the data shape decides the type.
    """
    weight, reps, duration, distance = data.weight, data.reps, data.duration, data.distance

    if distance and duration:
        return ExerciseValue(duration / distance, "pace", "min/unit")
    if duration and not weight and not reps:
        return ExerciseValue(duration, "duration", "minutes")
    if reps and not weight:
        return ExerciseValue(float(reps), "reps", "reps")
    if weight and reps:
        # reps == 1 lands here too; Epley gives weight × 31/30 for a single
        return ExerciseValue(epley_one_rep_max(weight, reps), "1rm", "lbs")
    return ExerciseValue(0.0, "unknown", "unknown")


def best_performance(workout: WorkoutData) -> Performance:
    """
    Reduce a workout to the single performance compared against bests.

    Sets are ranked by Epley 1RM, falling back to reps for bodyweight sets.
    Duration/distance come from the workout itself.
    """
    best: SetEntry | None = None
    best_key: tuple[float, int] = (-1.0, -1)
    for s in workout.sets:
        key = (epley_one_rep_max(s.weight, s.reps), s.reps)
        if key > best_key:
            best, best_key = s, key

    duration = workout.duration or 0.0
    distance = workout.distance or 0.0
    if best is None:
        return Performance(duration=duration, distance=distance)
    # a set-based log with a duration would otherwise turn into "pace"
    return Performance(
        weight=best.weight,
        reps=best.reps,
        duration=duration if distance else 0.0,
        distance=distance,
    )


def _is_better(new: ExerciseValue, old: PersonalBest) -> bool:
    if new.type == "pace" and old.type == "pace":
        return new.value < old.value
    return new.value > old.value


def _active_record(
    bests: ExerciseBests,
    horizon: str,
    now: datetime,
    tuning: Tuning,
) -> PersonalBest | None:
    """The stored record for a horizon, or None if absent or aged out."""
    record = bests.get(horizon)
    if record is None:
        return None
    days = tuning.pb_horizon_days.get(horizon)
    if days is not None and record.date < now - timedelta(days=days):
        return None
    return record


def update_personal_bests(
    bests: Mapping[str, ExerciseBests],
    exercise_id: str,
    data: Performance,
    exercise: ExerciseDetails | None = None,
    now: datetime | None = None,
    tuning: Tuning | None = None,
) -> dict[str, ExerciseBests]:
    """
    Return a new bests map with every beaten (or absent) horizon replaced.

    A zero/unknown value never updates anything.
    """
    now = now or datetime.now()
    tuning = tuning or get_tuning()
    new_value = calculate_exercise_value(data, exercise)
    if new_value.value == 0:
        return dict(bests)

    current = bests.get(exercise_id) or ExerciseBests()
    updated = replace(current)
    changed = False
    for horizon in HORIZONS:
        record = _active_record(current, horizon, now, tuning)
        if record is None or _is_better(new_value, record):
            updated.set(
                horizon,
                PersonalBest(new_value.value, new_value.type, new_value.unit, now),
            )
            changed = True

    result = dict(bests)
    if changed:
        result[exercise_id] = updated
    return result


def calculate_personal_best_bonus(
    bests: Mapping[str, ExerciseBests],
    exercise_id: str,
    data: Performance,
    exercise: ExerciseDetails | None = None,
    now: datetime | None = None,
    tuning: Tuning | None = None,
) -> int:
    """
    XP bonus for beating existing records: +50 current, +150 quarter,
    +200 year, +300 allTime, additive.  Absent horizons give nothing.
    """
    now = now or datetime.now()
    tuning = tuning or get_tuning()
    new_value = calculate_exercise_value(data, exercise)
    if new_value.value == 0:
        return 0

    current = bests.get(exercise_id)
    if current is None:
        return 0

    bonus = 0
    for horizon in HORIZONS:
        record = _active_record(current, horizon, now, tuning)
        if record is not None and _is_better(new_value, record):
            bonus += tuning.pb_bonus.get(horizon, 0)
    return bonus
