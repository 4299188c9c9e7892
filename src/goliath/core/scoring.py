"""
Exercise XP scoring and the log-workout pipeline.

XP formula (per workout):
    weighted set    : reps × weight × 0.1
    bodyweight set  : reps × 1
    duration        : minutes × 2   (added on top of sets for mixed work)
The total is rounded once, half up.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Sequence

from .bests import best_performance, calculate_personal_best_bonus, update_personal_bests
from .catalog import parse_muscles
from .config import Tuning, get_tuning
from .models import (
    ExerciseBests,
    ExerciseDetails,
    LaggingMuscle,
    MuscleScore,
    UserProfile,
    WorkoutData,
    WorkoutLog,
)
from .muscle_scores import decay_muscle_scores, round_half_up, update_muscle_scores


@dataclass(frozen=True)
class LogResult:
    """Outcome of logging one workout."""

    score: int  # base XP from calculate_exercise_score
    personal_best_bonus: int
    lagging_bonus: int
    updated_muscle_scores: dict[str, MuscleScore]
    updated_personal_bests: dict[str, ExerciseBests]
    log: WorkoutLog
    profile: UserProfile

    @property
    def total_xp_awarded(self) -> int:
        return self.score + self.personal_best_bonus + self.lagging_bonus


def calculate_exercise_score(
    workout: WorkoutData,
    exercise: ExerciseDetails | None = None,
    tuning: Tuning | None = None,
) -> int:
    """
    XP for one logged workout.

    Args:
        workout: Sets and/or duration
        exercise: Informational only; difficulty/category do not change XP

    Returns:
        Non-negative integer XP
    """
    tuning = tuning or get_tuning()
    score = 0.0
    for s in workout.sets:
        if s.weight > 0:
            score += s.reps * s.weight * tuning.xp_per_weighted_rep
        elif s.reps > 0:
            score += s.reps * tuning.xp_per_bodyweight_rep
    if workout.duration:
        score += workout.duration * tuning.xp_per_minute
    return max(0, round_half_up(score))


def calculate_lagging_muscle_bonus(
    exercise: ExerciseDetails,
    lagging: Sequence[LaggingMuscle],
) -> int:
    """Sum of the bonuses of every lagging muscle this exercise works."""
    if not lagging:
        return 0
    worked = set(parse_muscles(exercise))
    return sum(m.bonus for m in lagging if m.muscle in worked)


def log_workout(
    workout: WorkoutData,
    exercise: ExerciseDetails,
    profile: UserProfile,
    now: datetime | None = None,
    lagging: Sequence[LaggingMuscle] = (),
    tuning: Tuning | None = None,
) -> LogResult:
    """
    Score a workout and fold it into a profile snapshot.

    Muscle scores are decayed before the new reps are added.  The
    personal-best bonus is measured against the records as they stood
    before this workout.  The input profile is not modified.

    Args:
        workout: The workout to log
        exercise: Catalog entry of the performed exercise
        profile: Current profile snapshot
        now: Current time scores are decayed to (default: current local time);
             the workout happened at workout.timestamp, or now if unset
        lagging: Current lagging muscles, for the lagging-muscle bonus
        tuning: Optional tunables

    Returns:
        LogResult carrying the updated profile snapshot
    """
    tuning = tuning or get_tuning()
    now = now or datetime.now()
    performed_at = workout.timestamp or now
    reference = max(now, performed_at)

    score = calculate_exercise_score(workout, exercise, tuning)

    decayed = decay_muscle_scores(profile.muscle_scores, reference, tuning)
    muscle_scores = update_muscle_scores(decayed, workout, exercise, performed_at, reference, tuning)

    performance = best_performance(workout)
    pb_bonus = calculate_personal_best_bonus(
        profile.personal_bests, exercise.id, performance, exercise, performed_at, tuning
    )
    personal_bests = update_personal_bests(
        profile.personal_bests, exercise.id, performance, exercise, performed_at, tuning
    )
    lagging_bonus = calculate_lagging_muscle_bonus(exercise, lagging)

    log = WorkoutLog(
        exercise_id=exercise.id,
        timestamp=performed_at,
        sets=list(workout.sets),
        duration=workout.duration,
        distance=workout.distance,
        score=score,
    )
    updated = replace(
        profile,
        muscle_scores=muscle_scores,
        personal_bests=personal_bests,
        total_xp=profile.total_xp + score + pb_bonus + lagging_bonus,
    )

    return LogResult(
        score=score,
        personal_best_bonus=pb_bonus,
        lagging_bonus=lagging_bonus,
        updated_muscle_scores=muscle_scores,
        updated_personal_bests=personal_bests,
        log=log,
        profile=updated,
    )
