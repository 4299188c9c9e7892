"""
Per-muscle rolling score windows and their calendar-day decay.

Every muscle carries three cumulative rep counters (today, 3day, 7day) and a
last-update timestamp.  Logging a workout adds its total reps to all three
windows of every muscle the exercise works.  Decay is lazy: it is applied on
read by comparing calendar dates, never by a timer.

    days = date(now) - date(last_updated)
    days >= 1  → today = 0
    days >= 3  → 3day  = 0
    days >= 7  → 7day  = 0

All functions are pure; they return new dicts and never mutate their input.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Mapping

from .catalog import parse_muscles
from .config import Tuning, get_tuning
from .models import ExerciseDetails, MuscleScore, WorkoutData

LOGGER = logging.getLogger(__name__)

MuscleScores = dict[str, MuscleScore]


def total_reps(workout: WorkoutData) -> int:
    """Sum of reps across all sets (0 for duration-only workouts)."""
    return sum(s.reps for s in workout.sets)


def calendar_days_between(earlier: datetime, later: datetime) -> int:
    """Calendar-day difference (midnight to midnight), ignoring time of day."""
    return (later.date() - earlier.date()).days


def update_muscle_scores(
    scores: Mapping[str, MuscleScore],
    workout: WorkoutData,
    exercise: ExerciseDetails,
    now: datetime | None = None,
    reference: datetime | None = None,
    tuning: Tuning | None = None,
) -> MuscleScores:
    """
    Add a workout's total reps to the windows of every muscle it works.

    A backdated workout only counts toward the windows its calendar day
    still falls inside, measured against ``reference``, and never moves
    ``last_updated`` backwards.

    Args:
        scores: Existing muscle scores, already decayed to ``reference``
        workout: Logged workout
        exercise: Catalog entry providing target/secondary muscles
        now: When the workout was performed (default: current local time)
        reference: Current time the scores are decayed to (default: ``now``)
        tuning: Optional tunables

    Returns:
        New score map; touched muscles get ``last_updated = max(old, now)``
    """
    now = now or datetime.now()
    reference = max(reference or now, now)
    tuning = tuning or get_tuning()
    reps = total_reps(workout)
    days_ago = calendar_days_between(now, reference)
    in_today = days_ago < tuning.decay_today_days
    in_three_day = days_ago < tuning.decay_3day_days
    in_seven_day = days_ago < tuning.decay_7day_days
    updated: MuscleScores = dict(scores)

    for name in parse_muscles(exercise):
        current = updated.get(name) or MuscleScore()
        last = current.last_updated
        updated[name] = MuscleScore(
            today=current.today + (reps if in_today else 0),
            three_day=current.three_day + (reps if in_three_day else 0),
            seven_day=current.seven_day + (reps if in_seven_day else 0),
            last_updated=now if last is None or now > last else last,
        )

    return updated


def decay_score(
    score: MuscleScore,
    now: datetime,
    tuning: Tuning | None = None,
) -> MuscleScore:
    """Apply calendar-day decay to a single muscle score."""
    if score.last_updated is None:
        return score
    tuning = tuning or get_tuning()
    days = calendar_days_between(score.last_updated, now)

    today, three_day, seven_day = score.today, score.three_day, score.seven_day
    if days >= tuning.decay_today_days:
        today = 0
    if days >= tuning.decay_3day_days:
        three_day = 0
    if days >= tuning.decay_7day_days:
        seven_day = 0

    if (today, three_day, seven_day) == (score.today, score.three_day, score.seven_day):
        return score
    return replace(score, today=today, three_day=three_day, seven_day=seven_day)


def decay_muscle_scores(
    scores: Mapping[str, MuscleScore],
    now: datetime | None = None,
    tuning: Tuning | None = None,
) -> MuscleScores:
    """
    Decay every muscle's windows based on calendar days since last update.

    ``last_updated`` is left untouched, so calling this twice on the same
    calendar day gives the same result as calling it once.
    """
    now = now or datetime.now()
    decayed: MuscleScores = {}
    changed = 0
    for name, score in scores.items():
        decayed[name] = decay_score(score, now, tuning)
        if decayed[name] is not score:
            changed += 1
    if changed:
        LOGGER.debug("decayed %d muscle score(s) as of %s", changed, now.date())
    return decayed


def needs_decay(scores: Mapping[str, MuscleScore], now: datetime | None = None) -> bool:
    """True if any muscle was last updated on a different calendar day."""
    now = now or datetime.now()
    return any(
        s.last_updated is not None and s.last_updated.date() != now.date()
        for s in scores.values()
    )


def weighted_score(score: MuscleScore | None, tuning: Tuning | None = None) -> float:
    """
    Composite recency score in [0, 1].

        min(today,60)/60 × 1.0 + min(3day,120)/120 × 0.5 + min(7day,500)/500 × 0.1

    Caps keep a single muscle from dominating the scale.
    """
    if score is None:
        return 0.0
    tuning = tuning or get_tuning()
    cap_t, cap_3, cap_7 = tuning.composite_caps
    w_t, w_3, w_7 = tuning.composite_weights
    value = (
        min(score.today, cap_t) / cap_t * w_t
        + min(score.three_day, cap_3) / cap_3 * w_3
        + min(score.seven_day, cap_7) / cap_7 * w_7
    )
    return max(0.0, min(1.0, value))


def raw_weighted_score(score: MuscleScore | None, tuning: Tuning | None = None) -> int:
    """Uncapped weighted rep sum: round(today + 0.5·3day + 0.1·7day)."""
    if score is None:
        return 0
    tuning = tuning or get_tuning()
    w_t, w_3, w_7 = tuning.composite_weights
    return round_half_up(score.today * w_t + score.three_day * w_3 + score.seven_day * w_7)


def round_half_up(value: float) -> int:
    """Round half away from zero (2.5 → 3, not 2)."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def migrate_legacy_scores(
    legacy: Mapping[str, float | int],
    now: datetime | None = None,
) -> MuscleScores:
    """
    Convert the legacy scalar ``{muscle: number}`` map to windowed scores.

    The scalar total has no recency information, so it lands in the 7-day
    window only and decays away with it.
    """
    now = now or datetime.now()
    migrated: MuscleScores = {}
    for muscle, value in legacy.items():
        name = str(muscle).strip().lower()
        if not name:
            continue
        migrated[name] = MuscleScore(seven_day=int(value or 0), last_updated=now)
    return migrated
