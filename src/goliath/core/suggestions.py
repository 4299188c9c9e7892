"""
Workout suggestion generation and the per-category suggestion cache.

For each lagging muscle, in priority order:
  1. candidates = catalog exercises whose target or secondary muscles
     include the muscle (case-insensitive, trimmed)
  2. category filter: cardio → exercise is cardio; bodyweight/gym → every
     equipment token the exercise needs is in the selected list
  3. drop exercises already chosen in this pass
  4. prefer exercises whose equipment is not used yet in this pass
  5. pick one at random (injectable random.Random)
  6. id = "<exerciseId>-<muscle>"; hidden ids are skipped, not substituted
  7. remember the exercise id and its equipment
At most MAX_SUGGESTIONS (3) are returned.

Suggestions are cached per equipment-category bucket with a 24 h TTL.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Collection, Iterable, Sequence

from .catalog import find_exercise, parse_muscles, split_equipment
from .config import ALL_BUCKETS, CATEGORY_BUCKETS, DEFAULT_BUCKET, Tuning, get_tuning
from .models import (
    ExerciseDetails,
    LaggingMuscle,
    SavedSuggestion,
    UserProfile,
    WorkoutSuggestion,
)

LOGGER = logging.getLogger(__name__)

CATEGORIES: tuple[str, ...] = ("bodyweight", "gym", "cardio", "all")


# ---------------------------------------------------------------------------
# Filtering helpers
# ---------------------------------------------------------------------------


def targets_muscle(exercise: ExerciseDetails, muscle: str) -> bool:
    """True if the exercise works the muscle as target or secondary."""
    return muscle.strip().lower() in parse_muscles(exercise)


def has_all_equipment(exercise_equipment: str | None, selected: Iterable[str]) -> bool:
    """True if every equipment token the exercise needs is selected."""
    required = split_equipment(exercise_equipment)
    if not required:
        return True
    available = {e.strip().lower() for e in selected}
    return all(req in available for req in required)


def matches_category(
    exercise: ExerciseDetails,
    category: str | None,
    selected_equipment: Iterable[str],
) -> bool:
    """Apply the equipment-category filter."""
    if category == "cardio":
        return exercise.is_cardio
    if category in ("bodyweight", "gym"):
        return has_all_equipment(exercise.equipment, selected_equipment)
    return True


def suggestion_id(exercise: ExerciseDetails, muscle: str) -> str:
    return f"{exercise.id}-{muscle}"


def suggestion_reason(lagging: LaggingMuscle) -> str:
    """Human-readable reason shown next to a suggestion."""
    name = " ".join(w.capitalize() for w in lagging.muscle.replace("_", " ").split())
    if lagging.lagging_type == "neverTrained":
        return f"You haven't trained {name} yet!"
    if lagging.lagging_type == "underTrained":
        return f"{name} needs more attention"
    if lagging.lagging_type == "neglected":
        return f"It's been {lagging.days_since_trained} days since you trained {name}"
    return f"Focus on {name}"


def _equipment_key(exercise: ExerciseDetails) -> str:
    return ",".join(split_equipment(exercise.equipment))


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


def generate_suggestions(
    lagging: Sequence[LaggingMuscle],
    catalog: Sequence[ExerciseDetails],
    category: str | None = None,
    selected_equipment: Iterable[str] = (),
    hidden: Collection[str] = (),
    rng: random.Random | None = None,
    now: datetime | None = None,
    pinned: Collection[str] = (),
    favorites: Collection[str] = (),
    keep: Sequence[WorkoutSuggestion] = (),
    exclude_exercise_ids: Collection[str] = (),
    limit: int | None = None,
    tuning: Tuning | None = None,
) -> list[WorkoutSuggestion]:
    """
    Pick one exercise per lagging muscle.

    Args:
        lagging: Lagging muscles, highest priority first
        catalog: Exercise catalog
        category: "bodyweight", "gym", "cardio" or None/"all" for no filter
        selected_equipment: Equipment the user selected for the category
        hidden: Suggestion ids the user has hidden
        rng: Random source (seed it for reproducible picks)
        now: Suggestion timestamp
        pinned: Exercise ids preferred over everything else
        favorites: Exercise ids preferred over regular exercises
        keep: Suggestions already on screen; their exercises/equipment count
              as used and their muscles are not suggested again
        exclude_exercise_ids: Extra exercise ids never to pick
        limit: Maximum new suggestions (default: max_suggestions - len(keep))
        tuning: Optional tunables

    Returns:
        New suggestions (never more than max_suggestions, no repeated
        exercise ids, none whose id is hidden)
    """
    tuning = tuning or get_tuning()
    rng = rng or random.Random()
    now = now or datetime.now()
    selected = list(selected_equipment)
    hidden_ids = set(hidden)
    if limit is None:
        limit = tuning.max_suggestions - len(keep)
    limit = max(0, min(limit, tuning.max_suggestions - len(keep)))

    used_ids: set[str] = {s.exercise.id for s in keep} | set(exclude_exercise_ids)
    used_equipment: set[str] = {_equipment_key(s.exercise) for s in keep if s.exercise.equipment}
    covered = {s.lagging_muscle.muscle for s in keep}
    suggestions: list[WorkoutSuggestion] = []

    for muscle in lagging:
        if len(suggestions) >= limit:
            break
        if muscle.muscle in covered:
            continue

        candidates = [
            e
            for e in catalog
            if targets_muscle(e, muscle.muscle)
            and matches_category(e, category, selected)
            and e.id not in used_ids
        ]
        if not candidates:
            continue

        # hidden preferred exercises fall through to the next tier
        visible = [e for e in candidates if suggestion_id(e, muscle.muscle) not in hidden_ids]
        pool = [e for e in visible if e.id in pinned]
        if not pool:
            pool = [e for e in visible if e.id in favorites]
        if not pool:
            pool = candidates

        fresh = [e for e in pool if _equipment_key(e) not in used_equipment]
        exercise = rng.choice(fresh or pool)

        sid = suggestion_id(exercise, muscle.muscle)
        if sid in hidden_ids:
            continue

        suggestions.append(
            WorkoutSuggestion(
                id=sid,
                exercise=exercise,
                lagging_muscle=muscle,
                reason=suggestion_reason(muscle),
                bonus=muscle.bonus,
                timestamp=now,
            )
        )
        used_ids.add(exercise.id)
        if exercise.equipment:
            used_equipment.add(_equipment_key(exercise))

    return suggestions


def replace_suggestion(
    current: Sequence[WorkoutSuggestion],
    target_id: str,
    lagging: Sequence[LaggingMuscle],
    catalog: Sequence[ExerciseDetails],
    category: str | None = None,
    selected_equipment: Iterable[str] = (),
    hidden: Collection[str] = (),
    rng: random.Random | None = None,
    now: datetime | None = None,
    same_muscle: bool = False,
    tuning: Tuning | None = None,
) -> list[WorkoutSuggestion]:
    """
    Regenerate a single slot, keeping the other suggestions in place.

    With ``same_muscle`` the slot gets another exercise for the same lagging
    muscle (per-suggestion refresh); otherwise the next uncovered lagging
    muscle is used (after a hide).  If nothing qualifies the slot is simply
    dropped.
    """
    index = next((i for i, s in enumerate(current) if s.id == target_id), None)
    if index is None:
        return list(current)

    removed = current[index]
    kept = [s for i, s in enumerate(current) if i != index]
    if same_muscle:
        pool = [removed.lagging_muscle]
        context = [s for s in kept if s.lagging_muscle.muscle != removed.lagging_muscle.muscle]
    else:
        pool = list(lagging)
        context = kept

    new = generate_suggestions(
        pool,
        catalog,
        category=category,
        selected_equipment=selected_equipment,
        hidden=hidden,
        rng=rng,
        now=now,
        keep=context,
        exclude_exercise_ids={removed.exercise.id} | {s.exercise.id for s in kept},
        limit=1,
        tuning=tuning,
    )
    return kept[:index] + new + kept[index:]


# ---------------------------------------------------------------------------
# Per-category cache in the profile document
# ---------------------------------------------------------------------------


def bucket_for(category: str | None) -> str:
    """Profile key of the suggestion bucket for a category."""
    return CATEGORY_BUCKETS.get(category or "", DEFAULT_BUCKET)


def to_saved(suggestion: WorkoutSuggestion) -> SavedSuggestion:
    return SavedSuggestion(
        id=suggestion.id,
        exercise_id=suggestion.exercise.id,
        lagging_muscle=suggestion.lagging_muscle,
        reason=suggestion.reason,
        bonus=suggestion.bonus,
        timestamp=suggestion.timestamp,
    )


def is_fresh(saved: SavedSuggestion, now: datetime, tuning: Tuning | None = None) -> bool:
    tuning = tuning or get_tuning()
    return saved.timestamp > now - timedelta(hours=tuning.suggestion_ttl_hours)


def save_bucket(
    profile: UserProfile,
    category: str | None,
    suggestions: Sequence[WorkoutSuggestion],
) -> UserProfile:
    """Return a profile whose bucket for the category holds the suggestions."""
    buckets = {key: list(profile.workout_suggestions.get(key, [])) for key in ALL_BUCKETS}
    buckets[bucket_for(category)] = [to_saved(s) for s in suggestions]
    return replace(profile, workout_suggestions=buckets)


def load_bucket(
    profile: UserProfile,
    category: str | None,
    catalog: Sequence[ExerciseDetails],
    now: datetime | None = None,
    tuning: Tuning | None = None,
) -> list[WorkoutSuggestion]:
    """
    Rebuild cached suggestions for a category.

    Entries older than the TTL are discarded; entries whose exercise is no
    longer in the catalog are skipped.  An empty result means "regenerate".
    """
    now = now or datetime.now()
    saved = profile.workout_suggestions.get(bucket_for(category), [])
    fresh = [s for s in saved if is_fresh(s, now, tuning)]
    if len(fresh) < len(saved):
        LOGGER.info(
            "discarded %d stale suggestion(s) from %s",
            len(saved) - len(fresh),
            bucket_for(category),
        )

    rebuilt: list[WorkoutSuggestion] = []
    for s in fresh:
        exercise = find_exercise(catalog, s.exercise_id)
        if exercise is None:
            LOGGER.info("saved suggestion %s refers to unknown exercise %s", s.id, s.exercise_id)
            continue
        rebuilt.append(
            WorkoutSuggestion(
                id=s.id,
                exercise=exercise,
                lagging_muscle=s.lagging_muscle,
                reason=s.reason,
                bonus=s.bonus,
                timestamp=s.timestamp,
            )
        )
    return rebuilt


# ---------------------------------------------------------------------------
# In-flight regeneration tracking (last request wins)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegenerationTicket:
    category: str
    sequence: int


class RegenerationTracker:
    """
    Tracks in-flight suggestion regenerations per category.

    A newer begin() supersedes any older ticket for the same category; the
    older result must then be dropped instead of committed.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: dict[str, int] = {}
        self._in_flight: set[str] = set()
        self._counter = 0

    def begin(self, category: str | None) -> RegenerationTicket:
        key = bucket_for(category)
        with self._lock:
            self._counter += 1
            if key in self._in_flight:
                LOGGER.debug("regeneration for %s superseded", key)
            self._latest[key] = self._counter
            self._in_flight.add(key)
            return RegenerationTicket(key, self._counter)

    def commit(self, ticket: RegenerationTicket) -> bool:
        """Mark the ticket done; False if it was superseded (drop its result)."""
        with self._lock:
            if self._latest.get(ticket.category) != ticket.sequence:
                return False
            self._in_flight.discard(ticket.category)
            return True
