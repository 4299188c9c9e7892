"""
TrainerSession: one user's view of the engine.

Wires a profile repository, the exercise catalog and the workout-log stream
to the pure engine functions in goliath.core.  The engine never touches
storage; every mutation here is a read-modify-write through
ProfileRepository.update(), so concurrent sessions on the same profile
cannot overspend quotas or lose a logged workout.
"""

import logging
import random
import time
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable, Sequence

from .core import quota
from .core.catalog import find_exercise
from .core.config import Tuning, get_tuning
from .core.lagging import get_lagging_muscles
from .core.leveling import LevelInfo, StreakInfo, level_from_xp, streaks
from .core.models import (
    TIERS,
    ExerciseBests,
    ExerciseDetails,
    LaggingMuscle,
    UserProfile,
    WorkoutData,
    WorkoutLog,
    WorkoutSuggestion,
)
from .core.scoring import LogResult, log_workout
from .core.suggestions import (
    RegenerationTracker,
    generate_suggestions,
    load_bucket,
    replace_suggestion,
    save_bucket,
)
from .io.log_store import WorkoutLogStore
from .io.pending import PendingWrite
from .io.profile_store import ProfileRepository
from .io.serializers import ValidationError, default_subscription

LOGGER = logging.getLogger(__name__)


class TrainerSession:
    """
    Args:
        repository: Profile persistence
        user_id: Profile owner
        catalog: Read-only exercise catalog
        log_store: Workout-log stream; when given, lagging analysis uses
                   lifetime reps from the logs
        rng: Random source for suggestion picks
        clock: Returns the current local time
        pacing: Called with the regeneration delay before results are
                committed (time.sleep by default; pass a no-op to skip)
        tuning: Optional tunables
    """

    def __init__(
        self,
        repository: ProfileRepository,
        user_id: str,
        catalog: Sequence[ExerciseDetails],
        log_store: WorkoutLogStore | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
        pacing: Callable[[float], None] | None = None,
        tuning: Tuning | None = None,
    ):
        self.repository = repository
        self.user_id = user_id
        self.catalog = list(catalog)
        self.log_store = log_store
        self.rng = rng or random.Random()
        self.clock = clock or datetime.now
        self.pacing = pacing if pacing is not None else time.sleep
        self.tuning = tuning or get_tuning()
        self.tracker = RegenerationTracker()
        self.pending: PendingWrite[UserProfile] | None = None

    # -- reads ---------------------------------------------------------------

    def profile(self) -> UserProfile:
        """Current profile snapshot, decayed as of now."""
        return self.repository.get(self.user_id, self.clock())

    def logs(self) -> list[WorkoutLog]:
        return self.log_store.load_logs() if self.log_store is not None else []

    def _lagging_for(self, profile: UserProfile, logs: Sequence[WorkoutLog] | None) -> list[LaggingMuscle]:
        return get_lagging_muscles(
            profile.muscle_scores, self.catalog, logs, self.clock(), self.tuning
        )

    def _log_stream(self) -> list[WorkoutLog] | None:
        return self.logs() if self.log_store is not None else None

    def lagging_muscles(self) -> list[LaggingMuscle]:
        return self._lagging_for(self.profile(), self._log_stream())

    def personal_bests(self) -> dict[str, ExerciseBests]:
        return self.profile().personal_bests

    def quota_status(self) -> dict[str, quota.QuotaDecision]:
        profile = self.profile()
        now = self.clock()
        return {
            kind: quota.check(profile, kind, now, self.tuning)  # type: ignore[arg-type]
            for kind in ("hide", "refresh")
        }

    def level(self) -> LevelInfo:
        return level_from_xp(self.profile().total_xp, self.tuning)

    def streaks(self) -> StreakInfo:
        return streaks(self.logs(), self.clock())

    def _exercise(self, exercise_id: str) -> ExerciseDetails:
        exercise = find_exercise(self.catalog, exercise_id)
        if exercise is None:
            raise ValidationError(f"Unknown exercise: {exercise_id!r}")
        return exercise

    # -- logging -------------------------------------------------------------

    def log_workout(self, exercise_id: str, workout: WorkoutData) -> LogResult:
        """
        Score a workout, update the profile and append it to the log stream.

        Raises:
            ValidationError: If the exercise is not in the catalog
            ConflictError: If the profile could not be written
        """
        exercise = self._exercise(exercise_id)
        now = self.clock()
        logs = self._log_stream()

        def apply(profile: UserProfile) -> tuple[LogResult, UserProfile]:
            lagging = self._lagging_for(profile, logs)
            result = log_workout(workout, exercise, profile, now, lagging, self.tuning)
            return result, result.profile

        snapshot = self.profile()
        optimistic, _ = apply(snapshot)
        self.pending = PendingWrite(snapshot)

        outcome: dict[str, LogResult] = {}

        def persist(_: UserProfile) -> UserProfile:
            result, saved = self.repository.update(self.user_id, apply, now)
            outcome["result"] = result
            return saved

        saved = self.pending.run(optimistic.profile, persist)
        result = replace(outcome["result"], profile=saved)
        if self.log_store is not None:
            self.log_store.append(result.log)
        LOGGER.info(
            "logged %s for %s: %d XP (+%d PB, +%d lagging)",
            exercise.id,
            self.user_id,
            result.score,
            result.personal_best_bonus,
            result.lagging_bonus,
        )
        return result

    # -- suggestions -----------------------------------------------------------

    def _generate(self, profile: UserProfile, category: str | None, equipment: Iterable[str]) -> list[WorkoutSuggestion]:
        return generate_suggestions(
            self._lagging_for(profile, self._log_stream()),
            self.catalog,
            category=category,
            selected_equipment=equipment,
            hidden=profile.hidden_exercises,
            rng=self.rng,
            now=self.clock(),
            pinned=profile.pinned_exercises,
            favorites=profile.favorite_exercises,
            tuning=self.tuning,
        )

    def _regenerate(self, category: str | None, equipment: Sequence[str]) -> list[WorkoutSuggestion] | None:
        """
        Build a new suggestion set and commit it to the category's bucket.

        Returns None when a newer regeneration for the same category
        superseded this one; its result is dropped.
        """
        ticket = self.tracker.begin(category)
        suggestions = self._generate(self.profile(), category, equipment)
        self.pacing(self.tuning.regeneration_delay_seconds)
        if not self.tracker.commit(ticket):
            LOGGER.info("dropped superseded suggestions for %s", ticket.category)
            return None

        self.repository.update(
            self.user_id,
            lambda p: (None, save_bucket(p, category, suggestions)),
            self.clock(),
        )
        return suggestions

    def suggestions(self, category: str | None = None, equipment: Sequence[str] = ()) -> list[WorkoutSuggestion]:
        """Cached suggestions for the category, regenerated when empty or stale."""
        cached = load_bucket(self.profile(), category, self.catalog, self.clock(), self.tuning)
        if cached:
            return cached
        return self._regenerate(category, equipment) or []

    def refresh(
        self, category: str | None = None, equipment: Sequence[str] = ()
    ) -> tuple[quota.QuotaDecision, list[WorkoutSuggestion]]:
        """
        Discard the category's cache and regenerate, if the refresh quota allows.

        A rejected refresh returns the current suggestions unchanged.
        """
        now = self.clock()
        decision, profile = self.repository.update(
            self.user_id, lambda p: quota.record(p, "refresh", now, self.tuning), now
        )
        if not decision.allowed:
            return decision, load_bucket(profile, category, self.catalog, now, self.tuning)
        return decision, self._regenerate(category, equipment) or []

    def hide(
        self,
        suggestion_id: str,
        category: str | None = None,
        equipment: Sequence[str] = (),
    ) -> tuple[quota.QuotaDecision, list[WorkoutSuggestion]]:
        """
        Permanently hide a suggestion and regenerate its slot.

        Quota check, hidden-list update and slot regeneration are committed
        in one compare-and-swap write.
        """
        now = self.clock()
        logs = self._log_stream()

        def apply(profile: UserProfile) -> tuple[quota.QuotaDecision, UserProfile]:
            decision, profile = quota.record(profile, "hide", now, self.tuning)
            if not decision.allowed:
                return decision, profile
            hidden = list(profile.hidden_exercises)
            if suggestion_id not in hidden:
                hidden.append(suggestion_id)
            profile = replace(profile, hidden_exercises=hidden)

            current = load_bucket(profile, category, self.catalog, now, self.tuning)
            updated = replace_suggestion(
                current,
                suggestion_id,
                self._lagging_for(profile, logs),
                self.catalog,
                category=category,
                selected_equipment=equipment,
                hidden=hidden,
                rng=self.rng,
                now=now,
                tuning=self.tuning,
            )
            return decision, save_bucket(profile, category, updated)

        decision, profile = self.repository.update(self.user_id, apply, now)
        return decision, load_bucket(profile, category, self.catalog, now, self.tuning)

    def refresh_one(
        self,
        suggestion_id: str,
        category: str | None = None,
        equipment: Sequence[str] = (),
    ) -> tuple[quota.QuotaDecision, list[WorkoutSuggestion]]:
        """Swap one suggestion for another exercise for the same muscle (uses the refresh quota)."""
        now = self.clock()
        logs = self._log_stream()

        def apply(profile: UserProfile) -> tuple[quota.QuotaDecision, UserProfile]:
            decision, profile = quota.record(profile, "refresh", now, self.tuning)
            if not decision.allowed:
                return decision, profile
            current = load_bucket(profile, category, self.catalog, now, self.tuning)
            updated = replace_suggestion(
                current,
                suggestion_id,
                self._lagging_for(profile, logs),
                self.catalog,
                category=category,
                selected_equipment=equipment,
                hidden=profile.hidden_exercises,
                rng=self.rng,
                now=now,
                same_muscle=True,
                tuning=self.tuning,
            )
            return decision, save_bucket(profile, category, updated)

        decision, profile = self.repository.update(self.user_id, apply, now)
        return decision, load_bucket(profile, category, self.catalog, now, self.tuning)

    def unhide(self, suggestion_id: str) -> bool:
        """Remove a suggestion id from the hidden list; False if it was not hidden."""

        def apply(profile: UserProfile) -> tuple[bool, UserProfile]:
            if suggestion_id not in profile.hidden_exercises:
                return False, profile
            hidden = [h for h in profile.hidden_exercises if h != suggestion_id]
            return True, replace(profile, hidden_exercises=hidden)

        removed, _ = self.repository.update(self.user_id, apply, self.clock())
        return removed

    # -- preferences -----------------------------------------------------------

    def set_preference(self, exercise_id: str, kind: str = "pinned", enabled: bool = True) -> UserProfile:
        """Pin or favorite an exercise (``kind`` is "pinned" or "favorite")."""
        field_name = {"pinned": "pinned_exercises", "favorite": "favorite_exercises"}.get(kind)
        if field_name is None:
            raise ValueError(f"Unknown preference {kind!r}. Valid: pinned, favorite")
        self._exercise(exercise_id)

        def apply(profile: UserProfile) -> tuple[None, UserProfile]:
            ids = [i for i in getattr(profile, field_name) if i != exercise_id]
            if enabled:
                ids.append(exercise_id)
            return None, replace(profile, **{field_name: ids})

        _, profile = self.repository.update(self.user_id, apply, self.clock())
        return profile

    def set_tier(self, tier: str) -> UserProfile:
        """Replace the subscription with a default one for the tier."""
        if tier not in TIERS:
            raise ValueError(f"Unknown tier {tier!r}. Valid: {', '.join(TIERS)}")
        return self.repository.save(self.user_id, {"subscription": default_subscription(tier)})
