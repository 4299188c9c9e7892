"""
Data models for the goliath engine.

All core dataclasses representing exercises, logged workouts, muscle
scores, personal bests, suggestions, quotas and the user profile document.
Timestamps are naive local datetimes; calendar dates are ISO strings.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

LaggingType = Literal["neverTrained", "underTrained", "neglected"]
BestType = Literal["1rm", "reps", "duration", "pace", "unknown"]
Tier = Literal["basic", "premium", "admin"]
QuotaKind = Literal["hide", "refresh"]

HORIZONS: tuple[str, ...] = ("current", "quarter", "year", "allTime")
TIERS: tuple[str, ...] = ("basic", "premium", "admin")


@dataclass(frozen=True)
class ExerciseDetails:
    """
    One entry of the read-only exercise catalog.

    ``target`` and ``secondary_muscles`` may hold comma-separated lists;
    ``secondary_muscles`` may also be a list of such strings.
    """

    id: str
    name: str = ""
    target: str = ""
    secondary_muscles: str | tuple[str, ...] = ()
    category: str = ""
    equipment: str = ""
    difficulty: str = ""

    @property
    def is_cardio(self) -> bool:
        return (
            self.category.strip().lower() == "cardio"
            or self.target.strip().lower().startswith("cardio")
        )


@dataclass
class SetEntry:
    """A single logged set (weight 0 = bodyweight)."""

    reps: int
    weight: float = 0.0

    def __post_init__(self) -> None:
        if self.reps < 0:
            raise ValueError("reps must be non-negative")
        if self.weight < 0:
            raise ValueError("weight must be non-negative")


@dataclass
class WorkoutData:
    """
    A workout as entered at logging time.

    Either sets, a duration (minutes), or both for mixed exercises.
    ``distance`` is only used for pace-based personal bests.
    """

    sets: list[SetEntry] = field(default_factory=list)
    duration: float | None = None
    distance: float | None = None
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        if self.duration is not None and self.duration < 0:
            raise ValueError("duration must be non-negative")
        if self.distance is not None and self.distance < 0:
            raise ValueError("distance must be non-negative")


@dataclass
class WorkoutLog:
    """A persisted workout, as found in the workout-log stream."""

    exercise_id: str
    timestamp: datetime
    sets: list[SetEntry] = field(default_factory=list)
    duration: float | None = None
    distance: float | None = None
    score: int = 0

    @property
    def total_reps(self) -> int:
        return sum(s.reps for s in self.sets)


@dataclass
class MuscleScore:
    """
    Rolling rep counters for one muscle.

    Counters only grow between decay events; decay only zeroes windows.
    """

    today: int = 0
    three_day: int = 0
    seven_day: int = 0
    last_updated: datetime | None = None


@dataclass(frozen=True)
class PersonalBest:
    """Best value for one exercise within one horizon."""

    value: float
    type: BestType
    unit: str
    date: datetime


@dataclass
class ExerciseBests:
    """Personal bests of one exercise for every horizon (None = absent)."""

    current: PersonalBest | None = None
    quarter: PersonalBest | None = None
    year: PersonalBest | None = None
    all_time: PersonalBest | None = None

    def get(self, horizon: str) -> PersonalBest | None:
        return getattr(self, _horizon_attr(horizon))

    def set(self, horizon: str, best: PersonalBest) -> None:
        setattr(self, _horizon_attr(horizon), best)


def _horizon_attr(horizon: str) -> str:
    if horizon not in HORIZONS:
        raise ValueError(f"Unknown horizon '{horizon}'. Valid: {', '.join(HORIZONS)}")
    return "all_time" if horizon == "allTime" else horizon


@dataclass(frozen=True)
class LaggingMuscle:
    """A muscle judged under-trained; derived on every analysis pass."""

    muscle: str
    reps: int
    lagging_type: LaggingType
    bonus: int
    days_since_trained: int
    priority: int


@dataclass(frozen=True)
class WorkoutSuggestion:
    """One suggested exercise for one lagging muscle."""

    id: str
    exercise: ExerciseDetails
    lagging_muscle: LaggingMuscle
    reason: str
    bonus: int
    timestamp: datetime


@dataclass(frozen=True)
class SavedSuggestion:
    """Suggestion as cached in the profile (exercise kept by id only)."""

    id: str
    exercise_id: str
    lagging_muscle: LaggingMuscle
    reason: str
    bonus: int
    timestamp: datetime


@dataclass(frozen=True)
class QuotaCounter:
    """Daily action counter; ``date`` is YYYY-MM-DD (local)."""

    date: str
    count: int = 0


@dataclass(frozen=True)
class Subscription:
    """Subscription sub-document of the profile."""

    status: Tier = "basic"
    plan: str = "basic"
    expires_at: str | None = None
    features: tuple[str, ...] = ("basic_logging", "basic_tracking")


@dataclass
class UserProfile:
    """
    The per-user profile document; sole owner of all persistent engine state.

    ``version`` is the compare-and-swap token maintained by the repository.
    """

    user_id: str
    muscle_scores: dict[str, MuscleScore] = field(default_factory=dict)
    personal_bests: dict[str, ExerciseBests] = field(default_factory=dict)
    total_xp: int = 0
    hidden_exercises: list[str] = field(default_factory=list)
    hide_count: QuotaCounter | None = None
    refresh_count: QuotaCounter | None = None
    workout_suggestions: dict[str, list[SavedSuggestion]] = field(default_factory=dict)
    subscription: Subscription | None = None
    pinned_exercises: list[str] = field(default_factory=list)
    favorite_exercises: list[str] = field(default_factory=list)
    version: int = 0

    @property
    def tier(self) -> Tier:
        if self.subscription is None:
            return "basic"
        return self.subscription.status
