"""
JSON serialization for engine data models.

Handles conversion between dataclasses and the JSON-compatible profile
document / workout-log records.  Document keys use the profile's camelCase
names (``muscleScores``, ``3day``, ``lastUpdated`` ...).
"""

import json
import re
from datetime import datetime
from typing import Any

from ..core.config import SUBSCRIPTION_FEATURES
from ..core.models import (
    HORIZONS,
    TIERS,
    ExerciseBests,
    LaggingMuscle,
    MuscleScore,
    PersonalBest,
    QuotaCounter,
    SavedSuggestion,
    SetEntry,
    Subscription,
    UserProfile,
    WorkoutLog,
)
from ..core.muscle_scores import migrate_legacy_scores


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def validate_date(date_str: str) -> str:
    """
    Validate a YYYY-MM-DD date string.

    Raises:
        ValidationError: If date format is invalid
    """
    if not isinstance(date_str, str) or not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        raise ValidationError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD")
    try:
        datetime.strptime(date_str, "%Y-%m-%d")
    except ValueError as e:
        raise ValidationError(f"Invalid date: {date_str}") from e
    return date_str


def validate_non_negative(value: int | float, name: str) -> int | float:
    """
    Validate that a value is non-negative.

    Raises:
        ValidationError: If value is negative
    """
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return value


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a stored timestamp.

    Accepts ISO strings, epoch seconds, ``{"seconds": ...}`` timestamp
    objects, and datetimes.  Timezone-aware values are converted to naive
    local time.

    Raises:
        ValidationError: If the value cannot be interpreted
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, dict) and "seconds" in value:
        dt = datetime.fromtimestamp(float(value["seconds"]))
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        dt = datetime.fromtimestamp(float(value))
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValidationError(f"Invalid timestamp: {value!r}") from e
    else:
        raise ValidationError(f"Invalid timestamp: {value!r}")

    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def format_timestamp(dt: datetime) -> str:
    return dt.isoformat(timespec="seconds")


# ---------------------------------------------------------------------------
# Sets
# ---------------------------------------------------------------------------


def set_entry_to_dict(s: SetEntry) -> dict[str, Any]:
    return {"reps": s.reps, "weight": s.weight}


def dict_to_set_entry(data: dict[str, Any]) -> SetEntry:
    """
    Convert dict to SetEntry.

    Reps/weight may be stored as strings; unparsable values count as 0.
    """
    reps = _to_number(data.get("reps"), int)
    weight = _to_number(data.get("weight"), float)
    validate_non_negative(reps, "reps")
    validate_non_negative(weight, "weight")
    return SetEntry(reps=reps, weight=weight)


def _to_number(value: Any, kind: type) -> Any:
    if value is None or value == "":
        return kind(0)
    try:
        return kind(float(value))
    except (TypeError, ValueError):
        return kind(0)


def parse_sets_string(sets_str: str) -> list[SetEntry]:
    """
    Parse a sets string.

    Compact format (tried first):
        NxM[@W]   e.g. "3x10@135"  → 3 sets of 10 reps at 135

    Per-set formats (comma-separated):
        reps@weight   e.g. "10@135"
        reps weight   e.g. "10 135"
        reps          e.g. "12"     bodyweight

    Raises:
        ValidationError: If format is invalid
    """
    if not sets_str or not sets_str.strip():
        raise ValidationError("Sets string cannot be empty")

    compact = re.match(r"^\s*(\d+)\s*x\s*(\d+)\s*(?:@\s*\+?(\d+\.?\d*))?\s*$", sets_str)
    if compact:
        count, reps = int(compact.group(1)), int(compact.group(2))
        weight = float(compact.group(3)) if compact.group(3) else 0.0
        if count == 0:
            raise ValidationError("Set count must be positive")
        return [SetEntry(reps=reps, weight=weight) for _ in range(count)]

    sets: list[SetEntry] = []
    for part in (p.strip() for p in sets_str.split(",")):
        if not part:
            continue
        match_at = re.match(r"^(\d+)@\+?(\d+\.?\d*)$", part)
        match_sp = re.match(r"^(\d+)\s+\+?(\d+\.?\d*)$", part)
        match_bare = re.match(r"^(\d+)$", part)

        if match_at:
            sets.append(SetEntry(reps=int(match_at.group(1)), weight=float(match_at.group(2))))
        elif match_sp:
            sets.append(SetEntry(reps=int(match_sp.group(1)), weight=float(match_sp.group(2))))
        elif match_bare:
            sets.append(SetEntry(reps=int(match_bare.group(1))))
        else:
            raise ValidationError(
                f"Invalid set format: '{part}'.\n"
                f"Use: reps@weight (e.g. 10@135), reps weight (e.g. 10 135),\n"
                f"     bare reps (e.g. 12) or NxM@W (e.g. 3x10@135)."
            )

    if not sets:
        raise ValidationError("No valid sets found in sets string")
    return sets


# ---------------------------------------------------------------------------
# Workout log
# ---------------------------------------------------------------------------


def workout_log_to_dict(log: WorkoutLog) -> dict[str, Any]:
    d: dict[str, Any] = {
        "exerciseId": log.exercise_id,
        "timestamp": format_timestamp(log.timestamp),
        "sets": [set_entry_to_dict(s) for s in log.sets],
        "score": log.score,
    }
    if log.duration is not None:
        d["duration"] = log.duration
    if log.distance is not None:
        d["distance"] = log.distance
    return d


def dict_to_workout_log(data: dict[str, Any]) -> WorkoutLog:
    """
    Convert dict to WorkoutLog.

    Raises:
        ValidationError: If exerciseId or timestamp is missing/invalid
    """
    exercise_id = data.get("exerciseId", data.get("exercise_id"))
    if not exercise_id:
        raise ValidationError("Workout log is missing exerciseId")
    if "timestamp" not in data:
        raise ValidationError("Workout log is missing timestamp")
    duration = data.get("duration")
    distance = data.get("distance")
    return WorkoutLog(
        exercise_id=str(exercise_id),
        timestamp=parse_timestamp(data["timestamp"]),
        sets=[dict_to_set_entry(s) for s in data.get("sets") or []],
        duration=float(duration) if duration not in (None, "") else None,
        distance=float(distance) if distance not in (None, "") else None,
        score=int(data.get("score") or 0),
    )


def workout_log_to_json_line(log: WorkoutLog) -> str:
    return json.dumps(workout_log_to_dict(log), separators=(",", ":"))


# ---------------------------------------------------------------------------
# Muscle scores / bests / suggestions / quotas
# ---------------------------------------------------------------------------


def muscle_score_to_dict(score: MuscleScore) -> dict[str, Any]:
    return {
        "today": score.today,
        "3day": score.three_day,
        "7day": score.seven_day,
        "lastUpdated": format_timestamp(score.last_updated) if score.last_updated else None,
    }


def dict_to_muscle_score(data: Any) -> MuscleScore:
    """Convert a stored windowed muscle score."""
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid muscle score: {data!r}")
    last = data.get("lastUpdated")
    return MuscleScore(
        today=int(data.get("today") or 0),
        three_day=int(data.get("3day") or 0),
        seven_day=int(data.get("7day") or 0),
        last_updated=parse_timestamp(last) if last else None,
    )


def dict_to_muscle_scores(data: dict[str, Any]) -> dict[str, MuscleScore]:
    """
    Convert the stored muscle-score map.

    Bare numbers are the legacy scalar representation and are migrated
    into the 7-day window.
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid muscle scores: {data!r}")
    legacy = {
        k: v for k, v in data.items() if isinstance(v, (int, float)) and not isinstance(v, bool)
    }
    scores = {
        str(k).strip().lower(): dict_to_muscle_score(v)
        for k, v in data.items()
        if k not in legacy
    }
    if legacy:
        scores.update(migrate_legacy_scores(legacy, datetime.now().replace(microsecond=0)))
    return scores


def personal_best_to_dict(best: PersonalBest) -> dict[str, Any]:
    return {
        "value": best.value,
        "type": best.type,
        "unit": best.unit,
        "date": format_timestamp(best.date),
    }


def dict_to_personal_best(data: dict[str, Any]) -> PersonalBest:
    return PersonalBest(
        value=float(data.get("value") or 0),
        type=data.get("type", "unknown"),
        unit=str(data.get("unit", "")),
        date=parse_timestamp(data.get("date", 0)),
    )


def exercise_bests_to_dict(bests: ExerciseBests) -> dict[str, Any]:
    return {h: personal_best_to_dict(b) for h in HORIZONS if (b := bests.get(h)) is not None}


def dict_to_exercise_bests(data: dict[str, Any]) -> ExerciseBests:
    bests = ExerciseBests()
    for horizon in HORIZONS:
        raw = data.get(horizon)
        if isinstance(raw, dict):
            bests.set(horizon, dict_to_personal_best(raw))
    return bests


def lagging_muscle_to_dict(m: LaggingMuscle) -> dict[str, Any]:
    return {
        "muscle": m.muscle,
        "reps": m.reps,
        "laggingType": m.lagging_type,
        "bonus": m.bonus,
        "daysSinceTrained": m.days_since_trained,
        "priority": m.priority,
    }


def dict_to_lagging_muscle(data: dict[str, Any]) -> LaggingMuscle:
    return LaggingMuscle(
        muscle=str(data["muscle"]),
        reps=int(data.get("reps") or 0),
        lagging_type=data.get("laggingType", "neverTrained"),
        bonus=int(data.get("bonus") or 0),
        days_since_trained=int(data.get("daysSinceTrained") or 0),
        priority=int(data.get("priority") or 0),
    )


def saved_suggestion_to_dict(s: SavedSuggestion) -> dict[str, Any]:
    return {
        "id": s.id,
        "exerciseId": s.exercise_id,
        "laggingMuscle": lagging_muscle_to_dict(s.lagging_muscle),
        "reason": s.reason,
        "bonus": s.bonus,
        "timestamp": format_timestamp(s.timestamp),
    }


def dict_to_saved_suggestion(data: dict[str, Any]) -> SavedSuggestion:
    return SavedSuggestion(
        id=str(data["id"]),
        exercise_id=str(data["exerciseId"]),
        lagging_muscle=dict_to_lagging_muscle(data["laggingMuscle"]),
        reason=str(data.get("reason", "")),
        bonus=int(data.get("bonus") or 0),
        timestamp=parse_timestamp(data["timestamp"]),
    )


def quota_counter_to_dict(c: QuotaCounter) -> dict[str, Any]:
    return {"date": c.date, "count": c.count}


def dict_to_quota_counter(data: Any) -> QuotaCounter | None:
    if not isinstance(data, dict) or "date" not in data:
        return None
    return QuotaCounter(date=validate_date(str(data["date"])), count=int(data.get("count") or 0))


def subscription_to_dict(sub: Subscription) -> dict[str, Any]:
    return {
        "status": sub.status,
        "plan": sub.plan,
        "expiresAt": sub.expires_at,
        "features": list(sub.features),
    }


def dict_to_subscription(data: Any) -> Subscription | None:
    if not isinstance(data, dict):
        return None
    status = data.get("status", "basic")
    if status not in TIERS:
        raise ValidationError(f"Invalid subscription status: {status!r}. Must be one of {TIERS}")
    return Subscription(
        status=status,
        plan=str(data.get("plan", status)),
        expires_at=data.get("expiresAt"),
        features=tuple(data.get("features") or SUBSCRIPTION_FEATURES[status]),
    )


def default_subscription(status: str = "basic") -> Subscription:
    return Subscription(
        status=status,  # type: ignore[arg-type]
        plan=status,
        expires_at=None,
        features=tuple(SUBSCRIPTION_FEATURES[status]),
    )


# ---------------------------------------------------------------------------
# Profile document
# ---------------------------------------------------------------------------


def user_profile_to_dict(profile: UserProfile) -> dict[str, Any]:
    """
    Convert UserProfile to the JSON profile document.
    """
    d: dict[str, Any] = {
        "userId": profile.user_id,
        "version": profile.version,
        "muscleScores": {k: muscle_score_to_dict(v) for k, v in profile.muscle_scores.items()},
        "personalBests": {
            k: exercise_bests_to_dict(v) for k, v in profile.personal_bests.items()
        },
        "totalXP": profile.total_xp,
        "hiddenExercises": list(profile.hidden_exercises),
        "workoutSuggestions": {
            k: [saved_suggestion_to_dict(s) for s in v]
            for k, v in profile.workout_suggestions.items()
        },
        "pinnedExercises": list(profile.pinned_exercises),
        "favoriteExercises": list(profile.favorite_exercises),
    }
    if profile.hide_count is not None:
        d["hideCount"] = quota_counter_to_dict(profile.hide_count)
    if profile.refresh_count is not None:
        d["refreshCount"] = quota_counter_to_dict(profile.refresh_count)
    if profile.subscription is not None:
        d["subscription"] = subscription_to_dict(profile.subscription)
    return d


def dict_to_user_profile(data: dict[str, Any], user_id: str | None = None) -> UserProfile:
    """
    Convert a profile document to UserProfile.

    Missing fields get defaults; ``subscription`` stays None when absent so
    the repository can detect and repair legacy documents.

    Raises:
        ValidationError: If a present field is malformed
    """
    uid = data.get("userId", user_id)
    if not uid:
        raise ValidationError("Profile document has no userId")

    try:
        return UserProfile(
            user_id=str(uid),
            version=int(data.get("version") or 0),
            muscle_scores=dict_to_muscle_scores(data.get("muscleScores") or {}),
            personal_bests={
                str(k): dict_to_exercise_bests(v)
                for k, v in (data.get("personalBests") or {}).items()
                if isinstance(v, dict)
            },
            total_xp=int(data.get("totalXP") or 0),
            hidden_exercises=[str(x) for x in data.get("hiddenExercises") or []],
            hide_count=dict_to_quota_counter(data.get("hideCount")),
            refresh_count=dict_to_quota_counter(data.get("refreshCount")),
            workout_suggestions={
                str(k): [dict_to_saved_suggestion(s) for s in v or []]
                for k, v in (data.get("workoutSuggestions") or {}).items()
            },
            subscription=dict_to_subscription(data.get("subscription")),
            pinned_exercises=[str(x) for x in data.get("pinnedExercises") or []],
            favorite_exercises=[str(x) for x in data.get("favoriteExercises") or []],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Malformed profile document for {uid}: {e}") from e
