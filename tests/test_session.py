"""
Tests for TrainerSession: the engine wired to a repository and log store.

Sessions use a fixed clock, a seeded random source and no pacing delay.
"""

import random
from datetime import datetime, timedelta

import pytest

from goliath.core.models import ExerciseDetails, SetEntry, WorkoutData
from goliath.io.log_store import WorkoutLogStore
from goliath.io.profile_store import ConflictError, InMemoryProfileRepository
from goliath.io.serializers import ValidationError
from goliath.session import TrainerSession

NOW = datetime(2026, 3, 18, 18, 0)

CATALOG = [
    ExerciseDetails(id="bench", name="Bench Press", target="chest", secondary_muscles="triceps", equipment="barbell, bench"),
    ExerciseDetails(id="push_up", name="Push Up", target="chest", secondary_muscles="triceps", equipment="body weight"),
    ExerciseDetails(id="dips", name="Bench Dip", target="triceps", secondary_muscles="chest", equipment="bench, body weight"),
    ExerciseDetails(id="curl", name="Dumbbell Curl", target="biceps", equipment="dumbbell"),
    ExerciseDetails(id="row", name="Barbell Row", target="lats", secondary_muscles="biceps", equipment="barbell"),
    ExerciseDetails(id="squat", name="Squat", target="quads", secondary_muscles="glutes", equipment="body weight"),
    ExerciseDetails(id="lunge", name="Lunge", target="glutes", secondary_muscles="quads", equipment="body weight"),
]


class FailingRepository(InMemoryProfileRepository):
    """Every compare-and-swap write loses."""

    def compare_and_save(self, profile):
        raise ConflictError("another device won")


@pytest.fixture
def repository():
    return InMemoryProfileRepository()


@pytest.fixture
def session(repository, tmp_path):
    return TrainerSession(
        repository,
        "u1",
        CATALOG,
        log_store=WorkoutLogStore(tmp_path / "u1.jsonl"),
        rng=random.Random(7),
        clock=lambda: NOW,
        pacing=lambda seconds: None,
    )


def _bench() -> WorkoutData:
    return WorkoutData(sets=[SetEntry(reps=10, weight=135), SetEntry(reps=8, weight=155)])


class TestLogWorkout:
    def test_awards_xp_and_persists(self, session, repository):
        result = session.log_workout("bench", _bench())

        # chest and triceps are never trained: +100 each
        assert result.score == 259
        assert result.lagging_bonus == 200
        assert result.profile.total_xp == 459
        assert repository.get("u1", NOW).total_xp == 459
        assert repository.get("u1", NOW).muscle_scores["chest"].today == 18
        assert session.pending.state == "confirmed"

    def test_appends_to_log_stream(self, session):
        session.log_workout("bench", _bench())
        logs = session.logs()
        assert len(logs) == 1
        assert logs[0].exercise_id == "bench"
        assert logs[0].score == 259

    def test_lagging_uses_logged_reps(self, session):
        session.log_workout("bench", _bench())
        chest = next(m for m in session.lagging_muscles() if m.muscle == "chest")
        assert chest.lagging_type == "underTrained"
        assert chest.reps == 18

    def test_backdated_log_keeps_todays_reps(self, session):
        session.log_workout("push_up", WorkoutData(sets=[SetEntry(reps=50)]))
        session.log_workout("push_up", WorkoutData(sets=[SetEntry(reps=5)], timestamp=NOW - timedelta(days=8)))

        chest = session.profile().muscle_scores["chest"]
        assert (chest.today, chest.three_day, chest.seven_day) == (50, 50, 50)
        assert chest.last_updated == NOW
        assert [log.timestamp for log in session.logs()] == [NOW - timedelta(days=8), NOW]

    def test_unknown_exercise(self, session):
        with pytest.raises(ValidationError):
            session.log_workout("handstand", _bench())

    def test_failed_write_rolls_back(self, tmp_path):
        store = WorkoutLogStore(tmp_path / "u1.jsonl")
        session = TrainerSession(
            FailingRepository(), "u1", CATALOG, log_store=store, clock=lambda: NOW, pacing=lambda s: None
        )
        with pytest.raises(ConflictError):
            session.log_workout("bench", _bench())

        assert session.pending.state == "rolled_back"
        assert session.pending.value.total_xp == 0
        assert store.load_logs() == []

    def test_level(self, session):
        session.log_workout("bench", _bench())
        assert session.level().level == 1
        assert session.level().xp_to_next == 1150 - 459
        assert session.streaks().daily_streak == 1


class TestSuggestions:
    def test_generated_then_cached(self, session):
        first = session.suggestions()
        assert 0 < len(first) <= 3

        session.rng = random.Random(12345)
        second = session.suggestions()
        assert [s.id for s in second] == [s.id for s in first]

    def test_refresh_quota(self, session):
        session.suggestions()
        outcomes = [session.refresh()[0].allowed for _ in range(3)]
        assert outcomes == [True, True, True]

        current = [s.id for s in session.suggestions()]
        decision, suggestions = session.refresh()
        assert not decision.allowed
        assert decision.remaining == 0
        assert [s.id for s in suggestions] == current

    def test_hide_then_quota(self, session, repository):
        target = session.suggestions()[0]
        decision, suggestions = session.hide(target.id)

        assert decision.allowed
        assert target.id in repository.get("u1", NOW).hidden_exercises
        assert target.id not in [s.id for s in suggestions]

        other = suggestions[0]
        decision, after = session.hide(other.id)
        assert not decision.allowed
        assert other.id not in repository.get("u1", NOW).hidden_exercises
        assert [s.id for s in after] == [s.id for s in suggestions]

    def test_hidden_never_suggested_again(self, session):
        target = session.suggestions()[0]
        session.hide(target.id)
        session.set_tier("premium")
        for _ in range(5):
            _, suggestions = session.refresh()
            assert target.id not in [s.id for s in suggestions]

    def test_unhide(self, session):
        target = session.suggestions()[0]
        session.hide(target.id)
        assert session.unhide(target.id) is True
        assert session.unhide(target.id) is False

    def test_refresh_one_keeps_muscle(self, session):
        current = session.suggestions()
        target = current[0]
        decision, updated = session.refresh_one(target.id)

        assert decision.allowed
        assert updated[0].lagging_muscle.muscle == target.lagging_muscle.muscle
        assert updated[0].exercise.id != target.exercise.id

    def test_superseded_regeneration_dropped(self, session):
        # a newer request for the same category arrives during the pause
        session.pacing = lambda seconds: session.tracker.begin(None)
        assert session.suggestions() == []
        assert session.profile().workout_suggestions == {}

    def test_categories_cached_separately(self, session):
        session.suggestions("bodyweight", ["body weight"])
        profile = session.profile()
        assert profile.workout_suggestions["bodyweightOnly"]
        assert profile.workout_suggestions["gymEquipment"] == []
        for s in session.suggestions("bodyweight", ["body weight"]):
            assert s.exercise.equipment == "body weight"


class TestProfileSettings:
    def test_premium_is_unlimited(self, session):
        session.set_tier("premium")
        status = session.quota_status()
        assert status["hide"].unlimited
        assert status["refresh"].unlimited

    def test_basic_status(self, session):
        status = session.quota_status()
        assert (status["hide"].remaining, status["refresh"].remaining) == (1, 3)

    def test_unknown_tier(self, session):
        with pytest.raises(ValueError):
            session.set_tier("gold")

    def test_pin(self, session):
        profile = session.set_preference("bench", "pinned")
        assert profile.pinned_exercises == ["bench"]
        profile = session.set_preference("bench", "pinned", enabled=False)
        assert profile.pinned_exercises == []

    def test_pin_unknown_kind(self, session):
        with pytest.raises(ValueError):
            session.set_preference("bench", "starred")
