"""
Formula-focused unit tests for the scoring engine.

Covers muscle-score windows and decay, exercise XP, personal bests,
lagging-muscle ranking, daily quotas and leveling.

Values are hand-computed from the formulas.
"""

from datetime import datetime, timedelta

import pytest

from goliath.core.bests import (
    Performance,
    best_performance,
    calculate_exercise_value,
    calculate_personal_best_bonus,
    epley_one_rep_max,
    update_personal_bests,
)
from goliath.core.catalog import parse_muscles, split_muscles
from goliath.core.config import Tuning, tuning_from_dict
from goliath.core.lagging import (
    all_muscles,
    classify_muscle,
    get_lagging_muscles,
    muscle_reps_for_period,
)
from goliath.core.leveling import level_from_xp, level_title, streaks, xp_for_level
from goliath.core.models import (
    ExerciseBests,
    ExerciseDetails,
    LaggingMuscle,
    MuscleScore,
    PersonalBest,
    QuotaCounter,
    SetEntry,
    Subscription,
    UserProfile,
    WorkoutData,
    WorkoutLog,
)
from goliath.core.muscle_scores import (
    decay_muscle_scores,
    migrate_legacy_scores,
    needs_decay,
    raw_weighted_score,
    round_half_up,
    update_muscle_scores,
    weighted_score,
)
from goliath.core import quota
from goliath.core.scoring import (
    calculate_exercise_score,
    calculate_lagging_muscle_bonus,
    log_workout,
)

TUNING = Tuning()
NOW = datetime(2026, 3, 18, 18, 0)

BENCH = ExerciseDetails(
    id="bench",
    name="Bench Press",
    target="chest",
    secondary_muscles=("triceps",),
    category="upper body",
    equipment="barbell, bench",
)
CURL = ExerciseDetails(id="curl", name="Curl", target="biceps", equipment="dumbbell")
SQUAT = ExerciseDetails(
    id="squat", name="Squat", target="quads", secondary_muscles="glutes", equipment="body weight"
)
CATALOG = [BENCH, CURL, SQUAT]


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _bench_workout() -> WorkoutData:
    return WorkoutData(sets=[SetEntry(reps=10, weight=135), SetEntry(reps=8, weight=155)])


def _pb(value: float, days_ago: int, type_: str = "1rm", unit: str = "lbs") -> PersonalBest:
    return PersonalBest(value=value, type=type_, unit=unit, date=NOW - timedelta(days=days_ago))


def _log(exercise_id: str, reps: int, days_ago: int) -> WorkoutLog:
    return WorkoutLog(
        exercise_id=exercise_id,
        timestamp=NOW - timedelta(days=days_ago),
        sets=[SetEntry(reps=reps)],
    )


def _profile(tier: str = "basic", **kwargs) -> UserProfile:
    return UserProfile(user_id="u1", subscription=Subscription(status=tier, plan=tier), **kwargs)


# ---------------------------------------------------------------------------
# Catalog muscle parsing
# ---------------------------------------------------------------------------

class TestMuscleParsing:
    def test_split_trims_lowercases_drops_blanks(self):
        assert split_muscles(" Chest , ,Triceps") == ["chest", "triceps"]

    def test_list_secondary_muscles(self):
        assert split_muscles(["lats", "Rear Delts, biceps"]) == ["lats", "rear delts", "biceps"]

    def test_target_then_secondary_deduplicated(self):
        ex = ExerciseDetails(id="x", target="Chest", secondary_muscles="chest, triceps")
        assert parse_muscles(ex) == ["chest", "triceps"]


# ---------------------------------------------------------------------------
# Muscle scores
# ---------------------------------------------------------------------------

class TestUpdateMuscleScores:
    def test_reps_added_to_every_window_of_every_muscle(self):
        updated = update_muscle_scores({}, _bench_workout(), BENCH, NOW)

        for muscle in ("chest", "triceps"):
            s = updated[muscle]
            assert (s.today, s.three_day, s.seven_day) == (18, 18, 18)
            assert s.last_updated == NOW

    def test_accumulates_on_existing(self):
        scores = {"chest": MuscleScore(5, 10, 20, NOW)}
        updated = update_muscle_scores(scores, _bench_workout(), BENCH, NOW)
        assert (updated["chest"].today, updated["chest"].three_day, updated["chest"].seven_day) == (23, 28, 38)

    def test_input_not_mutated(self):
        scores = {"chest": MuscleScore(5, 10, 20, NOW)}
        update_muscle_scores(scores, _bench_workout(), BENCH, NOW)
        assert scores["chest"].today == 5

    def test_duration_only_adds_zero_reps(self):
        run = ExerciseDetails(id="run", target="cardiovascular system", category="cardio")
        updated = update_muscle_scores({}, WorkoutData(duration=30), run, NOW)
        assert updated["cardiovascular system"].today == 0

    def test_backdated_workout_keeps_last_updated(self):
        scores = {"chest": MuscleScore(50, 50, 50, NOW)}
        updated = update_muscle_scores(scores, _bench_workout(), BENCH, NOW - timedelta(days=8), NOW)

        assert updated["chest"] == MuscleScore(50, 50, 50, NOW)
        assert updated["triceps"].last_updated == NOW - timedelta(days=8)

    @pytest.mark.parametrize(
        "days_ago,expected",
        [(0, (18, 18, 18)), (1, (0, 18, 18)), (2, (0, 18, 18)), (3, (0, 0, 18)), (6, (0, 0, 18)), (7, (0, 0, 0))],
    )
    def test_backdated_reps_only_in_open_windows(self, days_ago, expected):
        updated = update_muscle_scores(
            {"chest": MuscleScore(0, 0, 0, NOW)}, _bench_workout(), BENCH, NOW - timedelta(days=days_ago), NOW
        )
        s = updated["chest"]
        assert (s.today, s.three_day, s.seven_day) == expected
        assert s.last_updated == NOW


class TestDecay:
    """today zeroed after >= 1 calendar day, 3day after >= 3, 7day after >= 7."""

    LAST = datetime(2026, 3, 1, 23, 30)

    def _decayed(self, now: datetime) -> MuscleScore:
        return decay_muscle_scores({"chest": MuscleScore(10, 20, 30, self.LAST)}, now, TUNING)["chest"]

    def test_same_day_untouched(self):
        s = self._decayed(datetime(2026, 3, 1, 23, 59))
        assert (s.today, s.three_day, s.seven_day) == (10, 20, 30)

    def test_calendar_day_not_24_hours(self):
        # one hour later but a different date
        s = self._decayed(datetime(2026, 3, 2, 0, 30))
        assert (s.today, s.three_day, s.seven_day) == (0, 20, 30)

    def test_three_days(self):
        s = self._decayed(datetime(2026, 3, 4, 8, 0))
        assert (s.today, s.three_day, s.seven_day) == (0, 0, 30)

    def test_seven_days(self):
        s = self._decayed(datetime(2026, 3, 8, 8, 0))
        assert (s.today, s.three_day, s.seven_day) == (0, 0, 0)

    def test_last_updated_kept(self):
        assert self._decayed(datetime(2026, 3, 8)).last_updated == self.LAST

    def test_idempotent_within_a_day(self):
        now = datetime(2026, 3, 3, 9, 0)
        scores = {"chest": MuscleScore(10, 20, 30, self.LAST)}
        once = decay_muscle_scores(scores, now, TUNING)
        twice = decay_muscle_scores(once, now.replace(hour=22), TUNING)
        assert once == twice

    def test_needs_decay(self):
        scores = {"chest": MuscleScore(10, 20, 30, self.LAST)}
        assert needs_decay(scores, datetime(2026, 3, 2))
        assert not needs_decay(scores, datetime(2026, 3, 1, 23, 59))


class TestCompositeScore:
    def test_weighted_example(self):
        # 30/60*1.0 + 60/120*0.5 + 250/500*0.1 = 0.5 + 0.25 + 0.05
        assert weighted_score(MuscleScore(30, 60, 250)) == pytest.approx(0.8)

    def test_clamped_to_one(self):
        assert weighted_score(MuscleScore(600, 600, 5000)) == pytest.approx(1.0)

    def test_none_is_zero(self):
        assert weighted_score(None) == 0.0

    def test_raw_weighted_rounds_half_up(self):
        # 10 + 0.5*20 + 0.1*35 = 23.5 → 24
        assert raw_weighted_score(MuscleScore(10, 20, 35)) == 24

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1
        assert round_half_up(2.49) == 2


class TestLegacyMigration:
    def test_scalar_lands_in_seven_day(self):
        migrated = migrate_legacy_scores({" Chest ": 42}, NOW)
        assert migrated["chest"] == MuscleScore(0, 0, 42, NOW)


# ---------------------------------------------------------------------------
# Exercise XP
# ---------------------------------------------------------------------------

class TestExerciseScore:
    def test_weighted_example_259(self):
        # round(10*135*0.1) + round(8*155*0.1) = 135 + 124
        assert calculate_exercise_score(_bench_workout(), BENCH) == 259

    def test_bodyweight_is_sum_of_reps(self):
        workout = WorkoutData(sets=[SetEntry(12), SetEntry(10), SetEntry(8)])
        assert calculate_exercise_score(workout) == 30

    def test_duration_two_per_minute(self):
        assert calculate_exercise_score(WorkoutData(duration=30)) == 60

    def test_sets_and_duration_are_additive(self):
        workout = WorkoutData(sets=[SetEntry(10)], duration=5)
        assert calculate_exercise_score(workout) == 20

    def test_rounded_once(self):
        # 0.5 + 0.5 = 1.0, not round(0.5) + round(0.5) = 2
        workout = WorkoutData(sets=[SetEntry(1, 5), SetEntry(1, 5)])
        assert calculate_exercise_score(workout) == 1

    def test_empty_workout_scores_zero(self):
        assert calculate_exercise_score(WorkoutData()) == 0

    def test_negative_reps_rejected(self):
        with pytest.raises(ValueError):
            SetEntry(reps=-1)


class TestLaggingBonus:
    def test_sums_bonuses_of_worked_lagging_muscles(self):
        lagging = [
            LaggingMuscle("chest", 0, "neverTrained", 100, 14, 1014),
            LaggingMuscle("triceps", 40, "underTrained", 50, 2, 502),
            LaggingMuscle("biceps", 0, "neverTrained", 100, 14, 1014),
        ]
        assert calculate_lagging_muscle_bonus(BENCH, lagging) == 150

    def test_no_lagging(self):
        assert calculate_lagging_muscle_bonus(BENCH, []) == 0


class TestLogWorkout:
    def test_first_log(self):
        profile = _profile()
        result = log_workout(_bench_workout(), BENCH, profile, NOW, tuning=TUNING)

        assert result.score == 259
        assert result.personal_best_bonus == 0
        assert result.profile.total_xp == 259
        assert result.updated_muscle_scores["chest"].today == 18
        assert result.updated_muscle_scores["triceps"].seven_day == 18
        assert result.log.score == 259
        assert result.log.timestamp == NOW
        # all four horizons recorded from the best set (155x8 by Epley)
        bests = result.updated_personal_bests["bench"]
        for horizon in ("current", "quarter", "year", "allTime"):
            assert bests.get(horizon).value == pytest.approx(epley_one_rep_max(155, 8))

    def test_input_profile_untouched(self):
        profile = _profile()
        log_workout(_bench_workout(), BENCH, profile, NOW, tuning=TUNING)
        assert profile.total_xp == 0
        assert profile.muscle_scores == {}

    def test_beating_every_horizon_awards_700(self):
        first = log_workout(_bench_workout(), BENCH, _profile(), NOW, tuning=TUNING)
        heavier = WorkoutData(sets=[SetEntry(reps=5, weight=200)])
        later = NOW + timedelta(hours=1)
        second = log_workout(heavier, BENCH, first.profile, later, tuning=TUNING)

        assert second.score == 100
        assert second.personal_best_bonus == 50 + 150 + 200 + 300
        assert second.profile.total_xp == 259 + 100 + 700

    def test_scores_decayed_before_adding(self):
        two_days_ago = NOW - timedelta(days=2)
        profile = _profile(muscle_scores={"chest": MuscleScore(20, 20, 20, two_days_ago)})
        result = log_workout(_bench_workout(), BENCH, profile, NOW, tuning=TUNING)
        chest = result.updated_muscle_scores["chest"]
        assert (chest.today, chest.three_day, chest.seven_day) == (18, 38, 38)

    def test_lagging_bonus_added_to_xp(self):
        lagging = [LaggingMuscle("chest", 0, "neverTrained", 100, 14, 1014)]
        result = log_workout(_bench_workout(), BENCH, _profile(), NOW, lagging, TUNING)
        assert result.lagging_bonus == 100
        assert result.total_xp_awarded == 359
        assert result.profile.total_xp == 359


# ---------------------------------------------------------------------------
# Personal bests
# ---------------------------------------------------------------------------

class TestExerciseValue:
    def test_pace(self):
        v = calculate_exercise_value(Performance(duration=30, distance=5))
        assert (v.value, v.type) == (6.0, "pace")

    def test_duration(self):
        v = calculate_exercise_value(Performance(duration=45))
        assert (v.value, v.type, v.unit) == (45, "duration", "minutes")

    def test_reps_only(self):
        v = calculate_exercise_value(Performance(reps=12))
        assert (v.value, v.type) == (12.0, "reps")

    def test_epley(self):
        v = calculate_exercise_value(Performance(weight=100, reps=3))
        assert v.type == "1rm"
        assert v.value == pytest.approx(110.0)

    def test_single_rep_uses_epley(self):
        v = calculate_exercise_value(Performance(weight=100, reps=1))
        assert v.value == pytest.approx(100 * 31 / 30)

    def test_unknown(self):
        v = calculate_exercise_value(Performance())
        assert (v.value, v.type) == (0.0, "unknown")

    def test_best_set_by_epley(self):
        perf = best_performance(_bench_workout())
        assert (perf.weight, perf.reps) == (155, 8)


class TestPersonalBests:
    def test_absent_horizons_count_as_beaten(self):
        # only an old allTime record exists; 160 beats it and fills the rest
        bests = {"bench": ExerciseBests(all_time=_pb(150, days_ago=400))}
        perf = Performance(reps=160)
        updated = update_personal_bests(bests, "bench", perf, now=NOW, tuning=TUNING)

        for horizon in ("current", "quarter", "year", "allTime"):
            assert updated["bench"].get(horizon).value == 160
            assert updated["bench"].get(horizon).date == NOW

    def test_bonus_only_for_existing_records(self):
        bests = {"bench": ExerciseBests(all_time=_pb(150, days_ago=400, type_="reps"))}
        bonus = calculate_personal_best_bonus(bests, "bench", Performance(reps=160), now=NOW, tuning=TUNING)
        assert bonus == 300

    def test_no_record_no_bonus(self):
        assert calculate_personal_best_bonus({}, "bench", Performance(reps=10), now=NOW) == 0

    def test_equal_value_does_not_replace(self):
        record = _pb(10, days_ago=1, type_="reps", unit="reps")
        bests = {"bench": ExerciseBests(record, record, record, record)}
        updated = update_personal_bests(bests, "bench", Performance(reps=10), now=NOW, tuning=TUNING)
        assert updated["bench"].current.date == record.date
        assert calculate_personal_best_bonus(bests, "bench", Performance(reps=10), now=NOW) == 0

    def test_pace_lower_is_better(self):
        bests = {"run": ExerciseBests(current=_pb(6.0, days_ago=2, type_="pace", unit="min/unit"))}
        faster = Performance(duration=27.5, distance=5)  # 5.5 min/unit
        updated = update_personal_bests(bests, "run", faster, now=NOW, tuning=TUNING)
        assert updated["run"].current.value == pytest.approx(5.5)
        assert calculate_personal_best_bonus(bests, "run", faster, now=NOW, tuning=TUNING) == 50

        slower = Performance(duration=35, distance=5)
        kept = update_personal_bests(bests, "run", slower, now=NOW, tuning=TUNING)
        assert kept["run"].current.value == 6.0

    def test_expired_record_replaced_without_bonus(self):
        old = _pb(200, days_ago=40, type_="reps", unit="reps")
        bests = {"bench": ExerciseBests(current=old, all_time=old)}
        perf = Performance(reps=150)
        updated = update_personal_bests(bests, "bench", perf, now=NOW, tuning=TUNING)

        assert updated["bench"].current.value == 150  # 40 days > 30-day window
        assert updated["bench"].all_time.value == 200
        assert updated["bench"].quarter.value == 150
        assert calculate_personal_best_bonus(bests, "bench", perf, now=NOW, tuning=TUNING) == 0

    def test_input_map_not_mutated(self):
        bests = {"bench": ExerciseBests(current=_pb(5, days_ago=1, type_="reps"))}
        update_personal_bests(bests, "bench", Performance(reps=10), now=NOW, tuning=TUNING)
        assert bests["bench"].current.value == 5
        assert bests["bench"].quarter is None


# ---------------------------------------------------------------------------
# Lagging muscles
# ---------------------------------------------------------------------------

class TestClassification:
    @pytest.mark.parametrize(
        "lifetime,recent,expected",
        [
            (0, True, "neverTrained"),
            (0, False, "neverTrained"),
            (99, True, "underTrained"),
            (99, False, "underTrained"),
            (100, False, "neglected"),
            (100, True, None),
            (5000, True, None),
        ],
    )
    def test_partition(self, lifetime, recent, expected):
        assert classify_muscle(lifetime, recent, TUNING) == expected


class TestLaggingFromScores:
    def test_ranking(self):
        scores = {
            "chest": MuscleScore(0, 0, 0, NOW - timedelta(days=3)),
            "triceps": MuscleScore(0, 0, 500, NOW - timedelta(days=2)),  # raw 50
            "biceps": MuscleScore(100, 100, 100, NOW),  # raw 160, recent
            "quads": MuscleScore(200, 200, 200, NOW - timedelta(days=20)),  # decays to 0
        }
        lagging = get_lagging_muscles(scores, CATALOG, now=NOW, tuning=TUNING)
        by_name = {m.muscle: m for m in lagging}

        assert [m.muscle for m in lagging] == ["quads", "glutes", "chest", "triceps"]
        assert by_name["chest"].lagging_type == "neverTrained"
        assert by_name["chest"].bonus == 100
        assert by_name["chest"].priority == 1003
        assert by_name["glutes"].days_since_trained == 14
        assert by_name["quads"].priority == 1020
        assert by_name["triceps"].lagging_type == "underTrained"
        assert by_name["triceps"].reps == 50
        assert by_name["triceps"].priority == 502
        assert "biceps" not in by_name

    def test_every_muscle_at_most_once(self):
        lagging = get_lagging_muscles({}, CATALOG, now=NOW, tuning=TUNING)
        names = [m.muscle for m in lagging]
        assert sorted(names) == all_muscles(CATALOG)
        assert all(m.lagging_type == "neverTrained" for m in lagging)


class TestLaggingFromLogs:
    LOGS = [_log("bench", 150, days_ago=20), _log("curl", 10, days_ago=1)]

    def test_ranking_ties_by_name(self):
        lagging = get_lagging_muscles({}, CATALOG, self.LOGS, NOW, TUNING)
        assert [(m.muscle, m.lagging_type, m.priority) for m in lagging] == [
            ("glutes", "neverTrained", 1014),
            ("quads", "neverTrained", 1014),
            ("biceps", "underTrained", 501),
            ("chest", "neglected", 120),
            ("triceps", "neglected", 120),
        ]

    def test_neglected_bonus(self):
        lagging = get_lagging_muscles({}, CATALOG, self.LOGS, NOW, TUNING)
        chest = next(m for m in lagging if m.muscle == "chest")
        assert (chest.bonus, chest.reps, chest.days_since_trained) == (25, 150, 20)

    def test_reps_for_period(self):
        assert muscle_reps_for_period(self.LOGS, CATALOG, "chest", "lifetime", NOW) == 150
        assert muscle_reps_for_period(self.LOGS, CATALOG, "chest", "7day", NOW) == 0
        assert muscle_reps_for_period(self.LOGS, CATALOG, "Biceps", "3day", NOW) == 10
        assert muscle_reps_for_period(self.LOGS, CATALOG, "biceps", "today", NOW) == 0

    def test_unknown_period(self):
        with pytest.raises(ValueError):
            muscle_reps_for_period(self.LOGS, CATALOG, "chest", "fortnight", NOW)


# ---------------------------------------------------------------------------
# Quotas
# ---------------------------------------------------------------------------

class TestQuota:
    def test_basic_one_hide_per_day(self):
        profile = _profile()
        first, profile = quota.record(profile, "hide", NOW, TUNING)
        assert first.allowed and first.remaining == 0 and first.limit == 1

        second, profile = quota.record(profile, "hide", NOW, TUNING)
        assert not second.allowed
        assert profile.hide_count == QuotaCounter(date="2026-03-18", count=1)

    def test_reset_after_day_boundary(self):
        profile = _profile(hide_count=QuotaCounter("2026-03-18", 1))
        tomorrow = NOW + timedelta(days=1)
        assert not quota.check(profile, "hide", NOW, TUNING).allowed
        decision, profile = quota.record(profile, "hide", tomorrow, TUNING)
        assert decision.allowed
        assert profile.hide_count == QuotaCounter("2026-03-19", 1)

    def test_basic_three_refreshes(self):
        profile = _profile()
        results = []
        for _ in range(4):
            decision, profile = quota.record(profile, "refresh", NOW, TUNING)
            results.append(decision.allowed)
        assert results == [True, True, True, False]
        assert profile.refresh_count.count == 3

    def test_counters_independent(self):
        profile = _profile()
        _, profile = quota.record(profile, "hide", NOW, TUNING)
        assert quota.check(profile, "refresh", NOW, TUNING).remaining == 3

    @pytest.mark.parametrize("tier", ["premium", "admin"])
    def test_unlimited_tiers(self, tier):
        profile = _profile(tier)
        for _ in range(10):
            decision, profile = quota.record(profile, "hide", NOW, TUNING)
            assert decision.allowed
        assert decision.unlimited and decision.remaining is None

    def test_missing_subscription_is_basic(self):
        profile = UserProfile(user_id="legacy")
        assert quota.check(profile, "hide", NOW, TUNING).limit == 1

    def test_tuning_override(self):
        tuning = tuning_from_dict({"quotas": {"basic": {"hide": 2}}})
        profile = _profile()
        _, profile = quota.record(profile, "hide", NOW, tuning)
        assert quota.check(profile, "hide", NOW, tuning).allowed
        assert tuning.quota_limits["basic"]["refresh"] == 3


# ---------------------------------------------------------------------------
# Leveling
# ---------------------------------------------------------------------------

class TestLeveling:
    def test_level_thresholds(self):
        assert xp_for_level(1, TUNING) == 0
        assert xp_for_level(2, TUNING) == 1150

    def test_level_from_xp(self):
        info = level_from_xp(0, TUNING)
        assert (info.level, info.next_level_xp, info.xp_to_next) == (1, 1150, 1150)
        assert info.title == "Pixel Sprite"

        info = level_from_xp(575, TUNING)
        assert info.progress == pytest.approx(50.0)

        assert level_from_xp(1150, TUNING).level == 2

    def test_titles(self):
        assert level_title(4) == "Pixel Sprite"
        assert level_title(5) == "Arcade Warrior"
        assert level_title(120) == "Digital Deity"


class TestStreaks:
    def test_seven_day_streak(self):
        logs = [_log("curl", 10, days_ago=d) for d in range(7)]
        info = streaks(logs, NOW)
        assert info.daily_streak == 7
        assert info.daily_bonus == 50
        # 2026-03-18 is a Wednesday; the 7 days span two Sunday-based weeks
        assert info.weekly_streak == 2
        assert info.weekly_bonus == 0

    def test_streak_broken_without_today(self):
        logs = [_log("curl", 10, days_ago=d) for d in range(1, 5)]
        assert streaks(logs, NOW).daily_streak == 0

    def test_no_logs(self):
        assert streaks([], NOW).daily_streak == 0
