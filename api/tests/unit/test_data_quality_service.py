"""Unit tests for workout data quality validation.

Covers every rule's boundaries and messages, the fixed issue order, and the
quality score calculation. Sessions are built in memory; no database.
"""

from datetime import UTC, datetime, timedelta

import pytest

from services.data_quality_service import (
    calculate_quality_score,
    check_session,
    is_calories_in_range,
    is_duration_in_range,
    is_heart_rate_in_range,
    score_from_flags,
    validate_workout_session,
    whole_minutes,
)
from tests.factories import WorkoutSessionFactory

pytestmark = pytest.mark.unit

NOW = datetime(2026, 5, 20, 12, 0, tzinfo=UTC)


def _session(**overrides):
    fields = {
        "user_id": 1,
        "machine_id": 1,
        "start_time": NOW - timedelta(hours=1),
        "duration": timedelta(minutes=30),
        "calories_burned": 300,
        "avg_heart_rate": 140,
        "distance": 5.0,
        "avg_speed": 10.0,
    }
    fields.update(overrides)
    return WorkoutSessionFactory.build(**fields)


class TestValidSession:
    def test_valid_session_passes(self):
        session = _session()

        result = validate_workout_session(session, now=NOW)

        assert result.passed
        assert session.data_quality_flag is True
        assert session.quality_issues is None

    def test_optional_measurements_may_be_missing(self):
        session = _session(avg_heart_rate=None, distance=None, avg_speed=None)

        assert check_session(session, now=NOW).passed


class TestCalories:
    @pytest.mark.parametrize("calories", [1, 1500])
    def test_bounds_are_inclusive(self, calories):
        assert check_session(_session(calories_burned=calories), now=NOW).passed

    @pytest.mark.parametrize(
        ("calories", "message"),
        [
            (None, "Calories burned is required"),
            (0, "Calories burned cannot be less than 1"),
            (-5, "Calories burned cannot be less than 1"),
            (1501, "Calories burned cannot exceed 1500 per session"),
        ],
    )
    def test_out_of_range(self, calories, message):
        result = check_session(_session(calories_burned=calories), now=NOW)
        assert result.issues == (message,)


class TestHeartRate:
    @pytest.mark.parametrize("heart_rate", [40, 220])
    def test_bounds_are_inclusive(self, heart_rate):
        assert check_session(_session(avg_heart_rate=heart_rate), now=NOW).passed

    @pytest.mark.parametrize(
        ("heart_rate", "message"),
        [
            (39, "Heart rate cannot be less than 40 bpm"),
            (221, "Heart rate cannot exceed 220 bpm"),
        ],
    )
    def test_out_of_range(self, heart_rate, message):
        result = check_session(_session(avg_heart_rate=heart_rate), now=NOW)
        assert result.issues == (message,)


class TestDistanceAndSpeed:
    @pytest.mark.parametrize("distance", [0.0, 50.0])
    def test_distance_bounds_are_inclusive(self, distance):
        assert check_session(_session(distance=distance), now=NOW).passed

    @pytest.mark.parametrize(
        ("distance", "message"),
        [
            (-0.1, "Distance cannot be negative"),
            (50.1, "Distance cannot exceed 50 km per session"),
        ],
    )
    def test_distance_out_of_range(self, distance, message):
        assert check_session(_session(distance=distance), now=NOW).issues == (message,)

    @pytest.mark.parametrize(
        ("speed", "message"),
        [
            (-1.0, "Speed cannot be negative"),
            (30.5, "Speed cannot exceed 30 km/h"),
        ],
    )
    def test_speed_out_of_range(self, speed, message):
        assert check_session(_session(avg_speed=speed), now=NOW).issues == (message,)

    def test_speed_of_thirty_passes(self):
        assert check_session(_session(avg_speed=30.0), now=NOW).passed


class TestDuration:
    @pytest.mark.parametrize("minutes", [1, 180])
    def test_bounds_are_inclusive(self, minutes):
        session = _session(duration=timedelta(minutes=minutes))
        assert check_session(session, now=NOW).passed

    def test_partial_minutes_are_truncated(self):
        session = _session(duration=timedelta(minutes=180, seconds=59))
        assert check_session(session, now=NOW).passed

    @pytest.mark.parametrize(
        ("duration", "message"),
        [
            (None, "Workout duration is required"),
            (timedelta(seconds=59), "Workout duration must be at least 1 minute"),
            (timedelta(minutes=-5), "Workout duration must be at least 1 minute"),
            (timedelta(minutes=181), "Workout duration cannot exceed 3 hours"),
        ],
    )
    def test_out_of_range(self, duration, message):
        assert check_session(_session(duration=duration), now=NOW).issues == (message,)

    def test_whole_minutes_truncates_toward_zero(self):
        assert whole_minutes(timedelta(seconds=119)) == 1
        assert whole_minutes(timedelta(seconds=-30)) == 0


class TestStartTime:
    def test_missing_start_time(self):
        result = check_session(_session(start_time=None), now=NOW)
        assert result.issues == ("Start time is required",)

    def test_future_start_time(self):
        result = check_session(_session(start_time=NOW + timedelta(minutes=1)), now=NOW)
        assert result.issues == ("Start time cannot be in the future",)

    def test_start_time_equal_to_now_passes(self):
        assert check_session(_session(start_time=NOW), now=NOW).passed

    def test_start_time_older_than_a_year(self):
        result = check_session(
            _session(start_time=NOW - timedelta(days=366)), now=NOW
        )
        assert result.issues == ("Start time is too far in the past",)

    def test_naive_start_time_is_treated_as_utc(self):
        naive = (NOW - timedelta(hours=1)).replace(tzinfo=None)
        assert check_session(_session(start_time=naive), now=NOW).passed


class TestReferences:
    def test_missing_machine_and_user(self):
        result = check_session(_session(machine_id=None, user_id=None), now=NOW)
        assert result.issues == (
            "Machine information is required",
            "User information is required",
        )


class TestIssueOrder:
    def test_all_issues_reported_in_fixed_order(self):
        session = _session(
            calories_burned=2000,
            avg_heart_rate=30,
            distance=-1.0,
            avg_speed=31.0,
            duration=None,
            start_time=None,
            machine_id=None,
            user_id=None,
        )

        result = validate_workout_session(session, now=NOW)

        assert session.data_quality_flag is False
        assert session.quality_issues == "; ".join(
            [
                "Calories burned cannot exceed 1500 per session",
                "Heart rate cannot be less than 40 bpm",
                "Distance cannot be negative",
                "Speed cannot exceed 30 km/h",
                "Workout duration is required",
                "Start time is required",
                "Machine information is required",
                "User information is required",
            ]
        )
        assert len(result.issues) == 8

    def test_revalidating_a_fixed_session_clears_issues(self):
        session = _session(calories_burned=0)
        validate_workout_session(session, now=NOW)
        assert session.data_quality_flag is False

        session.calories_burned = 250
        validate_workout_session(session, now=NOW)

        assert session.data_quality_flag is True
        assert session.quality_issues is None


class TestQualityScore:
    def test_empty_set_scores_100(self):
        assert score_from_flags([]) == 100.0
        assert calculate_quality_score([]) == 100.0

    def test_seven_of_ten(self):
        assert score_from_flags([True] * 7 + [False] * 3) == 70.0

    def test_unvalidated_sessions_count_against_score(self):
        assert score_from_flags([True, None]) == 50.0

    def test_from_sessions(self):
        sessions = [
            _session(data_quality_flag=True),
            _session(data_quality_flag=False),
            _session(data_quality_flag=True),
            _session(data_quality_flag=True),
        ]
        assert calculate_quality_score(sessions) == 75.0


class TestRangePredicates:
    def test_calories(self):
        assert is_calories_in_range(1)
        assert not is_calories_in_range(None)
        assert not is_calories_in_range(1501)

    def test_heart_rate(self):
        assert is_heart_rate_in_range(None)
        assert is_heart_rate_in_range(220)
        assert not is_heart_rate_in_range(39)

    def test_duration(self):
        assert is_duration_in_range(timedelta(minutes=1))
        assert not is_duration_in_range(None)
        assert not is_duration_in_range(timedelta(minutes=181))
