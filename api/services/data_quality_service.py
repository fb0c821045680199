"""Workout data quality validation.

Every workout session is checked against a fixed battery of presence and
range rules before it is stored. The outcome is data, not an error: the
session is saved either way, stamped with

- ``data_quality_flag``: True when no rule was violated
- ``quality_issues``: the violated rules' messages joined by ``"; "``

Rules are evaluated in a fixed order and never short-circuit, so the issue
string always lists every problem in the same sequence.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from core import get_logger

logger = get_logger(__name__)

ISSUE_SEPARATOR = "; "

MIN_CALORIES = 1
MAX_CALORIES = 1500
MIN_HEART_RATE = 40
MAX_HEART_RATE = 220
MAX_DISTANCE_KM = 50
MAX_SPEED_KMH = 30
MIN_DURATION_MINUTES = 1
MAX_DURATION_MINUTES = 180
MAX_START_AGE = timedelta(days=365)


class ValidatableSession(Protocol):
    """Fields the validator reads. Satisfied by ``models.WorkoutSession``."""

    user_id: int | None
    machine_id: int | None
    start_time: datetime | None
    duration: timedelta | None
    calories_burned: int | None
    avg_heart_rate: int | None
    distance: float | None
    avg_speed: float | None
    data_quality_flag: bool | None
    quality_issues: str | None


@dataclass(frozen=True)
class QualityResult:
    """Verdict for one session."""

    issues: tuple[str, ...]

    @property
    def passed(self) -> bool:
        return not self.issues

    @property
    def issues_text(self) -> str | None:
        return ISSUE_SEPARATOR.join(self.issues) if self.issues else None


def whole_minutes(duration: timedelta) -> int:
    """Duration in whole minutes, truncated toward zero (59s -> 0, -30s -> 0)."""
    return int(duration.total_seconds() / 60)


def _check_calories(calories: int | None) -> list[str]:
    if calories is None:
        return ["Calories burned is required"]
    if calories < MIN_CALORIES:
        return ["Calories burned cannot be less than 1"]
    if calories > MAX_CALORIES:
        return ["Calories burned cannot exceed 1500 per session"]
    return []


def _check_heart_rate(heart_rate: int | None) -> list[str]:
    if heart_rate is None:
        return []
    if heart_rate < MIN_HEART_RATE:
        return ["Heart rate cannot be less than 40 bpm"]
    if heart_rate > MAX_HEART_RATE:
        return ["Heart rate cannot exceed 220 bpm"]
    return []


def _check_distance(distance: float | None) -> list[str]:
    if distance is None:
        return []
    if distance < 0:
        return ["Distance cannot be negative"]
    if distance > MAX_DISTANCE_KM:
        return ["Distance cannot exceed 50 km per session"]
    return []


def _check_speed(speed: float | None) -> list[str]:
    if speed is None:
        return []
    if speed < 0:
        return ["Speed cannot be negative"]
    if speed > MAX_SPEED_KMH:
        return ["Speed cannot exceed 30 km/h"]
    return []


def _check_duration(duration: timedelta | None) -> list[str]:
    if duration is None:
        return ["Workout duration is required"]
    minutes = whole_minutes(duration)
    if minutes > MAX_DURATION_MINUTES:
        return ["Workout duration cannot exceed 3 hours"]
    if minutes < MIN_DURATION_MINUTES:
        return ["Workout duration must be at least 1 minute"]
    return []


def _check_start_time(start_time: datetime | None, now: datetime) -> list[str]:
    if start_time is None:
        return ["Start time is required"]
    if start_time.tzinfo is None:
        start_time = start_time.replace(tzinfo=UTC)
    if start_time > now:
        return ["Start time cannot be in the future"]
    if start_time < now - MAX_START_AGE:
        return ["Start time is too far in the past"]
    return []


def check_session(
    session: ValidatableSession, *, now: datetime | None = None
) -> QualityResult:
    """Run every rule against ``session`` without modifying it."""
    now = now or datetime.now(UTC)
    issues = [
        *_check_calories(session.calories_burned),
        *_check_heart_rate(session.avg_heart_rate),
        *_check_distance(session.distance),
        *_check_speed(session.avg_speed),
        *_check_duration(session.duration),
        *_check_start_time(session.start_time, now),
    ]
    if session.machine_id is None:
        issues.append("Machine information is required")
    if session.user_id is None:
        issues.append("User information is required")
    return QualityResult(issues=tuple(issues))


def validate_workout_session(
    session: ValidatableSession, *, now: datetime | None = None
) -> QualityResult:
    """Stamp ``data_quality_flag`` and ``quality_issues`` on ``session``.

    Args:
        session: The (already normalized) session to check. Mutated in place.
        now: Reference time for the start-time rules. Defaults to the
            current UTC time.

    Returns:
        The QualityResult that was written to the session.
    """
    result = check_session(session, now=now)
    session.data_quality_flag = result.passed
    session.quality_issues = result.issues_text

    if not result.passed:
        logger.warning(
            "data_quality.issues_detected",
            session_id=getattr(session, "id", None),
            issue_count=len(result.issues),
            issues=result.issues_text,
        )
    return result


def score_from_flags(flags: Iterable[bool | None]) -> float:
    """Percentage of True flags. A session that was never validated (None)
    counts against the score. An empty set scores 100.0.
    """
    total = 0
    passed = 0
    for flag in flags:
        total += 1
        if flag is True:
            passed += 1
    if total == 0:
        return 100.0
    return passed * 100 / total


def calculate_quality_score(sessions: Iterable[ValidatableSession]) -> float:
    """Data quality score of a set of sessions (see ``score_from_flags``)."""
    return score_from_flags(s.data_quality_flag for s in sessions)


def is_calories_in_range(calories: int | None) -> bool:
    return calories is not None and MIN_CALORIES <= calories <= MAX_CALORIES


def is_heart_rate_in_range(heart_rate: int | None) -> bool:
    """Missing heart rate is acceptable; a present one must be 40..220 bpm."""
    return heart_rate is None or MIN_HEART_RATE <= heart_rate <= MAX_HEART_RATE


def is_duration_in_range(duration: timedelta | None) -> bool:
    if duration is None:
        return False
    return MIN_DURATION_MINUTES <= whole_minutes(duration) <= MAX_DURATION_MINUTES
