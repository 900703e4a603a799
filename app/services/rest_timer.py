"""Rest timer anchored to an absolute wall-clock end time.

The timer never decrements a counter: it stores when the rest ends and
recomputes what is left on every tick, so a suspended process picks up the
right value when it resumes.
"""

from __future__ import annotations

import logging
import math

from app.core.constants import DEFAULT_REST_SECONDS, REST_TIMER_MAX_SECONDS
from app.core.enums import ExerciseType
from app.schemas.events import RestComplete, RestTimerArmed
from app.schemas.rest_timer import RestTimerState
from app.services.clock import Clock, SystemClock, now_ms

logger = logging.getLogger(__name__)

_CARDIO_KEYWORDS = ("run", "jog", "walk", "bike", "cycle", "jump rope", "burpee", "mountain climber", "treadmill", "elliptical")
_CORE_KEYWORDS = ("plank", "crunch", "sit up", "sit-up", "ab ", "abs", "leg raise", "russian twist", "hollow")
_COMPOUND_KEYWORDS = (
    "squat",
    "deadlift",
    "bench press",
    "overhead press",
    "military press",
    "pull up",
    "pull-up",
    "chin up",
    "chin-up",
    "dip",
    "row",
    "lunge",
    "clean",
    "snatch",
    "thruster",
    "push press",
    "leg press",
    "hip thrust",
)

REST_SECONDS_BY_TYPE: dict[ExerciseType, int] = {
    ExerciseType.COMPOUND: 180,
    ExerciseType.ISOLATION: 90,
    ExerciseType.CARDIO: 60,
    ExerciseType.CORE: 60,
}


def classify_exercise(name: str) -> ExerciseType:
    lowered = f"{name.lower()} "
    # Core before cardio: "crunch" contains "run"
    if any(kw in lowered for kw in _CORE_KEYWORDS):
        return ExerciseType.CORE
    # "row" is both a rowing machine and a barbell row
    if "rowing machine" in lowered or any(kw in lowered for kw in _CARDIO_KEYWORDS):
        return ExerciseType.CARDIO
    if any(kw in lowered for kw in _COMPOUND_KEYWORDS):
        return ExerciseType.COMPOUND
    return ExerciseType.ISOLATION


def default_rest_seconds(exercise_name: str, custom_default: int | None = None) -> int:
    """Rest duration to arm after a set: the user's own default wins over the lookup."""
    if custom_default:
        return custom_default
    if not exercise_name.strip():
        return DEFAULT_REST_SECONDS
    return REST_SECONDS_BY_TYPE[classify_exercise(exercise_name)]


class RestTimer:
    """Single rest timer. Starting a new one supersedes whatever was armed."""

    def __init__(self, clock: Clock | None = None, max_seconds: int = REST_TIMER_MAX_SECONDS):
        self.clock = clock or SystemClock()
        self.max_seconds = max_seconds
        self._end_ms: int | None = None
        self._duration = 0
        self._exercise_name = ""

    @property
    def active(self) -> bool:
        return self._end_ms is not None

    def start(self, duration_seconds: int, exercise_name: str = "") -> RestTimerArmed:
        duration = max(0, int(duration_seconds))
        self._end_ms = now_ms(self.clock) + duration * 1000
        self._duration = duration
        self._exercise_name = exercise_name
        logger.debug("Rest timer armed for %ss (%s)", duration, exercise_name)
        return RestTimerArmed(
            exercise_name=exercise_name,
            duration_seconds=duration,
            end_timestamp=self._end_ms,
        )

    def remaining(self) -> int:
        if self._end_ms is None:
            return 0
        return max(0, math.ceil((self._end_ms - now_ms(self.clock)) / 1000))

    def tick(self) -> list[RestComplete]:
        """Recompute from the stored end time; fires once when rest is over."""
        if self._end_ms is None:
            return []
        if self.remaining() > 0:
            return []
        return [self._complete()]

    def adjust(self, delta_seconds: int) -> list[RestComplete]:
        if self._end_ms is None:
            return []
        new_remaining = min(self.max_seconds, max(0, self.remaining() + int(delta_seconds)))
        if new_remaining == 0:
            return [self._complete()]
        self._end_ms = now_ms(self.clock) + new_remaining * 1000
        return []

    def skip(self) -> None:
        self._clear()

    def state(self) -> RestTimerState:
        return RestTimerState(
            active=self.active,
            end_timestamp=self._end_ms,
            duration_seconds=self._duration,
            exercise_name=self._exercise_name,
            remaining_seconds=self.remaining(),
        )

    def _complete(self) -> RestComplete:
        event = RestComplete(exercise_name=self._exercise_name)
        self._clear()
        return event

    def _clear(self) -> None:
        self._end_ms = None
        self._duration = 0
        self._exercise_name = ""
