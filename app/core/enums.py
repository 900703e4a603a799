"""Shared enums for the engine and API."""

from enum import Enum


class SessionState(str, Enum):
    """Lifecycle of the session store."""

    IDLE = "idle"
    ACTIVE = "active"
    DRIFT_CHECK = "drift_check"  # Finished, waiting for the "update template?" decision


class PrimaryGoal(str, Enum):
    """User's primary training goal (drives the overload multiplier)."""

    MUSCLE_GAIN = "muscle_gain"
    STRENGTH = "strength"
    WEIGHT_LOSS = "weight_loss"
    ATHLETIC_PERFORMANCE = "athletic_performance"
    GENERAL_FITNESS = "general_fitness"


class UnitSystem(str, Enum):
    LBS = "lbs"
    KG = "kg"


class SetField(str, Enum):
    """Editable numeric fields of a set."""

    REPS = "reps"
    WEIGHT = "weight"


class MoveDirection(str, Enum):
    UP = "up"
    DOWN = "down"


class PerformanceTrend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class ExerciseType(str, Enum):
    """Rough movement class used for default rest durations."""

    COMPOUND = "compound"
    ISOLATION = "isolation"
    CARDIO = "cardio"
    CORE = "core"


class CoachingScope(str, Enum):
    """Whether a weight suggestion targets the next set or the next workout."""

    NEXT_SET = "next_set"
    NEXT_WORKOUT = "next_workout"


class StatsPeriod(str, Enum):
    WEEK = "week"
    MONTH = "month"
    ALL = "all"
