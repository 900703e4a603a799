"""User preferences consumed (read-only) by the session engine."""

from pydantic import BaseModel, Field, model_validator

from app.core.enums import PrimaryGoal, UnitSystem


class RepRange(BaseModel):
    min: int = Field(8, ge=1)
    max: int = Field(12, ge=1)

    @model_validator(mode="after")
    def _ordered(self) -> "RepRange":
        if self.min > self.max:
            raise ValueError("min reps must not exceed max reps")
        return self


class ProgressiveOverloadConfig(BaseModel):
    """How much and when to increase weight.

    Example (target 8-12, increase at 12, +5): 185x8, 185x10, 185x12 → next
    workout starts at 190.
    """

    weight_increment: float = Field(5, gt=0)
    target_rep_range: RepRange = RepRange()
    increase_at_reps: int = Field(12, ge=1)


class WorkoutPreferences(BaseModel):
    primary_goal: PrimaryGoal = PrimaryGoal.MUSCLE_GAIN
    unit_system: UnitSystem = UnitSystem.LBS
    enable_progressive_overload: bool = False
    progressive_overload_config: ProgressiveOverloadConfig = ProgressiveOverloadConfig()
    rest_timer_enabled: bool = True
    custom_default_rest_seconds: int | None = Field(None, ge=0, le=600)
    enable_rest_timer_sound: bool = True


class WorkoutPreferencesUpdate(BaseModel):
    primary_goal: PrimaryGoal | None = None
    unit_system: UnitSystem | None = None
    enable_progressive_overload: bool | None = None
    progressive_overload_config: ProgressiveOverloadConfig | None = None
    rest_timer_enabled: bool | None = None
    custom_default_rest_seconds: int | None = Field(None, ge=0, le=600)
    enable_rest_timer_sound: bool | None = None
