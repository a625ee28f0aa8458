from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional

from habitsync.constants import DAYS_IN_SCOPE, HABIT_COLORS, HABIT_GOAL


class WireModel(BaseModel):
    """Base for models whose JSON form uses the camelCase wire field names"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _coerce_checks(value) -> List[bool]:
    # Documents written by other clients may hold nulls or be missing the array
    if value is None:
        return []
    return [bool(c) for c in value]


class Scope(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    month: str
    year: int


# Habit schemas
class Habit(WireModel):
    id: str
    title: str = ""
    color: str = HABIT_COLORS[0]
    month: str
    year: int
    order: int = 0
    streak: int = 0  # Write-through only, never recomputed
    checks: List[bool] = Field(default_factory=list)
    created_at: int = 0
    category: Optional[str] = None  # Not written by this service

    @field_validator("checks", mode="before")
    @classmethod
    def normalize_checks(cls, value):
        return _coerce_checks(value)

    def check_at(self, index: int) -> bool:
        """Completion of day index+1; missing slots read as not done"""
        return 0 <= index < len(self.checks) and self.checks[index]

    def completed(self) -> int:
        return sum(1 for c in self.checks if c)

    def padded_checks(self) -> List[bool]:
        """Full 30-slot view of the checks array"""
        return [self.check_at(i) for i in range(DAYS_IN_SCOPE)]


class HabitCreate(WireModel):
    title: str = Field(..., min_length=1, max_length=200)
    color: str = HABIT_COLORS[0]
    month: Optional[str] = None  # Defaults to the store's scope
    year: Optional[int] = None
    order: Optional[int] = None  # Defaults to the projection length
    streak: int = Field(default=0, ge=0)
    checks: Optional[List[bool]] = Field(None, max_length=DAYS_IN_SCOPE)

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("color")
    @classmethod
    def check_color(cls, value: str) -> str:
        if value not in HABIT_COLORS:
            raise ValueError(f"color must be one of {', '.join(HABIT_COLORS)}")
        return value


class HabitUpdate(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    color: Optional[str] = None
    order: Optional[int] = None
    streak: Optional[int] = Field(None, ge=0)
    checks: Optional[List[bool]] = Field(None, max_length=DAYS_IN_SCOPE)

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("color")
    @classmethod
    def check_color(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in HABIT_COLORS:
            raise ValueError(f"color must be one of {', '.join(HABIT_COLORS)}")
        return value


# Backup schemas
class HabitSnapshot(WireModel):
    """Reduced habit copy stored inside a backup (no id, order or streak)"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: str = ""
    color: str = HABIT_COLORS[0]
    checks: List[bool] = Field(default_factory=list)

    @field_validator("checks", mode="before")
    @classmethod
    def normalize_checks(cls, value):
        return _coerce_checks(value)

    def completed(self) -> int:
        return sum(1 for c in self.checks if c)


class Backup(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    month: str
    year: int
    habits: List[HabitSnapshot] = Field(default_factory=list)
    created_at: int = 0


class MutationResult(WireModel):
    """Outcome of a create/update/delete; failures are reported, never raised"""
    ok: bool
    id: Optional[str] = None
    error: Optional[str] = None


# Analytics schemas
class DailyStat(WireModel):
    day: int
    done: int
    not_done: int
    pct: int


class HabitProgress(WireModel):
    actual: int
    goal: int = HABIT_GOAL
    pct: int


class HabitProgressRow(HabitProgress):
    id: str
    title: str


class StatusTotals(WireModel):
    completed: int
    not_completed: int


class MonthlyAggregate(WireModel):
    full_month: str
    month: str
    num_habits: int
    completed: int
    pct: float


class YearTotals(WireModel):
    total_checks: int
    total_possible: int
    max_habits: int
    progress_pct: float


class MonthSummary(WireModel):
    total_checks: int
    total_possible: int
    progress_pct: float


class MoodPoint(WireModel):
    day: int
    mood: int
    motivation: int


# API schemas
class ScopeUpdate(WireModel):
    month: str
    year: int = Field(..., ge=1970, le=9999)


class ScopeResponse(WireModel):
    month: Optional[str]
    year: Optional[int]
    state: str
    loading: bool
    habit_count: int
    cap: int


class YearlyResponse(WireModel):
    year: int
    months: List[MonthlyAggregate]
    totals: YearTotals
