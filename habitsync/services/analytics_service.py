"""
Analytics - derived statistics for the monthly, dashboard and yearly views.

Pure functions over habit and backup projections: no I/O, no state.

Two precisions are used and kept apart:
- integer percentages (per-day bars, per-habit progress): round(x)
- two-decimal percentages (monthly and yearly progress): round(x * 100) / 100
Rounding is half-up, like the web client.
"""
import math
from typing import Dict, Iterable, List, Sequence, Tuple

from habitsync.constants import (
    DAYS_IN_SCOPE,
    DEFAULT_CATEGORY,
    HABIT_GOAL,
    MOOD_CEILING,
    MOOD_FLOOR,
    MOOD_OFFSET,
    MOTIVATION_OFFSET,
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    PRIORITY_OPTIONAL,
    PRIORITY_THRESHOLDS,
)
from habitsync.schemas import (
    Backup,
    DailyStat,
    Habit,
    HabitProgress,
    HabitProgressRow,
    MonthlyAggregate,
    MonthSummary,
    MoodPoint,
    StatusTotals,
    YearTotals,
)
from habitsync.services.date_service import MONTHS, DateService


def round_half_up(value: float) -> int:
    """Nearest integer, ties away from zero for the non-negative inputs used here"""
    return int(math.floor(value + 0.5))


def percent(part: int, whole: int) -> int:
    """Integer percentage; 0 when there is nothing to divide by"""
    if whole == 0:
        return 0
    return round_half_up(part / whole * 100)


def percent_2dp(part: int, whole: int) -> float:
    """Percentage with two decimals (scale by 100, round, divide)"""
    if whole == 0:
        return 0.0
    return round_half_up(part / whole * 10000) / 100


# === Monthly view ===

def daily_stats(habits: Sequence[Habit]) -> List[DailyStat]:
    """
    Completion per day of the scope.

    Always returns DAYS_IN_SCOPE entries, also for an empty habit set.
    """
    count = len(habits)
    stats = []
    for index in range(DAYS_IN_SCOPE):
        done = sum(1 for h in habits if h.check_at(index))
        stats.append(DailyStat(
            day=index + 1,
            done=done,
            not_done=max(0, count - done),
            pct=percent(done, count)
        ))
    return stats


def habit_progress(habit: Habit) -> HabitProgress:
    """Completed days against the fixed monthly goal"""
    actual = habit.completed()
    return HabitProgress(actual=actual, goal=HABIT_GOAL, pct=percent(actual, HABIT_GOAL))


def habit_progress_rows(habits: Iterable[Habit]) -> List[HabitProgressRow]:
    """habit_progress for each habit, labelled with its id and title"""
    rows = []
    for habit in habits:
        progress = habit_progress(habit)
        rows.append(HabitProgressRow(id=habit.id, title=habit.title, **progress.model_dump()))
    return rows


def month_summary(habits: Sequence[Habit]) -> MonthSummary:
    """Overall progress of a scope against len(habits) x 30 slots"""
    total_checks = sum(h.completed() for h in habits)
    total_possible = len(habits) * DAYS_IN_SCOPE
    return MonthSummary(
        total_checks=total_checks,
        total_possible=total_possible,
        progress_pct=percent_2dp(total_checks, max(1, total_possible))
    )


def mood_series(daily: Iterable[DailyStat]) -> List[MoodPoint]:
    """Mood and motivation curves derived from the daily completion pct"""

    def clamp(value: int) -> int:
        return min(MOOD_CEILING, max(MOOD_FLOOR, value))

    return [
        MoodPoint(
            day=d.day,
            mood=clamp(d.pct + MOOD_OFFSET),
            motivation=clamp(d.pct + MOTIVATION_OFFSET)
        )
        for d in daily
    ]


# === Dashboard ===

def _possible(habit: Habit) -> int:
    # Guards the per-habit ratio; an empty array counts as one slot
    return len(habit.checks) or 1


def category_breakdown(habits: Iterable[Habit]) -> Dict[str, int]:
    """Completed checks per category (missing category counts as Other)"""
    breakdown: Dict[str, int] = {}
    for habit in habits:
        category = habit.category or DEFAULT_CATEGORY
        breakdown[category] = breakdown.get(category, 0) + habit.completed()
    return breakdown


def priority_for(pct: float) -> str:
    """First bucket of PRIORITY_THRESHOLDS whose lower bound pct clears"""
    for lower_bound, strict, label in PRIORITY_THRESHOLDS:
        if pct > lower_bound or (not strict and pct == lower_bound):
            return label
    return PRIORITY_OPTIONAL


def priority_buckets(habits: Iterable[Habit]) -> Dict[str, int]:
    """
    Number of habits per priority bucket.

    Every bucket is present, including empty ones; use non_empty() to drop
    them for display.
    """
    buckets = {PRIORITY_HIGH: 0, PRIORITY_MEDIUM: 0, PRIORITY_LOW: 0, PRIORITY_OPTIONAL: 0}
    for habit in habits:
        pct = habit.completed() / _possible(habit) * 100
        buckets[priority_for(pct)] += 1
    return buckets


def non_empty(mapping: Dict[str, int]) -> Dict[str, int]:
    return {key: value for key, value in mapping.items() if value > 0}


def status_totals(habits: Iterable[Habit]) -> StatusTotals:
    """Completed vs not completed slots across all habits"""
    total_slots = 0
    total_completed = 0
    for habit in habits:
        total_slots += _possible(habit)
        total_completed += habit.completed()
    return StatusTotals(
        completed=total_completed,
        not_completed=max(0, total_slots - total_completed)
    )


# === Yearly view (backups) ===

def backups_for_year(backups: Iterable[Backup], year: int) -> List[Backup]:
    return [b for b in backups if b.year == int(year)]


def _reduce(backups: Iterable[Backup]) -> Tuple[int, int, int]:
    """
    (completed, possible, max habits) over a set of backups.

    Every backup counts, so two backups of one month are both summed.
    """
    total_checks = 0
    total_possible = 0
    max_habits = 0
    for backup in backups:
        max_habits = max(max_habits, len(backup.habits))
        for snapshot in backup.habits:
            total_possible += len(snapshot.checks)
            total_checks += snapshot.completed()
    return total_checks, total_possible, max_habits


def yearly_aggregate(backups: Iterable[Backup], year: int) -> List[MonthlyAggregate]:
    """Per-month totals for one year, January to December"""
    year_backups = backups_for_year(backups, year)
    months = []
    for full_name in MONTHS:
        completed, possible, max_habits = _reduce(b for b in year_backups if b.month == full_name)
        months.append(MonthlyAggregate(
            full_month=full_name,
            month=DateService.short_month(full_name),
            num_habits=max_habits,
            completed=completed,
            pct=percent_2dp(completed, possible)
        ))
    return months


def overall_year_totals(backups: Iterable[Backup], year: int) -> YearTotals:
    """The yearly_aggregate reduction over the whole year at once"""
    completed, possible, max_habits = _reduce(backups_for_year(backups, year))
    return YearTotals(
        total_checks=completed,
        total_possible=possible,
        max_habits=max_habits,
        progress_pct=percent_2dp(completed, possible)
    )
