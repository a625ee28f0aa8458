"""
Tests for the analytics functions.

Tests cover:
1. Rounding helpers
2. Monthly view: daily stats, per-habit progress, summary and mood
3. Dashboard: categories, priority buckets, status totals
4. Yearly view built from backups
"""
import pytest

from habitsync.services import analytics_service as analytics
from habitsync.tests.conftest import checks_with, make_backup, make_habit


class TestRounding:
    """Tests for percent helpers"""

    def test_half_rounds_up(self):
        """12.5% rounds to 13, not to the even 12"""
        assert analytics.percent(1, 8) == 13

    def test_zero_denominator(self):
        assert analytics.percent(3, 0) == 0
        assert analytics.percent_2dp(3, 0) == 0.0

    def test_two_decimals(self):
        """Two-decimal percentages round the scaled value"""
        assert analytics.percent_2dp(1, 3) == 33.33
        assert analytics.percent_2dp(2, 3) == 66.67
        assert analytics.percent_2dp(15, 60) == 25.0


class TestDailyStats:
    """Tests for daily_stats"""

    def test_always_thirty_days(self):
        """Empty habit sets still produce one entry per day"""
        stats = analytics.daily_stats([])

        assert len(stats) == 30
        assert [s.day for s in stats] == list(range(1, 31))
        assert all(s.done == 0 and s.not_done == 0 and s.pct == 0 for s in stats)

    def test_counts_done_per_day(self):
        """done + not_done equals the habit count for every day"""
        habits = [
            make_habit("a", checks_with(10)),
            make_habit("b", checks_with(20)),
            make_habit("c", checks_with(0)),
        ]

        stats = analytics.daily_stats(habits)

        assert stats[0].done == 2
        assert stats[0].pct == 67
        assert stats[15].done == 1
        assert stats[15].pct == 33
        assert stats[29].done == 0
        assert all(s.done + s.not_done == 3 for s in stats)

    def test_short_checks_count_as_not_done(self):
        """Days past the end of a short array are not done"""
        stats = analytics.daily_stats([make_habit("a", [True, True])])

        assert stats[1].done == 1
        assert stats[2].done == 0
        assert stats[2].not_done == 1


class TestHabitProgress:
    """Tests for habit_progress and habit_progress_rows"""

    def test_two_of_thirty(self):
        """Two completed days is 7% of the fixed goal"""
        progress = analytics.habit_progress(make_habit(checks=checks_with(2)))

        assert progress.actual == 2
        assert progress.goal == 30
        assert progress.pct == 7

    def test_full_month(self):
        progress = analytics.habit_progress(make_habit(checks=checks_with(30)))

        assert progress.pct == 100

    def test_rows_carry_id_and_title(self):
        rows = analytics.habit_progress_rows([
            make_habit("a", checks_with(15), title="Read"),
            make_habit("b", checks_with(3), title="Run"),
        ])

        assert [(r.id, r.title, r.pct) for r in rows] == [("a", "Read", 50), ("b", "Run", 10)]


class TestMonthSummary:
    """Tests for month_summary"""

    def test_summary_against_thirty_slots(self):
        summary = analytics.month_summary([
            make_habit("a", checks_with(10)),
            make_habit("b", checks_with(5)),
        ])

        assert summary.total_checks == 15
        assert summary.total_possible == 60
        assert summary.progress_pct == 25.0

    def test_empty_scope(self):
        summary = analytics.month_summary([])

        assert summary.total_possible == 0
        assert summary.progress_pct == 0.0


class TestMoodSeries:
    """Tests for mood_series"""

    def test_offsets_and_clamping(self):
        """Mood is pct+15 and motivation pct+5, both kept within 20..100"""
        daily = analytics.daily_stats([
            make_habit("a", checks_with(1)),
            make_habit("b", checks_with(2)),
        ])

        points = analytics.mood_series(daily)

        assert len(points) == 30
        # Day 1: 100% done
        assert (points[0].mood, points[0].motivation) == (100, 100)
        # Day 2: 50% done
        assert (points[1].mood, points[1].motivation) == (65, 55)
        # Day 3: nothing done
        assert (points[2].mood, points[2].motivation) == (20, 20)


class TestCategoryBreakdown:
    """Tests for category_breakdown"""

    def test_missing_category_is_other(self):
        breakdown = analytics.category_breakdown([
            make_habit("a", checks_with(4), category="Health"),
            make_habit("b", checks_with(3)),
            make_habit("c", checks_with(2), category="Health"),
        ])

        assert breakdown == {"Health": 6, "Other": 3}

    def test_sum_equals_total_completed(self):
        """Category totals add up to every completed check"""
        habits = [
            make_habit("a", checks_with(7), category="Mind"),
            make_habit("b", checks_with(11), category="Body"),
            make_habit("c", checks_with(0)),
            make_habit("d", checks_with(30), category="Mind"),
        ]

        breakdown = analytics.category_breakdown(habits)

        assert sum(breakdown.values()) == sum(h.completed() for h in habits)


class TestPriorityBuckets:
    """Tests for priority_for and priority_buckets"""

    @pytest.mark.parametrize("pct, expected", [
        (100.0, "High"),
        (70.0, "High"),
        (69.99, "Medium"),
        (40.0, "Medium"),
        (39.9, "Low"),
        (0.1, "Low"),
        (0.0, "Optional"),
    ])
    def test_thresholds(self, pct, expected):
        assert analytics.priority_for(pct) == expected

    def test_every_bucket_present(self):
        """Empty buckets are kept in priority order"""
        buckets = analytics.priority_buckets([make_habit("a", checks_with(30))])

        assert list(buckets) == ["High", "Medium", "Low", "Optional"]
        assert buckets == {"High": 1, "Medium": 0, "Low": 0, "Optional": 0}
        assert analytics.non_empty(buckets) == {"High": 1}

    def test_uses_array_length(self):
        """Percentages use the habit's own checks length"""
        buckets = analytics.priority_buckets([
            make_habit("a", [True, False]),
            make_habit("b", checks_with(12)),
            make_habit("c", checks_with(3)),
            make_habit("d", []),
        ])

        assert buckets == {"High": 0, "Medium": 2, "Low": 1, "Optional": 1}


class TestStatusTotals:
    """Tests for status_totals"""

    def test_completed_plus_not_completed(self):
        """Totals cover every slot of every habit"""
        habits = [
            make_habit("a", checks_with(10)),
            make_habit("b", checks_with(4, length=20)),
        ]

        totals = analytics.status_totals(habits)

        assert totals.completed == 14
        assert totals.completed + totals.not_completed == 50

    def test_empty_array_counts_one_slot(self):
        totals = analytics.status_totals([make_habit("a", [])])

        assert totals.completed == 0
        assert totals.not_completed == 1


class TestYearlyAggregate:
    """Tests for yearly_aggregate and overall_year_totals"""

    def test_march_quarter_done(self):
        """15 of 60 slots in March is 25%"""
        backups = [make_backup("March", 2025, [checks_with(10), checks_with(5)])]

        months = analytics.yearly_aggregate(backups, 2025)
        march = months[2]

        assert len(months) == 12
        assert march.full_month == "March"
        assert march.month == "Mar"
        assert march.completed == 15
        assert march.num_habits == 2
        assert march.pct == 25.0
        assert months[0].pct == 0.0
        assert months[0].num_habits == 0

    def test_other_years_ignored(self):
        backups = [
            make_backup("March", 2024, [checks_with(30)], backup_id="old"),
            make_backup("March", 2025, [checks_with(3)], backup_id="new"),
        ]

        march = analytics.yearly_aggregate(backups, 2025)[2]

        assert march.completed == 3

    def test_repeated_backups_are_summed(self):
        """Two backups of the same month both count; habit count is the max"""
        backups = [
            make_backup("April", 2025, [checks_with(6)], backup_id="b1"),
            make_backup("April", 2025, [checks_with(6), checks_with(0)], backup_id="b2"),
        ]

        april = analytics.yearly_aggregate(backups, 2025)[3]

        assert april.completed == 12
        assert april.num_habits == 2
        assert april.pct == 13.33

    def test_year_totals(self):
        backups = [
            make_backup("January", 2025, [checks_with(30)], backup_id="b1"),
            make_backup("June", 2025, [checks_with(0), checks_with(15), checks_with(15)], backup_id="b2"),
            make_backup("June", 2023, [checks_with(30)], backup_id="b3"),
        ]

        totals = analytics.overall_year_totals(backups, 2025)

        assert totals.total_checks == 60
        assert totals.total_possible == 120
        assert totals.max_habits == 3
        assert totals.progress_pct == 50.0

    def test_empty_year(self):
        totals = analytics.overall_year_totals([], 2025)

        assert totals.total_possible == 0
        assert totals.progress_pct == 0.0
