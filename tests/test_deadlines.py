"""
Tests for weekly deadline computation and the overdue predicate.
"""

from datetime import date, datetime, timedelta, timezone as dt_timezone

from django.test import SimpleTestCase, override_settings

from apps.activities.deadlines import compute_deadline, is_late, is_overdue

UTC = dt_timezone.utc


@override_settings(TIME_ZONE='UTC', ACTIVITY_DEADLINE_GRACE_DAYS=2)
class AnchoredDeadlineTests(SimpleTestCase):
    """Offering start date anchors every week's deadline."""

    start = date(2025, 1, 6)

    def test_week_one_due_end_of_week_plus_grace(self):
        self.assertEqual(
            compute_deadline(1, anchor=self.start),
            datetime(2025, 1, 15, tzinfo=UTC),
        )

    def test_each_week_adds_seven_days(self):
        week_one = compute_deadline(1, anchor=self.start)
        for week in range(2, 21):
            self.assertEqual(
                compute_deadline(week, anchor=self.start) - week_one,
                timedelta(days=7 * (week - 1)),
            )

    def test_independent_of_evaluation_time(self):
        first = compute_deadline(4, anchor=self.start, now=datetime(2025, 1, 1, tzinfo=UTC))
        later = compute_deadline(4, anchor=self.start, now=datetime(2025, 6, 30, 18, tzinfo=UTC))
        self.assertEqual(first, later)

    @override_settings(ACTIVITY_DEADLINE_GRACE_DAYS=0)
    def test_grace_days_setting(self):
        self.assertEqual(
            compute_deadline(1, anchor=self.start),
            datetime(2025, 1, 13, tzinfo=UTC),
        )

    @override_settings(TIME_ZONE='Asia/Kolkata')
    def test_deadline_is_local_midnight(self):
        deadline = compute_deadline(1, anchor=self.start)
        self.assertEqual(deadline, datetime(2025, 1, 14, 18, 30, tzinfo=UTC))


@override_settings(TIME_ZONE='UTC', ACTIVITY_DEADLINE_GRACE_DAYS=2)
class CalendarWeekDeadlineTests(SimpleTestCase):
    """Without a start date, week 1 starts on the Sunday of the current week."""

    def test_midweek(self):
        now = datetime(2025, 1, 8, 12, 0, tzinfo=UTC)  # Wednesday
        self.assertEqual(compute_deadline(1, now=now), datetime(2025, 1, 14, 12, 0, tzinfo=UTC))
        self.assertEqual(compute_deadline(3, now=now), datetime(2025, 1, 28, 12, 0, tzinfo=UTC))

    def test_sunday_is_week_start(self):
        now = datetime(2025, 1, 5, 9, 0, tzinfo=UTC)  # Sunday
        self.assertEqual(compute_deadline(1, now=now), datetime(2025, 1, 14, 9, 0, tzinfo=UTC))

    def test_saturday_belongs_to_previous_sunday(self):
        now = datetime(2025, 1, 11, 9, 0, tzinfo=UTC)  # Saturday
        self.assertEqual(compute_deadline(1, now=now), datetime(2025, 1, 14, 9, 0, tzinfo=UTC))

    def test_same_instant_same_result(self):
        now = datetime(2025, 3, 19, 7, 45, tzinfo=UTC)
        self.assertEqual(compute_deadline(5, now=now), compute_deadline(5, now=now))


@override_settings(TIME_ZONE='UTC', ACTIVITY_DEADLINE_GRACE_DAYS=2)
class OverduePredicateTests(SimpleTestCase):

    start = date(2025, 1, 6)
    deadline = datetime(2025, 1, 15, tzinfo=UTC)

    def test_submitted_is_never_overdue(self):
        submitted = datetime(2025, 1, 20, tzinfo=UTC)
        self.assertFalse(
            is_overdue(submitted, 1, anchor=self.start, now=datetime(2026, 1, 1, tzinfo=UTC))
        )

    def test_unsubmitted_past_deadline(self):
        self.assertTrue(
            is_overdue(None, 1, anchor=self.start, now=self.deadline + timedelta(seconds=1))
        )

    def test_not_overdue_at_deadline(self):
        self.assertFalse(is_overdue(None, 1, anchor=self.start, now=self.deadline))

    def test_calendar_week_deadline_is_always_ahead(self):
        now = datetime(2025, 1, 8, 12, 0, tzinfo=UTC)
        self.assertFalse(is_overdue(None, 1, now=now))

    def test_late_submission(self):
        self.assertTrue(is_late(self.deadline + timedelta(hours=1), 1, anchor=self.start))
        self.assertFalse(is_late(self.deadline - timedelta(hours=1), 1, anchor=self.start))
        self.assertFalse(is_late(None, 1, anchor=self.start))
