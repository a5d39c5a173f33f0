"""
Weekly submission deadlines and the overdue predicate.

Week N of an offering runs for seven days; the activity log for that week is
due ACTIVITY_DEADLINE_GRACE_DAYS after the week ends.

Two anchors are supported:
- Offering start date (preferred): week 1 starts at local midnight on the
  offering's start_date, so a week's deadline never moves.
- No start date: week 1 starts on the Sunday of the calendar week containing
  `now`, keeping the time of day of `now`. The result therefore depends on
  when it is evaluated.

Every overdue check in the project goes through is_overdue().
"""

from datetime import datetime, time, timedelta

from django.conf import settings
from django.utils import timezone

DAYS_PER_WEEK = 7


def grace_days():
    return getattr(settings, 'ACTIVITY_DEADLINE_GRACE_DAYS', 2)


def compute_deadline(week_number, anchor=None, now=None):
    """
    Return the submission deadline for `week_number`.

    Args:
        week_number: 1-based week of the offering (not range-checked here)
        anchor: date of the first day of week 1, or None
        now: evaluation instant, defaults to timezone.now()

    Returns:
        Aware datetime
    """
    offset = timedelta(days=(week_number - 1) * DAYS_PER_WEEK + DAYS_PER_WEEK + grace_days())

    if anchor is not None:
        week_one = timezone.make_aware(
            datetime.combine(anchor, time.min),
            timezone.get_current_timezone(),
        )
        return week_one + offset

    now = now or timezone.now()
    local_now = timezone.localtime(now)
    # Sunday-based week start
    days_since_sunday = (local_now.weekday() + 1) % DAYS_PER_WEEK
    week_start = local_now - timedelta(days=days_since_sunday)
    return week_start + offset


def is_overdue(submitted_at, week_number, anchor=None, now=None):
    """Unsubmitted and past the deadline."""
    if submitted_at is not None:
        return False
    now = now or timezone.now()
    return now > compute_deadline(week_number, anchor=anchor, now=now)


def is_late(submitted_at, week_number, anchor=None):
    """Submitted after the deadline that applied at submission time."""
    if submitted_at is None:
        return False
    return submitted_at > compute_deadline(week_number, anchor=anchor, now=submitted_at)
