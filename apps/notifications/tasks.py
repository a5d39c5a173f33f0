"""
Background jobs for notifications app (django-q2 entry points).

- process_job: one attempt of one NotificationJob
- daily_overdue_check: daily at 9:00 AM
- weekly_deadline_reminder: Mondays at 10:00 AM
- cleanup_notification_jobs: daily at 3:00 AM
- recover_stalled_jobs: every 5 minutes

Schedules are installed by `python manage.py setup_schedules`.
"""

from .services import (
    DAILY_OVERDUE_CHECK, WEEKLY_DEADLINE_REMINDER, cleanup_jobs, get_dispatcher, get_worker,
)


def process_job(job_id):
    return get_worker().process(job_id)


def daily_overdue_check():
    """Queue the overdue check as a recurring-check job."""
    return get_dispatcher().queue_recurring_check(DAILY_OVERDUE_CHECK).pk


def weekly_deadline_reminder():
    """Queue the deadline-approaching check as a recurring-check job."""
    return get_dispatcher().queue_recurring_check(WEEKLY_DEADLINE_REMINDER).pk


def cleanup_notification_jobs():
    return cleanup_jobs()


def recover_stalled_jobs():
    """Retry or fail attempts killed by the cluster timeout or a restart."""
    return get_worker().recover_stalled()
