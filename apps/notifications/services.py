"""
Service layer for notifications app.

- NotificationDispatcher: enqueue emails, facilitator reminders, manager alerts
- Recurring checks: daily overdue check, weekly deadline-approaching reminder
- Dashboard helpers: queue statistics, recent notifications, cleanup
"""

import logging
from collections import defaultdict
from datetime import timedelta

from django.apps import apps
from django.conf import settings
from django.utils import timezone

from apps.activities.models import ActivityRecord
from .messages import AlertType
from .models import NotificationJob, NotificationLog

logger = logging.getLogger(__name__)

DAILY_OVERDUE_CHECK = 'daily-overdue-check'
WEEKLY_DEADLINE_REMINDER = 'weekly-deadline-reminder'


class NotificationDispatcher:
    """
    Accepts notification requests and puts them on the delivery queue.

    Enqueue is fire-and-forget: callers get the job back immediately and
    never wait on delivery.
    """

    def __init__(self, queue):
        self.queue = queue

    def queue_email(self, payload, delay=0, attempts=None):
        """
        Queue a single email.

        Args:
            payload: dict with 'to', 'subject', 'text', optional 'html' and 'type'
            delay: Milliseconds before the first attempt
            attempts: Max attempts (default 3, exponential backoff from 2 s)
        """
        if not payload.get('to') or not payload.get('subject'):
            raise ValueError("Email payload requires 'to' and 'subject'.")
        job = self.queue.add(
            NotificationJob.Kind.SEND_EMAIL, payload, delay_ms=delay, attempts=attempts
        )
        logger.info("Queued email job %s to %s: %s", job.pk, payload['to'], payload['subject'])
        return job

    def queue_facilitator_reminder(self, facilitator_id, week_number, allocation_id, delay=0):
        """Queue a reminder; processing resolves the facilitator and queues the email."""
        job = self.queue.add(
            NotificationJob.Kind.FACILITATOR_REMINDER,
            {
                'facilitator_id': facilitator_id,
                'week_number': week_number,
                'allocation_id': allocation_id,
            },
            delay_ms=delay,
        )
        logger.info(
            "Queued reminder job %s for facilitator %s, allocation %s, week %s",
            job.pk, facilitator_id, allocation_id, week_number,
        )
        return job

    def queue_manager_alert(self, alert_type, data, delay=0):
        """Queue an alert; processing fans out one email per active manager."""
        job = self.queue.add(
            NotificationJob.Kind.MANAGER_ALERT,
            {'type': alert_type, 'data': data},
            delay_ms=delay,
        )
        logger.info("Queued %s manager alert job %s", alert_type, job.pk)
        return job

    def queue_recurring_check(self, check_name):
        return self.queue.add(NotificationJob.Kind.RECURRING_CHECK, {'check': check_name})


def get_dispatcher():
    """The process-wide dispatcher built by the notifications app config."""
    return apps.get_app_config('notifications').dispatcher


def get_worker():
    return apps.get_app_config('notifications').worker


def due_soon_days():
    return getattr(settings, 'ACTIVITY_DUE_SOON_DAYS', 3)


def _record_summary(record):
    return {
        'id': record.pk,
        'allocation_id': record.allocation_id,
        'week_number': record.week_number,
        'deadline': record.get_deadline().isoformat(),
    }


# =============================================================================
# Recurring checks
# =============================================================================

def check_overdue_submissions(dispatcher=None, now=None):
    """
    Daily job (9:00 AM).

    Actions:
    - One overdue-submission alert to managers, grouped by facilitator
    - One reminder per overdue record to its facilitator
    """
    dispatcher = dispatcher or get_dispatcher()
    overdue = ActivityRecord.objects.overdue(now=now)

    if not overdue:
        logger.info("Overdue check: no overdue activity logs")
        return {'overdue': 0, 'facilitators': 0}

    groups = defaultdict(list)
    for record in overdue:
        groups[record.facilitator_id].append(record)

    dispatcher.queue_manager_alert(AlertType.OVERDUE_SUBMISSION, {
        'count': len(overdue),
        'facilitators': len(groups),
        'details': {
            str(facilitator_id): [_record_summary(record) for record in records]
            for facilitator_id, records in groups.items()
        },
    })

    for facilitator_id, records in groups.items():
        for record in records:
            dispatcher.queue_facilitator_reminder(
                facilitator_id, record.week_number, record.allocation_id
            )

    logger.info(
        "Overdue check: %d overdue logs from %d facilitator(s)", len(overdue), len(groups)
    )
    return {'overdue': len(overdue), 'facilitators': len(groups)}


def send_weekly_deadline_reminders(dispatcher=None, now=None):
    """
    Weekly job (Monday 10:00 AM).

    Reminds facilitators whose unsubmitted logs fall due within
    ACTIVITY_DUE_SOON_DAYS, and alerts managers once if any exist.
    """
    dispatcher = dispatcher or get_dispatcher()
    days = due_soon_days()
    due_soon = ActivityRecord.objects.due_within(timedelta(days=days), now=now)

    for record in due_soon:
        dispatcher.queue_facilitator_reminder(
            record.facilitator_id, record.week_number, record.allocation_id
        )

    if due_soon:
        dispatcher.queue_manager_alert(AlertType.CRITICAL_DEADLINE, {
            'count': len(due_soon),
            'deadline': f'{days} days',
        })

    logger.info("Weekly reminder: %d activity logs due within %d days", len(due_soon), days)
    return {'due_soon': len(due_soon)}


RECURRING_CHECKS = {
    DAILY_OVERDUE_CHECK: check_overdue_submissions,
    WEEKLY_DEADLINE_REMINDER: send_weekly_deadline_reminders,
}


# =============================================================================
# Dashboard & maintenance
# =============================================================================

def get_recent_notifications(limit=20):
    """Most recent unexpired log entries, newest first."""
    entries = NotificationLog.objects.filter(expires_at__gt=timezone.now())[:limit]
    return [entry.as_dict() for entry in entries]


def get_queue_stats(queue=None):
    """Per-queue job counts plus totals across queues."""
    queue = queue or get_dispatcher().queue
    names = NotificationJob.Queue.values
    stats = {name: queue.get_job_counts(name) for name in names}
    stats['total'] = {
        key: sum(stats[name][key] for name in names)
        for key in ('active', 'waiting', 'completed', 'failed')
    }
    return stats


def cleanup_jobs(queue=None, worker=None):
    """
    Age-based retention sweep.

    - Stalled active jobs: failed attempt after NOTIFICATION_STALLED_JOB_SECONDS
    - Completed jobs: NOTIFICATION_COMPLETED_RETENTION_HOURS (24)
    - Failed jobs: NOTIFICATION_FAILED_RETENTION_DAYS (7)
    - Expired notification log entries
    """
    queue = queue or get_dispatcher().queue
    stalled = (worker or get_worker()).recover_stalled()
    completed_age = timedelta(
        hours=getattr(settings, 'NOTIFICATION_COMPLETED_RETENTION_HOURS', 24)
    )
    failed_age = timedelta(days=getattr(settings, 'NOTIFICATION_FAILED_RETENTION_DAYS', 7))

    removed = {
        'stalled': stalled,
        'completed': queue.clean(NotificationJob.Status.COMPLETED, completed_age),
        'failed': queue.clean(NotificationJob.Status.FAILED, failed_age),
    }
    removed['log_entries'], _ = NotificationLog.objects.filter(
        expires_at__lte=timezone.now()
    ).delete()

    logger.info("Queue cleanup completed: %s", removed)
    return removed
