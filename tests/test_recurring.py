"""
Tests for recurring checks, the notification log and queue maintenance.
"""

from datetime import date, datetime, timedelta, timezone as dt_timezone
from io import StringIO

from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from django_q.models import Schedule

from apps.notifications.messages import AlertType
from apps.notifications.models import NotificationJob, NotificationLog, log_notification
from apps.notifications.services import (
    DAILY_OVERDUE_CHECK, check_overdue_submissions, cleanup_jobs, get_queue_stats,
    get_recent_notifications, send_weekly_deadline_reminders,
)

from .helpers import make_facilitator, make_offering, make_pipeline, make_record

UTC = dt_timezone.utc
Kind = NotificationJob.Kind
Status = NotificationJob.Status


@override_settings(TIME_ZONE='UTC')
class OverdueCheckTests(TestCase):

    def setUp(self):
        self.queue, self.dispatcher, self.worker = make_pipeline()
        self.now = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)

    def test_no_overdue_records_queues_nothing(self):
        result = check_overdue_submissions(dispatcher=self.dispatcher, now=self.now)

        self.assertEqual(result, {'overdue': 0, 'facilitators': 0})
        self.assertFalse(NotificationJob.objects.exists())

    def test_groups_overdue_records_by_facilitator(self):
        first, second = make_facilitator(), make_facilitator()
        make_record(make_offering(facilitator=first), week_number=1)
        make_record(make_offering(facilitator=first), week_number=2)
        make_record(make_offering(facilitator=second), week_number=1)
        done = make_record(make_offering(facilitator=second), week_number=3)
        done.submit(now=self.now)

        result = check_overdue_submissions(dispatcher=self.dispatcher, now=self.now)

        self.assertEqual(result, {'overdue': 3, 'facilitators': 2})
        alert = NotificationJob.objects.get(kind=Kind.MANAGER_ALERT)
        self.assertEqual(alert.payload['type'], AlertType.OVERDUE_SUBMISSION)
        self.assertEqual(alert.payload['data']['count'], 3)
        self.assertEqual(alert.payload['data']['facilitators'], 2)
        self.assertEqual(len(alert.payload['data']['details'][str(first.pk)]), 2)
        self.assertEqual(len(alert.payload['data']['details'][str(second.pk)]), 1)

        reminders = NotificationJob.objects.filter(kind=Kind.FACILITATOR_REMINDER)
        self.assertEqual(reminders.count(), 3)
        self.assertEqual(
            sorted(job.payload['facilitator_id'] for job in reminders),
            sorted([first.pk, first.pk, second.pk]),
        )

    def test_recurring_job_runs_check(self):
        make_record(make_offering(facilitator=make_facilitator()))
        job = self.dispatcher.queue_recurring_check(DAILY_OVERDUE_CHECK)

        result = self.worker.process(job.pk)

        self.assertEqual(result['overdue'], 1)
        job.refresh_from_db()
        self.assertEqual(job.status, Status.COMPLETED)
        self.assertEqual(job.max_attempts, 1)


@override_settings(TIME_ZONE='UTC', ACTIVITY_DUE_SOON_DAYS=3)
class WeeklyReminderTests(TestCase):

    def setUp(self):
        self.queue, self.dispatcher, _ = make_pipeline()
        self.now = datetime(2025, 3, 1, 10, 0, tzinfo=UTC)
        self.facilitator = make_facilitator()

    def test_reminds_logs_due_soon(self):
        # deadlines: 2025-03-03 (due soon), 2025-03-10 (later), 2025-01-15 (overdue)
        due = make_record(make_offering(facilitator=self.facilitator, start_date=date(2025, 2, 22)))
        make_record(make_offering(facilitator=self.facilitator, start_date=date(2025, 3, 1)))
        make_record(make_offering(facilitator=self.facilitator))

        result = send_weekly_deadline_reminders(dispatcher=self.dispatcher, now=self.now)

        self.assertEqual(result, {'due_soon': 1})
        reminder = NotificationJob.objects.get(kind=Kind.FACILITATOR_REMINDER)
        self.assertEqual(reminder.payload['allocation_id'], due.allocation_id)
        alert = NotificationJob.objects.get(kind=Kind.MANAGER_ALERT)
        self.assertEqual(alert.payload['type'], AlertType.CRITICAL_DEADLINE)
        self.assertEqual(alert.payload['data'], {'count': 1, 'deadline': '3 days'})

    def test_nothing_due_sends_no_alert(self):
        make_record(make_offering(facilitator=self.facilitator, start_date=date(2025, 3, 1)))

        send_weekly_deadline_reminders(dispatcher=self.dispatcher, now=self.now)

        self.assertFalse(NotificationJob.objects.exists())


class NotificationLogTests(TestCase):

    def test_entry_expires_after_ttl(self):
        entry = log_notification(type=NotificationLog.Type.EMAIL, recipient='a@example.com')
        self.assertEqual(entry.expires_at - entry.created_at, timedelta(days=7))
        self.assertEqual(entry.status, NotificationLog.Status.QUEUED)

    @override_settings(NOTIFICATION_RECENT_MAX=5)
    def test_log_is_bounded(self):
        for n in range(8):
            log_notification(type=NotificationLog.Type.EMAIL, recipient=f'user{n}@example.com')

        self.assertEqual(NotificationLog.objects.count(), 5)
        self.assertEqual(
            [entry['recipient'] for entry in get_recent_notifications(limit=20)],
            [f'user{n}@example.com' for n in range(7, 2, -1)],
        )

    def test_recent_newest_first_with_limit(self):
        for n in range(4):
            log_notification(type=NotificationLog.Type.ALERT, recipient=f'r{n}')

        recent = get_recent_notifications(limit=2)
        self.assertEqual([entry['recipient'] for entry in recent], ['r3', 'r2'])
        self.assertIn('timestamp', recent[0])
        self.assertNotIn('error', recent[0])

    def test_recent_excludes_expired(self):
        fresh = log_notification(type=NotificationLog.Type.EMAIL, recipient='fresh')
        stale = log_notification(type=NotificationLog.Type.EMAIL, recipient='stale')
        stale.expires_at = timezone.now() - timedelta(seconds=1)
        stale.save(update_fields=['expires_at'])

        self.assertEqual(
            [entry['recipient'] for entry in get_recent_notifications()], [fresh.recipient]
        )


class QueueMaintenanceTests(TestCase):

    def setUp(self):
        self.queue, self.dispatcher, self.worker = make_pipeline()

    def test_queue_stats(self):
        sent = self.dispatcher.queue_email({'to': 'a@example.com', 'subject': 'Hi'})
        self.worker.process(sent.pk)
        self.dispatcher.queue_email({'to': 'b@example.com', 'subject': 'Hi'})
        self.dispatcher.queue_manager_alert(AlertType.CRITICAL_DEADLINE, {}, delay=5000)

        stats = get_queue_stats(queue=self.queue)

        self.assertEqual(stats['email']['completed'], 1)
        self.assertEqual(stats['email']['waiting'], 1)
        self.assertEqual(stats['alert']['delayed'], 1)
        self.assertEqual(stats['reminder']['waiting'], 0)
        self.assertEqual(
            stats['total'], {'active': 0, 'waiting': 1, 'completed': 1, 'failed': 0}
        )

    @override_settings(
        NOTIFICATION_COMPLETED_RETENTION_HOURS=24, NOTIFICATION_FAILED_RETENTION_DAYS=7
    )
    def test_cleanup_by_age(self):
        now = timezone.now()

        def finished(status, age):
            return NotificationJob.objects.create(
                queue=NotificationJob.Queue.EMAIL, kind=Kind.SEND_EMAIL,
                status=status, finished_at=now - age,
            )

        old_completed = finished(Status.COMPLETED, timedelta(hours=25))
        new_completed = finished(Status.COMPLETED, timedelta(hours=1))
        old_failed = finished(Status.FAILED, timedelta(days=8))
        new_failed = finished(Status.FAILED, timedelta(days=2))
        expired = log_notification(type=NotificationLog.Type.EMAIL, recipient='old')
        NotificationLog.objects.filter(pk=expired.pk).update(expires_at=now - timedelta(days=1))

        removed = cleanup_jobs(queue=self.queue, worker=self.worker)

        self.assertEqual(
            removed, {'stalled': 0, 'completed': 1, 'failed': 1, 'log_entries': 1}
        )
        remaining = set(NotificationJob.objects.values_list('pk', flat=True))
        self.assertEqual(remaining, {new_completed.pk, new_failed.pk})
        self.assertNotIn(old_completed.pk, remaining)
        self.assertNotIn(old_failed.pk, remaining)

    @override_settings(NOTIFICATION_STALLED_JOB_SECONDS=120)
    def test_cleanup_recovers_stalled_jobs(self):
        job = self.dispatcher.queue_email({'to': 'a@example.com', 'subject': 'Hi'})
        NotificationJob.objects.filter(pk=job.pk).update(
            status=Status.ACTIVE, attempts_made=1, started_at=timezone.now() - timedelta(days=30)
        )

        removed = cleanup_jobs(queue=self.queue, worker=self.worker)

        self.assertEqual(removed['stalled'], 1)
        job.refresh_from_db()
        self.assertEqual(job.status, Status.DELAYED)
        self.assertIn('stalled', job.last_error)


class SetupSchedulesCommandTests(TestCase):

    def test_installs_cron_schedules_idempotently(self):
        call_command('setup_schedules', stdout=StringIO())
        call_command('setup_schedules', stdout=StringIO())

        schedules = Schedule.objects.order_by('name')
        self.assertEqual(schedules.count(), 4)
        self.assertEqual(
            {schedule.func: schedule.cron for schedule in schedules},
            {
                'apps.notifications.tasks.daily_overdue_check': '0 9 * * *',
                'apps.notifications.tasks.weekly_deadline_reminder': '0 10 * * 1',
                'apps.notifications.tasks.cleanup_notification_jobs': '0 3 * * *',
                'apps.notifications.tasks.recover_stalled_jobs': '*/5 * * * *',
            },
        )
        self.assertTrue(all(s.schedule_type == Schedule.CRON for s in schedules))
