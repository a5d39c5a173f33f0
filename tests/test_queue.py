"""
Tests for JobQueue on top of django-q2.

The test settings run the cluster in sync mode, so async_task executes the
job inline and one-off schedules are only written, never fired.
"""

from datetime import timedelta

from django.conf import settings
from django.core import mail
from django.test import TestCase, override_settings
from django.utils import timezone
from django_q.models import Schedule

from apps.notifications.models import NotificationJob, NotificationLog
from apps.notifications.queue import PROCESS_JOB_FUNC, POLICIES, JobQueue
from apps.notifications.services import NotificationDispatcher, cleanup_jobs, get_dispatcher
from apps.notifications.worker import DeliveryWorker

from .helpers import FailingTransport

Kind = NotificationJob.Kind
Status = NotificationJob.Status


class BrokenBrokerQueue(JobQueue):
    def push(self, job):
        raise ConnectionError('broker unavailable')


class JobQueueTests(TestCase):

    def setUp(self):
        self.dispatcher = get_dispatcher()

    def test_cluster_runs_inline(self):
        self.assertTrue(settings.Q_CLUSTER['sync'])

    def test_immediate_email_delivered_inline(self):
        job = self.dispatcher.queue_email({
            'to': 'facilitator@example.com', 'subject': 'Hello', 'text': 'Body',
        })

        job.refresh_from_db()
        self.assertEqual(job.status, Status.COMPLETED)
        self.assertEqual(job.attempts_made, 1)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['facilitator@example.com'])
        self.assertEqual(
            NotificationLog.objects.get().status, NotificationLog.Status.SENT
        )
        self.assertFalse(Schedule.objects.exists())

    def test_delayed_job_scheduled_once_at_run_at(self):
        job = self.dispatcher.queue_facilitator_reminder(1, 3, 1, delay=60000)

        scheduled = Schedule.objects.get(name=f'{Kind.FACILITATOR_REMINDER}-{job.pk}-attempt-1')
        self.assertEqual(scheduled.schedule_type, Schedule.ONCE)
        self.assertEqual(scheduled.func, PROCESS_JOB_FUNC)
        self.assertEqual(scheduled.next_run, job.run_at)

        job.refresh_from_db()
        self.assertEqual(job.status, Status.DELAYED)
        self.assertEqual(job.attempts_made, 0)

    def test_failed_email_retry_scheduled_after_backoff(self):
        policy = POLICIES[Kind.SEND_EMAIL]
        job = NotificationJob.objects.create(
            queue=policy.queue,
            kind=Kind.SEND_EMAIL,
            payload={'to': 'a@example.com', 'subject': 'Hello'},
            max_attempts=policy.attempts,
            backoff_type=policy.backoff_type,
            backoff_delay_ms=policy.backoff_delay_ms,
            run_at=timezone.now(),
        )
        worker = DeliveryWorker(NotificationDispatcher(JobQueue()), FailingTransport())

        before = timezone.now()
        self.assertIsNone(worker.process(job.pk))
        after = timezone.now()

        job.refresh_from_db()
        self.assertEqual(job.status, Status.DELAYED)
        retry = Schedule.objects.get(name=f'{Kind.SEND_EMAIL}-{job.pk}-attempt-2')
        self.assertEqual(retry.schedule_type, Schedule.ONCE)
        self.assertEqual(retry.next_run, job.run_at)
        self.assertGreaterEqual(retry.next_run, before + timedelta(seconds=2))
        self.assertLessEqual(retry.next_run, after + timedelta(seconds=2))

    def test_failed_push_leaves_no_job(self):
        dispatcher = NotificationDispatcher(BrokenBrokerQueue())

        with self.assertRaises(ConnectionError):
            dispatcher.queue_email({'to': 'a@example.com', 'subject': 'Hello'})

        self.assertFalse(NotificationJob.objects.exists())

    @override_settings(NOTIFICATION_STALLED_JOB_SECONDS=120)
    def test_cleanup_moves_stalled_email_on(self):
        policy = POLICIES[Kind.SEND_EMAIL]
        job = NotificationJob.objects.create(
            queue=policy.queue,
            kind=Kind.SEND_EMAIL,
            payload={'to': 'a@example.com', 'subject': 'Hello'},
            status=Status.ACTIVE,
            attempts_made=1,
            max_attempts=policy.attempts,
            backoff_type=policy.backoff_type,
            backoff_delay_ms=policy.backoff_delay_ms,
            run_at=timezone.now() - timedelta(days=30),
            started_at=timezone.now() - timedelta(days=30),
        )

        self.assertEqual(cleanup_jobs()['stalled'], 1)

        job.refresh_from_db()
        self.assertEqual(job.status, Status.DELAYED)
        self.assertTrue(
            Schedule.objects.filter(name=f'{Kind.SEND_EMAIL}-{job.pk}-attempt-2').exists()
        )


class SettingsTests(TestCase):

    def test_email_timeout_below_task_timeout(self):
        self.assertLess(settings.EMAIL_TIMEOUT, settings.Q_CLUSTER['timeout'])

    def test_stalled_threshold_not_below_task_timeout(self):
        self.assertGreaterEqual(
            settings.NOTIFICATION_STALLED_JOB_SECONDS, settings.Q_CLUSTER['timeout']
        )

    def test_debug_toolbar_only_in_development(self):
        from config.settings import base, development

        self.assertNotIn('debug_toolbar', settings.INSTALLED_APPS)
        self.assertNotIn('debug_toolbar', base.INSTALLED_APPS)
        self.assertNotIn(
            'debug_toolbar.middleware.DebugToolbarMiddleware', base.MIDDLEWARE
        )
        self.assertIn('debug_toolbar', development.INSTALLED_APPS)
        self.assertEqual(
            development.MIDDLEWARE[0], 'debug_toolbar.middleware.DebugToolbarMiddleware'
        )
