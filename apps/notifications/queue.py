"""
Durable notification queue on top of django-q2.

A NotificationJob row holds the job state (attempts, status, retention).
django-q2 only delivers "process job <id>" messages: immediately through
async_task, or at run_at through a one-off Schedule. add() creates the row
and pushes the message in one transaction; with the ORM broker a failed push
leaves no orphan job behind.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from django.db import transaction
from django.db.models import Count
from django.utils import timezone
from django_q.models import Schedule
from django_q.tasks import async_task, schedule

from .models import NotificationJob

logger = logging.getLogger(__name__)

Kind = NotificationJob.Kind
Queue = NotificationJob.Queue

PROCESS_JOB_FUNC = 'apps.notifications.tasks.process_job'


@dataclass(frozen=True)
class RetryPolicy:
    """Per-kind queue, attempts, backoff and count-based retention."""

    queue: str
    attempts: int
    backoff_type: str = NotificationJob.Backoff.FIXED
    backoff_delay_ms: int = 0
    keep_completed: int = 10
    keep_failed: int = 5


POLICIES = {
    Kind.SEND_EMAIL: RetryPolicy(
        queue=Queue.EMAIL,
        attempts=3,
        backoff_type=NotificationJob.Backoff.EXPONENTIAL,
        backoff_delay_ms=2000,
        keep_completed=10,
        keep_failed=5,
    ),
    Kind.FACILITATOR_REMINDER: RetryPolicy(
        queue=Queue.REMINDER,
        attempts=2,
        keep_completed=5,
        keep_failed=3,
    ),
    Kind.MANAGER_ALERT: RetryPolicy(
        queue=Queue.ALERT,
        attempts=2,
        keep_completed=5,
        keep_failed=3,
    ),
    # Recurring definitions must not accumulate history
    Kind.RECURRING_CHECK: RetryPolicy(
        queue=Queue.REMINDER,
        attempts=1,
        keep_completed=1,
        keep_failed=1,
    ),
}


class JobQueue:
    """
    Named notification queues (email / reminder / alert).

    Constructed once per process by the notifications app config and shared
    by the dispatcher and the delivery worker.
    """

    process_func = PROCESS_JOB_FUNC

    def add(self, kind, payload, delay_ms=0, attempts=None):
        """
        Create a job for `kind` and hand it to django-q2.

        Args:
            kind: NotificationJob.Kind value
            payload: JSON-serializable dict
            delay_ms: Delay before the first attempt
            attempts: Overrides the policy's max attempts

        Returns:
            Created NotificationJob instance
        """
        policy = POLICIES[kind]
        now = timezone.now()
        delay_ms = max(int(delay_ms or 0), 0)

        with transaction.atomic():
            job = NotificationJob.objects.create(
                queue=policy.queue,
                kind=kind,
                payload=payload,
                status=(
                    NotificationJob.Status.DELAYED if delay_ms else NotificationJob.Status.WAITING
                ),
                max_attempts=attempts or policy.attempts,
                backoff_type=policy.backoff_type,
                backoff_delay_ms=policy.backoff_delay_ms,
                run_at=now + timedelta(milliseconds=delay_ms),
            )
            self.push(job)
        return job

    def push(self, job):
        """Deliver a "process job" message for the job's next attempt."""
        if job.run_at > timezone.now():
            schedule(
                self.process_func,
                job.pk,
                name=f'{job.kind}-{job.pk}-attempt-{job.attempts_made + 1}',
                schedule_type=Schedule.ONCE,
                next_run=job.run_at,
            )
            logger.debug("Scheduled %s job %s for %s", job.kind, job.pk, job.run_at)
        else:
            async_task(
                self.process_func,
                job.pk,
                task_name=f'{job.kind}-{job.pk}',
                group=job.queue,
            )
            logger.debug("Enqueued %s job %s", job.kind, job.pk)

    def retry(self, job, delay):
        """Put a failed job back on the queue after `delay`."""
        job.status = NotificationJob.Status.DELAYED
        job.run_at = timezone.now() + delay
        job.save(update_fields=['status', 'run_at', 'last_error'])
        self.push(job)

    def get_job_counts(self, queue):
        """Job counts by status for one named queue."""
        counts = {status: 0 for status in NotificationJob.Status.values}
        rows = (
            NotificationJob.objects.filter(queue=queue)
            .order_by()
            .values('status')
            .annotate(count=Count('id'))
        )
        for row in rows:
            counts[row['status']] = row['count']
        return counts

    def prune_finished(self, kind):
        """Keep only the most recent finished jobs of `kind`, per its policy."""
        policy = POLICIES[kind]
        limits = (
            (NotificationJob.Status.COMPLETED, policy.keep_completed),
            (NotificationJob.Status.FAILED, policy.keep_failed),
        )
        for status, keep in limits:
            stale_ids = list(
                NotificationJob.objects.filter(kind=kind, status=status)
                .order_by('-finished_at', '-pk')
                .values_list('pk', flat=True)[keep:]
            )
            if stale_ids:
                NotificationJob.objects.filter(pk__in=stale_ids).delete()

    def clean(self, status, older_than):
        """Delete finished jobs in `status` that finished before now - older_than."""
        cutoff = timezone.now() - older_than
        deleted, _ = NotificationJob.objects.filter(
            status=status, finished_at__lt=cutoff
        ).delete()
        return deleted
