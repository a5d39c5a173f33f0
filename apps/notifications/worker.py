"""
Delivery worker for notification jobs.

process() runs one attempt of one job:
1. Claim it (waiting/delayed -> active) with a conditional UPDATE, so a job
   has at most one attempt in flight across workers.
2. Run the handler for its kind.
3. Mark it completed, or put it back with backoff, or fail it for good.

Handler exceptions never escape process(); a terminal failure is visible
only through the job row, the notification log and the application log.
"""

import logging

from django.db.models import F
from django.utils import timezone

from apps.accounts.models import Facilitator, Manager
from apps.activities.deadlines import compute_deadline
from apps.courses.models import CourseOffering
from .messages import build_facilitator_reminder, build_manager_alert
from .models import NotificationJob, NotificationLog, log_notification, stalled_after
from .services import RECURRING_CHECKS

logger = logging.getLogger(__name__)

Kind = NotificationJob.Kind
Status = NotificationJob.Status


class DeliveryWorker:
    """Processes queued jobs through a kind -> handler dispatch table."""

    def __init__(self, dispatcher, transport):
        self.dispatcher = dispatcher
        self.queue = dispatcher.queue
        self.transport = transport
        self.handlers = {
            Kind.SEND_EMAIL: self.send_email,
            Kind.FACILITATOR_REMINDER: self.remind_facilitator,
            Kind.MANAGER_ALERT: self.alert_managers,
            Kind.RECURRING_CHECK: self.run_recurring_check,
        }

    def process(self, job_id):
        """
        Run the next attempt of a job.

        Returns:
            The handler result, or None if the job was not runnable or the
            attempt failed.
        """
        now = timezone.now()
        claimed = NotificationJob.objects.filter(
            pk=job_id, status__in=[Status.WAITING, Status.DELAYED], run_at__lte=now
        ).update(
            status=Status.ACTIVE,
            attempts_made=F('attempts_made') + 1,
            started_at=now,
        )
        if not claimed:
            logger.info("Job %s is not waiting or not due yet, skipping", job_id)
            return None

        job = NotificationJob.objects.get(pk=job_id)
        handler = self.handlers[job.kind]

        try:
            result = handler(job)
        except Exception as exc:
            self._record_failure(job, exc)
            return None

        job.status = Status.COMPLETED
        job.finished_at = timezone.now()
        job.result = result
        job.last_error = ''
        job.save(update_fields=['status', 'finished_at', 'result', 'last_error'])
        self.queue.prune_finished(job.kind)
        return result

    def recover_stalled(self, now=None):
        """
        Fail the current attempt of jobs stuck in ACTIVE.

        An attempt killed by the cluster timeout or a restart never reports
        back. Once it is older than NOTIFICATION_STALLED_JOB_SECONDS it counts
        as a failed attempt: the job is retried with backoff or failed for good.

        Returns:
            Number of jobs recovered
        """
        now = now or timezone.now()
        stalled = NotificationJob.objects.filter(
            status=Status.ACTIVE, started_at__lt=now - stalled_after()
        )

        recovered = 0
        for job in list(stalled):
            # Moving started_at keeps a concurrent sweep from taking it too
            taken = NotificationJob.objects.filter(
                pk=job.pk, status=Status.ACTIVE, started_at=job.started_at
            ).update(started_at=now)
            if not taken:
                continue
            self._record_failure(
                job, TimeoutError(f'Attempt stalled since {job.started_at.isoformat()}')
            )
            recovered += 1

        if recovered:
            logger.warning("Recovered %d stalled notification job(s)", recovered)
        return recovered

    def _record_failure(self, job, exc):
        error = str(exc) or exc.__class__.__name__
        job.last_error = error

        if job.attempts_made < job.max_attempts:
            delay = job.backoff_for(job.attempts_made)
            logger.warning(
                "%s job %s failed (attempt %d/%d), retrying in %ss: %s",
                job.kind, job.pk, job.attempts_made, job.max_attempts,
                delay.total_seconds(), error,
            )
            self.queue.retry(job, delay)
            return

        job.status = Status.FAILED
        job.finished_at = timezone.now()
        job.save(update_fields=['status', 'finished_at', 'last_error'])
        logger.error(
            "%s job %s failed after %d attempt(s): %s",
            job.kind, job.pk, job.attempts_made, error,
        )
        self._log_terminal_failure(job, error)
        self.queue.prune_finished(job.kind)

    def _log_terminal_failure(self, job, error):
        payload = job.payload
        if job.kind == Kind.SEND_EMAIL:
            log_notification(
                type=NotificationLog.Type.EMAIL,
                recipient=payload.get('to', ''),
                subject=payload.get('subject', ''),
                status=NotificationLog.Status.FAILED,
                error=error,
                email_type=payload.get('type', ''),
            )
        elif job.kind == Kind.FACILITATOR_REMINDER:
            log_notification(
                type=NotificationLog.Type.REMINDER,
                recipient=f"facilitator:{payload.get('facilitator_id')}",
                status=NotificationLog.Status.FAILED,
                error=error,
                facilitator_id=payload.get('facilitator_id'),
                allocation_id=payload.get('allocation_id'),
                week_number=payload.get('week_number'),
            )
        elif job.kind == Kind.MANAGER_ALERT:
            log_notification(
                type=NotificationLog.Type.ALERT,
                recipient='all-managers',
                subject=f"{payload.get('type')} alert",
                status=NotificationLog.Status.FAILED,
                error=error,
            )

    # ==========================================================================
    # Handlers
    # ==========================================================================

    def send_email(self, job):
        payload = job.payload
        message_id = self.transport.send(
            to=payload['to'],
            subject=payload['subject'],
            text=payload.get('text', ''),
            html=payload.get('html'),
        )
        log_notification(
            type=NotificationLog.Type.EMAIL,
            recipient=payload['to'],
            subject=payload['subject'],
            status=NotificationLog.Status.SENT,
            message_id=message_id,
            email_type=payload.get('type', ''),
        )
        return {'success': True, 'message_id': message_id}

    def remind_facilitator(self, job):
        payload = job.payload
        facilitator_id = payload['facilitator_id']
        allocation_id = payload['allocation_id']
        week_number = payload['week_number']

        facilitator = (
            Facilitator.objects.select_related('user').filter(pk=facilitator_id).first()
        )
        allocation = (
            CourseOffering.objects.select_related('module', 'cohort', 'course_class')
            .filter(pk=allocation_id)
            .first()
        )
        if facilitator is None or allocation is None:
            raise LookupError('Facilitator or allocation not found')

        deadline = compute_deadline(week_number, anchor=allocation.start_date)
        subject, text = build_facilitator_reminder(facilitator, allocation, week_number, deadline)

        email_job = self.dispatcher.queue_email({
            'to': facilitator.user.email,
            'subject': subject,
            'text': text,
            'type': 'reminder',
        })
        log_notification(
            type=NotificationLog.Type.REMINDER,
            recipient=facilitator.user.email,
            subject=subject,
            status=NotificationLog.Status.QUEUED,
            facilitator_id=facilitator_id,
            allocation_id=allocation_id,
            week_number=week_number,
        )
        return {'success': True, 'email_job_id': email_job.pk}

    def alert_managers(self, job):
        alert_type = job.payload['type']
        data = job.payload.get('data') or {}

        message = build_manager_alert(alert_type, data)
        if message is None:
            logger.warning("Unknown manager alert type %r, nothing queued", alert_type)
            return {'success': True, 'emails_queued': 0}
        subject, text = message

        # Recipients are whoever is an active manager now, not at enqueue time
        email_job_ids = [
            self.dispatcher.queue_email({
                'to': manager.user.email,
                'subject': subject,
                'text': text,
                'type': 'alert',
            }).pk
            for manager in Manager.objects.active()
        ]

        log_notification(
            type=NotificationLog.Type.ALERT,
            recipient='all-managers',
            subject=f'{alert_type} alert',
            status=NotificationLog.Status.QUEUED,
            data={'alert_type': alert_type, **data},
        )
        return {'success': True, 'emails_queued': len(email_job_ids), 'email_job_ids': email_job_ids}

    def run_recurring_check(self, job):
        check = RECURRING_CHECKS[job.payload['check']]
        return check(dispatcher=self.dispatcher)
