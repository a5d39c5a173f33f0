"""
Notification models.

- NotificationJob: a queued unit of notification work (durable queue state).
  django-q2 carries the "run this job now / at time T" message; the row is
  the source of truth for attempts, status and retention.
- NotificationLog: short-lived delivery log shown on the dashboard.
  Retention: NOTIFICATION_LOG_TTL_DAYS (7), at most NOTIFICATION_RECENT_MAX rows.
"""

from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone


class NotificationJob(models.Model):
    """Queue-resident notification job."""

    class Queue(models.TextChoices):
        EMAIL = 'email', 'Email notifications'
        REMINDER = 'reminder', 'Reminder notifications'
        ALERT = 'alert', 'Alert notifications'

    class Kind(models.TextChoices):
        SEND_EMAIL = 'send-email', 'Send email'
        FACILITATOR_REMINDER = 'facilitator-reminder', 'Facilitator reminder'
        MANAGER_ALERT = 'manager-alert', 'Manager alert'
        RECURRING_CHECK = 'recurring-check', 'Recurring check'

    class Status(models.TextChoices):
        WAITING = 'waiting', 'Waiting'
        DELAYED = 'delayed', 'Delayed'
        ACTIVE = 'active', 'Active'
        COMPLETED = 'completed', 'Completed'
        FAILED = 'failed', 'Failed'

    class Backoff(models.TextChoices):
        FIXED = 'fixed', 'Fixed'
        EXPONENTIAL = 'exponential', 'Exponential'

    queue = models.CharField(max_length=10, choices=Queue.choices, db_index=True)
    kind = models.CharField(max_length=25, choices=Kind.choices, db_index=True)
    payload = models.JSONField(default=dict, blank=True)

    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.WAITING,
        db_index=True,
    )
    attempts_made = models.PositiveSmallIntegerField(default=0)
    max_attempts = models.PositiveSmallIntegerField(default=1)
    backoff_type = models.CharField(
        max_length=12,
        choices=Backoff.choices,
        default=Backoff.FIXED,
    )
    backoff_delay_ms = models.PositiveIntegerField(default=0)

    run_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True, db_index=True)

    last_error = models.TextField(blank=True)
    result = models.JSONField(null=True, blank=True)

    class Meta:
        verbose_name = 'notification job'
        verbose_name_plural = 'notification jobs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['queue', 'status']),
            models.Index(fields=['kind', 'status', '-finished_at']),
        ]

    def __str__(self):
        return f"{self.kind} #{self.pk} ({self.status})"

    @property
    def is_finished(self):
        return self.status in (self.Status.COMPLETED, self.Status.FAILED)

    @property
    def attempts_left(self):
        return max(self.max_attempts - self.attempts_made, 0)

    def backoff_for(self, attempt):
        """Delay before the retry that follows failed attempt number `attempt`."""
        delay_ms = self.backoff_delay_ms
        if self.backoff_type == self.Backoff.EXPONENTIAL:
            delay_ms = self.backoff_delay_ms * 2 ** (attempt - 1)
        return timedelta(milliseconds=delay_ms)


class NotificationLog(models.Model):
    """Delivery outcome record."""

    class Type(models.TextChoices):
        EMAIL = 'email', 'Email'
        REMINDER = 'reminder', 'Reminder'
        ALERT = 'alert', 'Alert'

    class Status(models.TextChoices):
        SENT = 'sent', 'Sent'
        FAILED = 'failed', 'Failed'
        QUEUED = 'queued', 'Queued'

    type = models.CharField(max_length=10, choices=Type.choices, db_index=True)
    recipient = models.CharField(max_length=254)
    subject = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=10, choices=Status.choices, db_index=True)
    error = models.TextField(blank=True)
    message_id = models.CharField(max_length=255, blank=True)
    email_type = models.CharField(
        max_length=20,
        blank=True,
        help_text='reminder / alert for emails'
    )

    # Correlation ids
    facilitator_id = models.IntegerField(null=True, blank=True)
    allocation_id = models.IntegerField(null=True, blank=True)
    week_number = models.PositiveSmallIntegerField(null=True, blank=True)
    data = models.JSONField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    expires_at = models.DateTimeField(db_index=True)

    class Meta:
        verbose_name = 'notification log entry'
        verbose_name_plural = 'notification log'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.type} to {self.recipient}: {self.status}"

    def as_dict(self):
        entry = {
            'type': self.type,
            'recipient': self.recipient,
            'subject': self.subject,
            'status': self.status,
            'timestamp': self.created_at.isoformat(),
        }
        optional = {
            'error': self.error,
            'message_id': self.message_id,
            'email_type': self.email_type,
            'facilitator_id': self.facilitator_id,
            'allocation_id': self.allocation_id,
            'week_number': self.week_number,
            'data': self.data,
        }
        entry.update({key: value for key, value in optional.items() if value not in (None, '')})
        return entry


def log_ttl():
    return timedelta(days=getattr(settings, 'NOTIFICATION_LOG_TTL_DAYS', 7))


def recent_max():
    return getattr(settings, 'NOTIFICATION_RECENT_MAX', 100)


def stalled_after():
    """Age after which an ACTIVE attempt is presumed dead."""
    return timedelta(seconds=getattr(settings, 'NOTIFICATION_STALLED_JOB_SECONDS', 120))


def log_notification(type, recipient, subject='', status=NotificationLog.Status.QUEUED,
                     error='', message_id='', email_type='', facilitator_id=None,
                     allocation_id=None, week_number=None, data=None):
    """
    Helper function to create notification log entries.

    Evicts the oldest rows beyond NOTIFICATION_RECENT_MAX.

    Returns:
        Created NotificationLog instance
    """
    now = timezone.now()
    entry = NotificationLog.objects.create(
        type=type,
        recipient=recipient,
        subject=subject[:255],
        status=status,
        error=error,
        message_id=message_id or '',
        email_type=email_type,
        facilitator_id=facilitator_id,
        allocation_id=allocation_id,
        week_number=week_number,
        data=data,
        created_at=now,
        expires_at=now + log_ttl(),
    )

    stale_ids = list(
        NotificationLog.objects.values_list('pk', flat=True)[recent_max():]
    )
    if stale_ids:
        NotificationLog.objects.filter(pk__in=stale_ids).delete()

    return entry
