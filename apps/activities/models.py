"""
Weekly activity log model.

One ActivityRecord per course offering per week. Facilitators track six
grading/admin tasks, daily attendance and notes, then submit the log once.

Derived state (progress, attendance rate, deadline, overdue) is computed,
never stored.
"""

from datetime import timedelta

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from . import deadlines


def default_attendance():
    """Monday to Friday, nobody marked present yet."""
    return [False] * 5


class TaskStatus(models.TextChoices):
    DONE = 'Done', 'Done'
    PENDING = 'Pending', 'Pending'
    NOT_STARTED = 'Not Started', 'Not Started'


TASK_FIELDS = (
    'formative_one_grading',
    'formative_two_grading',
    'summative_grading',
    'course_moderation',
    'intranet_sync',
    'grade_book_status',
)

MAX_WEEK_NUMBER = 20
MAX_ATTENDANCE_DAYS = 7


class ActivityRecordQuerySet(models.QuerySet):

    def with_related(self):
        return self.select_related(
            'allocation__module',
            'allocation__cohort',
            'allocation__course_class',
            'facilitator__user',
        )

    def for_allocation(self, allocation_id):
        return self.filter(allocation_id=allocation_id).order_by('week_number')

    def for_facilitator(self, facilitator_id):
        return self.filter(facilitator_id=facilitator_id).order_by('week_number')

    def for_week(self, week_number):
        return self.filter(week_number=week_number).order_by('-created_at')

    def submitted(self):
        return self.filter(submitted_at__isnull=False)

    def pending_submission(self):
        """All unsubmitted records, regardless of age."""
        return self.filter(submitted_at__isnull=True).with_related().order_by('week_number')

    def overdue(self, now=None):
        """
        Unsubmitted records whose deadline has passed.

        Deadlines depend on the owning offering, so the predicate is applied
        in Python over the unsubmitted set.
        """
        now = now or timezone.now()
        return [record for record in self.pending_submission() if record.is_overdue(now=now)]

    def due_within(self, window, now=None):
        """Unsubmitted records whose deadline falls in (now, now + window]."""
        now = now or timezone.now()
        return [
            record for record in self.pending_submission()
            if timedelta(0) < record.time_until_deadline(now=now) <= window
        ]

    def with_task_status(self, task_name, status):
        if task_name not in TASK_FIELDS:
            raise ValueError(f"Invalid task name: {task_name}")
        return self.filter(**{task_name: status})

    def incomplete(self):
        """Records where at least one task is not Done."""
        condition = models.Q()
        for field in TASK_FIELDS:
            condition |= ~models.Q(**{field: TaskStatus.DONE})
        return self.filter(condition)

    def get_statistics(self, now=None):
        """Submission and per-task counts over this queryset."""
        total = self.count()
        submitted = self.submitted().count()
        overdue = len(self.overdue(now=now))

        task_stats = {}
        for field in TASK_FIELDS:
            task_stats[field] = {
                'done': self.filter(**{field: TaskStatus.DONE}).count(),
                'pending': self.filter(**{field: TaskStatus.PENDING}).count(),
                'not_started': self.filter(**{field: TaskStatus.NOT_STARTED}).count(),
            }

        return {
            'total': total,
            'submitted': submitted,
            'pending': total - submitted,
            'overdue': overdue,
            'submission_rate': (submitted / total) * 100 if total else 0,
            'task_stats': task_stats,
        }


def _task_status_field(verbose_name):
    return models.CharField(
        verbose_name,
        max_length=12,
        choices=TaskStatus.choices,
        default=TaskStatus.NOT_STARTED,
    )


class ActivityRecord(models.Model):
    """
    Facilitator's weekly activity log for one course offering.

    submitted_at is set at most once, by submit(). Other fields stay
    editable after submission.
    """

    allocation = models.ForeignKey(
        'courses.CourseOffering',
        on_delete=models.CASCADE,
        related_name='activity_records',
    )
    facilitator = models.ForeignKey(
        'accounts.Facilitator',
        on_delete=models.CASCADE,
        related_name='activity_records',
    )
    week_number = models.PositiveSmallIntegerField(
        validators=[
            MinValueValidator(1),
            MaxValueValidator(MAX_WEEK_NUMBER, 'Week number cannot exceed 20'),
        ],
        db_index=True,
    )
    attendance = models.JSONField(
        default=default_attendance,
        blank=True,
        null=True,
        help_text='One boolean per day, at most 7'
    )

    formative_one_grading = _task_status_field('formative one grading')
    formative_two_grading = _task_status_field('formative two grading')
    summative_grading = _task_status_field('summative grading')
    course_moderation = _task_status_field('course moderation')
    intranet_sync = _task_status_field('intranet sync')
    grade_book_status = _task_status_field('grade book status')

    notes = models.TextField(blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActivityRecordQuerySet.as_manager()

    class Meta:
        verbose_name = 'activity record'
        verbose_name_plural = 'activity records'
        ordering = ['week_number', '-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['allocation', 'week_number'],
                name='unique_allocation_week',
            ),
        ]
        indexes = [
            models.Index(fields=['facilitator', 'week_number']),
        ]

    def __str__(self):
        return f"Week {self.week_number} - {self.allocation}"

    def clean(self):
        """Validate attendance shape."""
        value = self.attendance
        if value is None:
            return
        if not isinstance(value, list):
            raise ValidationError({'attendance': 'Attendance must be an array.'})
        if len(value) > MAX_ATTENDANCE_DAYS:
            raise ValidationError({'attendance': 'Attendance array cannot have more than 7 days.'})
        if not all(isinstance(day, bool) for day in value):
            raise ValidationError({'attendance': 'All attendance values must be boolean.'})

    # ==========================================================================
    # Progress
    # ==========================================================================

    def task_statuses(self):
        return [getattr(self, field) for field in TASK_FIELDS]

    def get_overall_progress(self):
        """Done / Pending / Not Started counts across the six tasks."""
        tasks = self.task_statuses()
        completed = tasks.count(TaskStatus.DONE)
        return {
            'completed': completed,
            'pending': tasks.count(TaskStatus.PENDING),
            'not_started': tasks.count(TaskStatus.NOT_STARTED),
            'total': len(tasks),
            'completion_percentage': (completed / len(tasks)) * 100,
        }

    def is_fully_completed(self):
        progress = self.get_overall_progress()
        return progress['completed'] == progress['total']

    def has_pending_tasks(self):
        return self.get_overall_progress()['pending'] > 0

    def get_task_status(self, task_name):
        if task_name not in TASK_FIELDS:
            raise ValueError(f"Invalid task name: {task_name}")
        return getattr(self, task_name)

    def update_task_status(self, task_name, status):
        if task_name not in TASK_FIELDS:
            raise ValueError(f"Invalid task name: {task_name}")
        if status not in TaskStatus.values:
            raise ValueError(f"Invalid status: {status}")
        setattr(self, task_name, status)
        self.save(update_fields=[task_name, 'updated_at'])
        return self

    # ==========================================================================
    # Attendance
    # ==========================================================================

    def get_attendance_rate(self):
        """Present days as a percentage of recorded days; 0 when none recorded."""
        if not self.attendance:
            return 0
        present = sum(1 for day in self.attendance if day is True)
        return (present / len(self.attendance)) * 100

    def get_total_attendance_days(self):
        if not self.attendance:
            return 0
        return sum(1 for day in self.attendance if day is True)

    # ==========================================================================
    # Deadline & Submission
    # ==========================================================================

    @property
    def deadline_anchor(self):
        return self.allocation.start_date if self.allocation_id else None

    def get_deadline(self, now=None):
        return deadlines.compute_deadline(self.week_number, anchor=self.deadline_anchor, now=now)

    def is_overdue(self, now=None):
        return deadlines.is_overdue(
            self.submitted_at, self.week_number, anchor=self.deadline_anchor, now=now
        )

    def is_late_submission(self):
        return deadlines.is_late(self.submitted_at, self.week_number, anchor=self.deadline_anchor)

    def time_until_deadline(self, now=None):
        now = now or timezone.now()
        return self.get_deadline(now=now) - now

    def days_until_deadline(self, now=None):
        return self.time_until_deadline(now=now) / timedelta(days=1)

    @property
    def is_submitted(self):
        return self.submitted_at is not None

    def submit(self, now=None):
        """
        Set submitted_at if, and only if, it is still NULL in the database.

        Returns:
            True if this call performed the submission, False if the record
            had already been submitted (possibly by a concurrent request).
        """
        now = now or timezone.now()
        updated = type(self).objects.filter(
            pk=self.pk, submitted_at__isnull=True
        ).update(submitted_at=now, updated_at=now)

        if updated:
            self.submitted_at = now
            self.updated_at = now
            return True

        self.refresh_from_db(fields=['submitted_at'])
        return False
