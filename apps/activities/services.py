"""
Service layer for activities app.

All business logic for weekly activity logs is centralized here.

Services:
- create_activity: Log a week's activity for a course allocation
- update_activity: Update fields; alerts managers while a log is overdue
- submit_activity: One-way submission; alerts managers when late
- find_overdue: Unsubmitted logs past their deadline
- find_due_within: Unsubmitted logs due within the reminder window
"""

import logging
from datetime import timedelta

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.notifications.messages import AlertType
from apps.notifications.services import due_soon_days, get_dispatcher
from .models import ActivityRecord, TASK_FIELDS
from .permissions import can_access_activity, can_log_for_allocation, can_submit_activity

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = TASK_FIELDS + ('attendance', 'notes')


def create_activity(user, allocation, week_number, facilitator=None, **fields):
    """
    Create the activity log for one allocation and week.

    Args:
        user: User performing the action
        allocation: CourseOffering instance
        week_number: 1-20
        facilitator: Facilitator (managers only; facilitators log as themselves)
        **fields: Task statuses, attendance, notes

    Returns:
        Created ActivityRecord instance

    Raises:
        PermissionDenied: If a facilitator logs against someone else's allocation
        ValidationError: If fields are invalid or the week is already logged
    """
    if not can_log_for_allocation(user, allocation):
        raise PermissionDenied("You can only create activity logs for your own course allocations.")

    if user.is_facilitator():
        facilitator = user.facilitator_profile
    facilitator = facilitator or allocation.facilitator
    if facilitator is None:
        raise ValidationError("Facilitator is required.")

    if ActivityRecord.objects.filter(allocation=allocation, week_number=week_number).exists():
        raise ValidationError("Activity log already exists for this allocation and week.")

    record = ActivityRecord(
        allocation=allocation,
        facilitator=facilitator,
        week_number=week_number,
        **{field: value for field, value in fields.items() if field in EDITABLE_FIELDS},
    )
    record.full_clean(validate_unique=False, validate_constraints=False)

    try:
        with transaction.atomic():
            record.save()
    except IntegrityError:
        raise ValidationError("Activity log already exists for this allocation and week.")

    logger.info(
        "Activity log %s created for allocation %s week %s by %s",
        record.pk, allocation.pk, week_number, user.email,
    )
    return record


def update_activity(record, user, dispatcher=None, **fields):
    """
    Update editable fields of an activity log.

    If the log is still unsubmitted and past its deadline after the update,
    managers get a late-submission alert.

    Raises:
        PermissionDenied: If user cannot edit the log
        ValidationError: If validation fails
    """
    if not can_access_activity(user, record):
        raise PermissionDenied("You can only update your own activity logs.")

    changed = []
    for field, value in fields.items():
        if field not in EDITABLE_FIELDS:
            continue
        if getattr(record, field) != value:
            setattr(record, field, value)
            changed.append(field)

    if changed:
        record.full_clean(validate_unique=False, validate_constraints=False)
        record.save(update_fields=changed + ['updated_at'])

    if record.is_overdue():
        _alert_late_submission(record, timezone.now(), dispatcher)

    return record


def submit_activity(record, user, dispatcher=None):
    """
    Submit an activity log. Submission is one-way and happens at most once.

    Raises:
        PermissionDenied: If user cannot submit the log
        ValidationError: If the log has already been submitted
    """
    if not can_submit_activity(user, record):
        raise PermissionDenied("You can only submit your own activity logs.")

    if not record.submit():
        raise ValidationError("Activity log has already been submitted.")

    logger.info("Activity log %s submitted by %s", record.pk, user.email)

    if record.is_late_submission():
        _alert_late_submission(record, record.submitted_at, dispatcher)

    return record


def _alert_late_submission(record, submission_time, dispatcher=None):
    dispatcher = dispatcher or get_dispatcher()
    record = ActivityRecord.objects.with_related().get(pk=record.pk)
    dispatcher.queue_manager_alert(AlertType.LATE_SUBMISSION, {
        'facilitator_name': record.facilitator.user.get_full_name(),
        'course_name': record.allocation.module.get_full_name(),
        'week_number': record.week_number,
        'submission_time': submission_time.isoformat(),
    })


def find_overdue(now=None):
    return ActivityRecord.objects.overdue(now=now)


def find_due_within(days=None, now=None):
    days = due_soon_days() if days is None else days
    return ActivityRecord.objects.due_within(timedelta(days=days), now=now)
