"""
Service layer for dashboard app.

Read-only aggregates over activity logs. Overdue counts use the same
deadline-based predicate as the recurring overdue check.
"""

from datetime import timedelta

from django.utils import timezone

from apps.activities.models import ActivityRecord

UPCOMING_WINDOW_DAYS = 7


def get_activity_statistics(now=None):
    """System-wide submission and task statistics."""
    return ActivityRecord.objects.all().get_statistics(now=now)


def get_facilitator_stats(facilitator, now=None):
    """
    Course load and activity summary for one facilitator.

    Returns dict with:
    - course_load / max_course_load / availability
    - submitted / pending / overdue activity counts
    - upcoming: unsubmitted logs due in the next 7 days, soonest first
    """
    now = now or timezone.now()
    records = ActivityRecord.objects.filter(facilitator=facilitator)
    pending = list(records.pending_submission())
    window = timedelta(days=UPCOMING_WINDOW_DAYS)

    upcoming = [
        record for record in pending
        if timedelta(0) < record.time_until_deadline(now=now) <= window
    ]
    upcoming.sort(key=lambda record: record.get_deadline(now=now))

    return {
        'facilitator_id': facilitator.pk,
        'name': facilitator.user.get_full_name(),
        'course_load': facilitator.get_current_course_load(),
        'max_course_load': facilitator.max_course_load,
        'availability': facilitator.get_availability_status(),
        'activities': {
            'total': records.count(),
            'submitted': records.submitted().count(),
            'pending': len(pending),
            'overdue': sum(1 for record in pending if record.is_overdue(now=now)),
        },
        'upcoming': [
            {
                'id': record.pk,
                'course_name': record.allocation.module.get_full_name(),
                'week_number': record.week_number,
                'deadline': record.get_deadline(now=now).isoformat(),
                'days_left': round(record.days_until_deadline(now=now), 1),
            }
            for record in upcoming
        ],
    }


def get_compliance_summary(now=None):
    """
    Submission compliance across all activity logs.

    on_time + late + overdue + pending == total. Compliance rate is the
    share of submitted logs that arrived on time.
    """
    now = now or timezone.now()
    on_time = late = overdue = pending = 0

    for record in ActivityRecord.objects.with_related():
        if record.is_submitted:
            if record.is_late_submission():
                late += 1
            else:
                on_time += 1
        elif record.is_overdue(now=now):
            overdue += 1
        else:
            pending += 1

    submitted = on_time + late
    return {
        'total': submitted + overdue + pending,
        'submitted_on_time': on_time,
        'submitted_late': late,
        'overdue': overdue,
        'pending': pending,
        'compliance_rate': (on_time / submitted) * 100 if submitted else 0,
    }
