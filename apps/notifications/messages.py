"""
Subjects and bodies for notification emails.

Bodies are plain-text templates under notifications/emails/.
"""

from django.template.loader import render_to_string

from apps.activities.deadlines import grace_days


class AlertType:
    OVERDUE_SUBMISSION = 'overdue-submission'
    LATE_SUBMISSION = 'late-submission'
    CRITICAL_DEADLINE = 'critical-deadline'


ALERT_MESSAGES = {
    AlertType.OVERDUE_SUBMISSION: (
        'Overdue Activity Log Submission Alert',
        'notifications/emails/overdue_submission_alert.txt',
    ),
    AlertType.LATE_SUBMISSION: (
        'Late Activity Log Submission Alert',
        'notifications/emails/late_submission_alert.txt',
    ),
    AlertType.CRITICAL_DEADLINE: (
        'Critical Deadline Alert',
        'notifications/emails/critical_deadline_alert.txt',
    ),
}

REMINDER_SUBJECT = 'Activity Log Submission Reminder'


def build_facilitator_reminder(facilitator, allocation, week_number, deadline):
    """Return (subject, text) for a submission reminder."""
    context = {
        'facilitator': facilitator,
        'allocation': allocation,
        'week_number': week_number,
        'deadline': deadline,
        'grace_days': grace_days(),
    }
    text = render_to_string('notifications/emails/facilitator_reminder.txt', context)
    return REMINDER_SUBJECT, text.strip()


def build_manager_alert(alert_type, data):
    """
    Return (subject, text) for a manager alert, or None for an unknown type.
    """
    if alert_type not in ALERT_MESSAGES:
        return None
    subject, template_name = ALERT_MESSAGES[alert_type]
    text = render_to_string(template_name, {'data': data})
    return subject, text.strip()
