"""
Shared fixtures for the test suite.

Queue and transport doubles let tests drive the delivery worker one job at
a time instead of relying on the django-q2 cluster.
"""

import itertools
from datetime import date

from django.utils import timezone

from apps.accounts.models import Facilitator, Manager, User
from apps.activities.models import ActivityRecord
from apps.courses.models import Cohort, CourseClass, CourseOffering, Mode, Module
from apps.notifications.models import NotificationJob
from apps.notifications.queue import JobQueue
from apps.notifications.services import NotificationDispatcher
from apps.notifications.transport import EmailTransport
from apps.notifications.worker import DeliveryWorker

_sequence = itertools.count(1)


class RecordingQueue(JobQueue):
    """JobQueue that records pushed jobs instead of handing them to django-q2."""

    def __init__(self):
        self.pushed = []

    def push(self, job):
        self.pushed.append(job.pk)


class FailingTransport:
    """Transport whose every send fails like an unreachable SMTP server."""

    def __init__(self, error='SMTP connection refused'):
        self.error = error
        self.calls = 0

    def send(self, to, subject, text, html=None):
        self.calls += 1
        raise ConnectionRefusedError(self.error)


def make_due(job):
    """Bring a delayed job's run_at forward so the worker will take it now."""
    NotificationJob.objects.filter(pk=job.pk).update(run_at=timezone.now())


def make_pipeline(transport=None):
    """Return (queue, dispatcher, worker) wired like the app config does."""
    queue = RecordingQueue()
    dispatcher = NotificationDispatcher(queue)
    worker = DeliveryWorker(
        dispatcher,
        transport or EmailTransport(backend='django.core.mail.backends.locmem.EmailBackend'),
    )
    return queue, dispatcher, worker


def make_user(role=User.Role.STUDENT, **kwargs):
    n = next(_sequence)
    kwargs.setdefault('email', f'user{n}@example.com')
    kwargs.setdefault('first_name', f'User{n}')
    kwargs.setdefault('last_name', 'Test')
    return User.objects.create_user(password='test-password-123', role=role, **kwargs)


def make_facilitator(**user_kwargs):
    user = make_user(role=User.Role.FACILITATOR, **user_kwargs)
    return Facilitator.objects.create(user=user, employee_id=f'F{user.pk:04d}')


def make_manager(is_active=True, **user_kwargs):
    user = make_user(role=User.Role.MANAGER, is_active=is_active, **user_kwargs)
    return Manager.objects.create(
        user=user, employee_id=f'M{user.pk:04d}', department='Academics'
    )


def make_offering(facilitator=None, start_date=date(2025, 1, 6), **kwargs):
    n = next(_sequence)
    module = Module.objects.create(code=f'se{n}', name='Software Engineering')
    cohort = Cohort.objects.create(name=f'Cohort {n}')
    course_class = CourseClass.objects.create(name=f'2025J-{n}')
    mode, _ = Mode.objects.get_or_create(name='Online')
    return CourseOffering.objects.create(
        module=module,
        cohort=cohort,
        course_class=course_class,
        mode=mode,
        facilitator=facilitator,
        start_date=start_date,
        **kwargs,
    )


def make_record(allocation, week_number=1, facilitator=None, **fields):
    return ActivityRecord.objects.create(
        allocation=allocation,
        facilitator=facilitator or allocation.facilitator,
        week_number=week_number,
        **fields,
    )
