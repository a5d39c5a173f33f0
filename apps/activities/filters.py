"""
Activity log filters using django-filter.

Provides filtering for the activity log list endpoint:
- Allocation, facilitator, week number
- Submitted / unsubmitted
- Status of each of the six tracked tasks
"""

import django_filters

from .models import ActivityRecord, TaskStatus


class ActivityFilter(django_filters.FilterSet):
    """
    Usage in views:
        filterset = ActivityFilter(request.GET, queryset=queryset)
        records = filterset.qs
    """

    allocation = django_filters.NumberFilter(field_name='allocation_id')
    facilitator = django_filters.NumberFilter(field_name='facilitator_id')
    week_number = django_filters.NumberFilter()
    is_submitted = django_filters.BooleanFilter(
        field_name='submitted_at',
        lookup_expr='isnull',
        exclude=True,
        label='Submitted',
    )

    formative_one_grading = django_filters.ChoiceFilter(choices=TaskStatus.choices)
    formative_two_grading = django_filters.ChoiceFilter(choices=TaskStatus.choices)
    summative_grading = django_filters.ChoiceFilter(choices=TaskStatus.choices)
    course_moderation = django_filters.ChoiceFilter(choices=TaskStatus.choices)
    intranet_sync = django_filters.ChoiceFilter(choices=TaskStatus.choices)
    grade_book_status = django_filters.ChoiceFilter(choices=TaskStatus.choices)

    class Meta:
        model = ActivityRecord
        fields = []
