"""
JSON views for activities app.

Thin HTTP layer over services.py: list (filtered) and create, detail with
derived progress/deadline state, and the one-way submit action.
"""

import json

from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied, ValidationError
from django.core.paginator import Paginator
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from apps.accounts.models import Facilitator
from apps.courses.models import CourseOffering
from .filters import ActivityFilter
from .models import ActivityRecord, TASK_FIELDS
from .permissions import can_access_activity, visible_activities
from .services import create_activity, submit_activity, update_activity


def error_response(message, status):
    return JsonResponse({'status': 'error', 'message': message}, status=status)


def serialize_activity(record):
    allocation = record.allocation
    data = {
        'id': record.pk,
        'allocation_id': record.allocation_id,
        'course_name': allocation.module.get_full_name(),
        'cohort': allocation.cohort.name,
        'class': allocation.course_class.name,
        'facilitator_id': record.facilitator_id,
        'facilitator_name': record.facilitator.user.get_full_name(),
        'week_number': record.week_number,
        'attendance': record.attendance,
        'notes': record.notes,
        'submitted_at': record.submitted_at.isoformat() if record.submitted_at else None,
        'deadline': record.get_deadline().isoformat(),
        'is_overdue': record.is_overdue(),
        'progress': record.get_overall_progress(),
        'attendance_rate': record.get_attendance_rate(),
    }
    data.update({field: getattr(record, field) for field in TASK_FIELDS})
    return data


def _get_record(pk):
    return ActivityRecord.objects.with_related().filter(pk=pk).first()


def _create(request):
    try:
        fields = json.loads(request.body or b'{}')
    except ValueError:
        return error_response('Request body must be JSON', 400)
    if not isinstance(fields, dict):
        return error_response('Request body must be a JSON object', 400)

    try:
        allocation_id = int(fields.pop('allocation_id'))
        week_number = int(fields.pop('week_number'))
        facilitator_id = fields.pop('facilitator_id', None)
        if facilitator_id is not None:
            facilitator_id = int(facilitator_id)
    except (KeyError, TypeError, ValueError):
        return error_response('allocation_id and week_number must be integers', 400)

    allocation = CourseOffering.objects.filter(pk=allocation_id).first()
    if allocation is None:
        return error_response('Course allocation not found', 404)

    facilitator = None
    if facilitator_id is not None:
        facilitator = Facilitator.objects.filter(pk=facilitator_id).first()
        if facilitator is None:
            return error_response('Facilitator not found', 404)

    try:
        record = create_activity(
            request.user, allocation, week_number, facilitator=facilitator, **fields
        )
    except PermissionDenied as e:
        return error_response(str(e), 403)
    except ValidationError as e:
        return error_response('; '.join(e.messages), 400)

    return JsonResponse({
        'status': 'success',
        'message': 'Activity log created successfully',
        'data': serialize_activity(_get_record(record.pk)),
    }, status=201)


@login_required
@require_http_methods(["GET", "POST"])
def activity_list(request):
    """GET: filtered, paginated activity logs. POST: log a week for an allocation."""
    if request.method == 'POST':
        return _create(request)

    queryset = visible_activities(request.user, ActivityRecord.objects.with_related())
    filterset = ActivityFilter(request.GET, queryset=queryset)
    if not filterset.is_valid():
        return JsonResponse(
            {'status': 'error', 'message': 'Invalid filters', 'errors': filterset.errors},
            status=400,
        )

    paginator = Paginator(filterset.qs.order_by('week_number', '-created_at'), 20)
    page = paginator.get_page(request.GET.get('page'))

    return JsonResponse({
        'status': 'success',
        'message': 'Activity logs retrieved successfully',
        'data': {
            'activities': [serialize_activity(record) for record in page],
            'pagination': {
                'page': page.number,
                'limit': paginator.per_page,
                'total': paginator.count,
                'pages': paginator.num_pages,
            },
        },
    })


@login_required
@require_http_methods(["GET", "PUT", "PATCH"])
def activity_detail(request, pk):
    record = _get_record(pk)
    if record is None:
        return error_response('Activity log not found', 404)

    if request.method == 'GET':
        if not can_access_activity(request.user, record):
            return error_response('You can only access your own activity logs', 403)
        return JsonResponse({
            'status': 'success',
            'message': 'Activity log retrieved successfully',
            'data': serialize_activity(record),
        })

    try:
        fields = json.loads(request.body or b'{}')
    except ValueError:
        return error_response('Request body must be JSON', 400)

    try:
        update_activity(record, request.user, **fields)
    except PermissionDenied as e:
        return error_response(str(e), 403)
    except ValidationError as e:
        return error_response('; '.join(e.messages), 400)

    return JsonResponse({
        'status': 'success',
        'message': 'Activity log updated successfully',
        'data': serialize_activity(_get_record(pk)),
    })


@login_required
@require_http_methods(["POST", "PATCH"])
def activity_submit(request, pk):
    record = _get_record(pk)
    if record is None:
        return error_response('Activity log not found', 404)

    try:
        submit_activity(record, request.user)
    except PermissionDenied as e:
        return error_response(str(e), 403)
    except ValidationError as e:
        # 409 when it was already submitted
        return error_response('; '.join(e.messages), 409 if record.is_submitted else 400)

    return JsonResponse({
        'status': 'success',
        'message': 'Activity log submitted successfully',
        'data': serialize_activity(_get_record(pk)),
    })
