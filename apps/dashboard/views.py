"""
JSON views for dashboard app.
"""

from django.contrib.auth.decorators import login_required, user_passes_test
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET

from apps.accounts.models import Facilitator
from apps.activities.permissions import get_facilitator_profile
from apps.activities.services import find_due_within, find_overdue
from apps.activities.views import serialize_activity
from apps.notifications.services import get_queue_stats, get_recent_notifications
from .services import get_activity_statistics, get_compliance_summary, get_facilitator_stats


def is_manager_or_above(user):
    """Check if user is Manager or Admin."""
    return user.is_authenticated and user.can_view_all_activities()


def _success(message, data):
    return JsonResponse({'status': 'success', 'message': message, 'data': data})


@login_required
@user_passes_test(is_manager_or_above)
@require_GET
def stats_view(request):
    return _success('Activity statistics retrieved successfully', get_activity_statistics())


@login_required
@require_GET
def facilitator_stats_view(request, pk=None):
    """Facilitators see their own stats; managers may pass any facilitator id."""
    if pk is None:
        facilitator = get_facilitator_profile(request.user)
        if facilitator is None:
            return JsonResponse(
                {'status': 'error', 'message': 'Facilitator profile not found'}, status=404
            )
    else:
        if not request.user.can_view_all_activities():
            return JsonResponse(
                {'status': 'error', 'message': 'Insufficient permissions'}, status=403
            )
        facilitator = get_object_or_404(Facilitator.objects.select_related('user'), pk=pk)

    return _success('Facilitator statistics retrieved successfully', get_facilitator_stats(facilitator))


@login_required
@user_passes_test(is_manager_or_above)
@require_GET
def compliance_view(request):
    return _success('Compliance summary retrieved successfully', get_compliance_summary())


@login_required
@user_passes_test(is_manager_or_above)
@require_GET
def notifications_overview_view(request):
    try:
        limit = max(1, min(int(request.GET.get('limit', 20)), 100))
    except ValueError:
        limit = 20

    return _success('Notification overview retrieved successfully', {
        'queues': get_queue_stats(),
        'recent': get_recent_notifications(limit),
    })


@login_required
@user_passes_test(is_manager_or_above)
@require_GET
def overdue_view(request):
    overdue = find_overdue()
    return _success('Overdue activity logs retrieved successfully', {
        'count': len(overdue),
        'activities': [serialize_activity(record) for record in overdue],
    })


@login_required
@user_passes_test(is_manager_or_above)
@require_GET
def due_soon_view(request):
    """Unsubmitted logs due within ?days= (default ACTIVITY_DUE_SOON_DAYS)."""
    try:
        days = request.GET.get('days')
        days = None if days is None else max(0, int(days))
    except ValueError:
        return JsonResponse({'status': 'error', 'message': 'days must be an integer'}, status=400)

    due = find_due_within(days)
    return _success('Activity logs due soon retrieved successfully', {
        'count': len(due),
        'activities': [serialize_activity(record) for record in due],
    })
