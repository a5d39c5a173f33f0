"""
Permission helpers for activities app.

- Admin / Manager: any activity log
- Facilitator: own activity logs and own course allocations only
"""


def get_facilitator_profile(user):
    """Return the user's Facilitator profile, or None."""
    if not user.is_facilitator():
        return None
    return getattr(user, 'facilitator_profile', None)


def can_access_activity(user, record):
    """Check if user can view or edit an activity log."""
    if user.can_view_all_activities():
        return True
    profile = get_facilitator_profile(user)
    return profile is not None and record.facilitator_id == profile.pk


def can_log_for_allocation(user, allocation):
    """Check if user can create an activity log for a course allocation."""
    if user.is_manager() or user.is_admin():
        return True
    profile = get_facilitator_profile(user)
    return profile is not None and allocation.facilitator_id == profile.pk


def can_submit_activity(user, record):
    """Only facilitators (own logs) and managers submit."""
    if user.is_manager():
        return True
    return user.is_facilitator() and can_access_activity(user, record)


def visible_activities(user, queryset):
    """Restrict a queryset to what the user may see."""
    if user.can_view_all_activities():
        return queryset
    profile = get_facilitator_profile(user)
    if profile is None:
        return queryset.none()
    return queryset.filter(facilitator=profile)
