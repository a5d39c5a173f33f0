"""
Admin configuration for notifications app.
"""

from django.contrib import admin

from .models import NotificationJob, NotificationLog


@admin.register(NotificationJob)
class NotificationJobAdmin(admin.ModelAdmin):
    """Read-only inspection of queued and failed jobs."""

    list_display = (
        'id', 'kind', 'queue', 'status', 'attempts_made', 'max_attempts',
        'run_at', 'finished_at'
    )
    list_filter = ('queue', 'kind', 'status')
    readonly_fields = (
        'queue', 'kind', 'payload', 'status', 'attempts_made', 'max_attempts',
        'backoff_type', 'backoff_delay_ms', 'run_at', 'created_at', 'started_at',
        'finished_at', 'last_error', 'result'
    )
    ordering = ('-created_at',)

    def has_add_permission(self, request):
        return False


@admin.register(NotificationLog)
class NotificationLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'type', 'recipient', 'subject', 'status', 'email_type')
    list_filter = ('type', 'status')
    search_fields = ('recipient', 'subject')
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
