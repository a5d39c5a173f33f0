"""
Admin configuration for activities app.
"""

from django.contrib import admin

from .models import ActivityRecord


@admin.register(ActivityRecord)
class ActivityRecordAdmin(admin.ModelAdmin):
    """Admin for ActivityRecord model."""

    list_display = (
        'allocation', 'facilitator', 'week_number', 'completion_display',
        'submitted_at', 'is_overdue_display', 'updated_at'
    )
    list_filter = ('week_number', 'submitted_at')
    search_fields = ('allocation__module__code', 'facilitator__user__email')
    ordering = ('week_number', '-created_at')
    readonly_fields = ('submitted_at', 'created_at', 'updated_at')

    fieldsets = (
        (None, {
            'fields': ('allocation', 'facilitator', 'week_number')
        }),
        ('Tasks', {
            'fields': (
                'formative_one_grading', 'formative_two_grading', 'summative_grading',
                'course_moderation', 'intranet_sync', 'grade_book_status'
            )
        }),
        ('Attendance & Notes', {
            'fields': ('attendance', 'notes')
        }),
        ('Timestamps', {
            'fields': ('submitted_at', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def get_queryset(self, request):
        """Optimize with select_related."""
        return super().get_queryset(request).select_related(
            'allocation__module', 'allocation__cohort', 'allocation__course_class',
            'facilitator__user'
        )

    @admin.display(description='Completion')
    def completion_display(self, obj):
        return f"{obj.get_overall_progress()['completion_percentage']:.0f}%"

    @admin.display(description='Overdue', boolean=True)
    def is_overdue_display(self, obj):
        return obj.is_overdue()
