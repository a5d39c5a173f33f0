"""
Admin configuration for courses app.
"""

from django.contrib import admin
from .models import Module, Cohort, CourseClass, Mode, CourseOffering


@admin.register(Module)
class ModuleAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'credits', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('code', 'name')


@admin.register(Cohort)
class CohortAdmin(admin.ModelAdmin):
    list_display = ('name', 'status', 'start_date', 'end_date')
    list_filter = ('status',)


admin.site.register(CourseClass)
admin.site.register(Mode)


@admin.register(CourseOffering)
class CourseOfferingAdmin(admin.ModelAdmin):
    """Admin for CourseOffering model."""

    list_display = (
        'module', 'cohort', 'course_class', 'mode', 'facilitator',
        'status', 'start_date', 'is_active'
    )
    list_filter = ('status', 'is_active', 'mode', 'cohort')
    search_fields = ('module__code', 'module__name', 'cohort__name')
    ordering = ('-created_at',)

    readonly_fields = ('created_at', 'updated_at')

    fieldsets = (
        (None, {
            'fields': ('module', 'cohort', 'course_class', 'mode')
        }),
        ('Staffing', {
            'fields': ('facilitator', 'manager')
        }),
        ('Schedule', {
            'fields': ('start_date', 'end_date', 'status', 'is_active', 'location')
        }),
        ('Enrollment', {
            'fields': ('max_enrollment', 'current_enrollment')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def get_queryset(self, request):
        """Optimize with select_related."""
        return super().get_queryset(request).select_related(
            'module', 'cohort', 'course_class', 'mode', 'facilitator__user'
        )
