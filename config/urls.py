"""
URL configuration for course_tracker project.
"""

from django.contrib import admin
from django.urls import path, include
from django.conf import settings

urlpatterns = [
    path('admin/', admin.site.urls),

    # App URLs
    path('api/activities/', include('apps.activities.urls', namespace='activities')),
    path('api/dashboard/', include('apps.dashboard.urls', namespace='dashboard')),
]

if settings.DEBUG and 'debug_toolbar' in settings.INSTALLED_APPS:
    import debug_toolbar
    urlpatterns = [
        path('__debug__/', include(debug_toolbar.urls)),
    ] + urlpatterns

# Admin site customization
admin.site.site_header = 'Course Tracker Administration'
admin.site.site_title = 'Course Tracker Admin'
admin.site.index_title = 'Welcome to Course Tracker Admin'
