"""
URL configuration for dashboard app.
"""

from django.urls import path
from . import views

app_name = 'dashboard'

urlpatterns = [
    path('stats/', views.stats_view, name='stats'),
    path('facilitator/', views.facilitator_stats_view, name='my_stats'),
    path('facilitator/<int:pk>/', views.facilitator_stats_view, name='facilitator_stats'),
    path('compliance/', views.compliance_view, name='compliance'),
    path('overdue/', views.overdue_view, name='overdue'),
    path('due-soon/', views.due_soon_view, name='due_soon'),
    path('notifications/', views.notifications_overview_view, name='notifications'),
]
