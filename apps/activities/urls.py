"""
URL configuration for activities app.
"""

from django.urls import path
from . import views

app_name = 'activities'

urlpatterns = [
    path('', views.activity_list, name='activity_list'),
    path('<int:pk>/', views.activity_detail, name='activity_detail'),
    path('<int:pk>/submit/', views.activity_submit, name='activity_submit'),
]
