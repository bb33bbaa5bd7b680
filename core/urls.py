"""
URL configuration for the Farm Worker Housing Management System.

    /admin/             Django admin
    /api/auth/          JWT login, refresh, logout, profile
    /api/               Farms, rooms and workers (CRUD + occupancy reconciliation)
    /api/statistics/    Housing statistics, PDF report and Excel exports
"""
from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView

urlpatterns = [
    path('', RedirectView.as_view(url='/admin/', permanent=False)),
    path('admin/', admin.site.urls),
    path('api/auth/', include('accounts.urls')),
    path('api/statistics/', include('dashboards.statistics_urls')),  # Occupancy & workforce statistics
    path('api/', include('farms.urls')),  # Farms, rooms, workers
]
