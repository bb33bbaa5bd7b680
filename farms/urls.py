"""
URL configuration for farm housing.

Endpoints:
- /api/farms/ - Farm CRUD (+ /{id}/summary/)
- /api/rooms/ - Room CRUD (+ /sync-occupancy/, /occupancy-summary/)
- /api/workers/ - Worker CRUD without delete (+ /{id}/exit/)
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import FarmViewSet, RoomViewSet, WorkerViewSet

router = DefaultRouter()
router.register(r'farms', FarmViewSet, basename='farm')
router.register(r'rooms', RoomViewSet, basename='room')
router.register(r'workers', WorkerViewSet, basename='worker')

app_name = 'farms'

urlpatterns = [
    path('', include(router.urls)),
]
