from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'rooms'

router = DefaultRouter()
router.register(r'', views.RoomViewSet, basename='room')

urlpatterns = [
    # GET    /api/rooms/                       - List user's rooms
    # GET    /api/rooms/{id}/                  - Room details
    # GET    /api/rooms/{id}/members/          - List members
    # GET    /api/rooms/{id}/presence/         - Own presence days (?start=&end=)
    # POST   /api/rooms/{id}/presence/         - Mark a day present
    # DELETE /api/rooms/{id}/presence/         - Unmark a day
    # POST   /api/rooms/{id}/clear_presence/   - Reset presence ledger (admin)
    # POST   /api/rooms/{id}/set_payer/        - Change payer flag (admin)
    path('', include(router.urls)),
]
