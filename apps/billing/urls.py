from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'billing'

router = DefaultRouter()
router.register(r'cycles', views.BillingCycleViewSet, basename='cycle')

urlpatterns = [
    # BillingCycle ViewSet routes
    # GET    /api/billing/cycles/                        - List cycles (?room=&status=)
    # POST   /api/billing/cycles/                        - Open a cycle (admin)
    # GET    /api/billing/cycles/{id}/                   - Cycle details
    # PATCH  /api/billing/cycles/{id}/                   - Edit active cycle inputs (admin)

    # Custom cycle actions
    # POST   /api/billing/cycles/{id}/close/             - Archive cycle (admin)
    # POST   /api/billing/cycles/{id}/repair/            - Recompute cached charges (admin)
    # GET    /api/billing/cycles/{id}/charges/           - All member charges
    # GET    /api/billing/cycles/{id}/my_charge/         - Current user's charge
    # GET    /api/billing/cycles/{id}/reconciliation/    - Cache vs fresh report (admin)
    # GET    /api/billing/cycles/{id}/payments/          - Payment summary
    # POST   /api/billing/cycles/{id}/payment_status/    - Change a payment status

    path('rooms/<uuid:room_id>/active/', views.active_cycle, name='active-cycle'),

    path('', include(router.urls)),
]
