# ==========================================
# apps/billing/admin.py
# ==========================================

from django.contrib import admin, messages
from apps.billing.models import BillingCycle, MemberCharge, PaymentRecord
from apps.billing.services import repair_billing_cycle, BillingServiceError


class MemberChargeInline(admin.TabularInline):
    """Read-only inline of a cycle's computed charges."""
    model = MemberCharge
    extra = 0
    can_delete = False
    fields = [
        'user',
        'is_payer',
        'presence_days',
        'rent_share',
        'electricity_share',
        'internet_share',
        'water_bill_share',
        'total_due',
    ]
    readonly_fields = fields


@admin.register(BillingCycle)
class BillingCycleAdmin(admin.ModelAdmin):
    """Admin interface for billing cycles."""

    list_display = [
        'room',
        'cycle_number',
        'status',
        'start_date',
        'end_date',
        'total_billed_amount',
        'members_count',
    ]
    list_filter = ['status', 'start_date']
    search_fields = ['room__name', 'room__code', 'notes']
    readonly_fields = [
        'cycle_number',
        'water_bill_amount',
        'total_billed_amount',
        'members_count',
        'completed_at',
        'closed_at',
        'closed_by',
        'created_by',
        'created_at',
        'updated_at',
    ]
    inlines = [MemberChargeInline]
    date_hierarchy = 'start_date'
    ordering = ['-created_at']

    actions = ['recompute_charges']

    def recompute_charges(self, request, queryset):
        """Recompute cached charges of the selected active cycles."""
        repaired = 0
        for cycle in queryset.select_related('room'):
            try:
                repair_billing_cycle(cycle_id=cycle.id, user=cycle.room.admin)
            except BillingServiceError as e:
                self.message_user(request, f"Cycle {cycle}: {e}", level=messages.WARNING)
                continue
            repaired += 1
        self.message_user(request, f"Recomputed charges for {repaired} cycles")
    recompute_charges.short_description = 'Recompute member charges'


@admin.register(PaymentRecord)
class PaymentRecordAdmin(admin.ModelAdmin):
    """Admin interface for payment records."""

    list_display = ['cycle', 'user', 'bill_type', 'status', 'status_changed_at']
    list_filter = ['bill_type', 'status']
    search_fields = ['user__username', 'user__email', 'cycle__room__name']
    raw_id_fields = ['cycle', 'user', 'updated_by']
    readonly_fields = ['status_changed_at', 'created_at', 'updated_at']
