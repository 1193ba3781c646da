# ==========================================
# apps/rooms/admin.py
# ==========================================

from django.contrib import admin
from apps.rooms.models import Room, RoomMember, PresenceDay


class RoomMemberInline(admin.TabularInline):
    """Inline admin for room members."""
    model = RoomMember
    extra = 0
    fields = ['user', 'is_payer', 'joined_at']
    readonly_fields = ['joined_at']


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    """Admin interface for Rooms; room and member CRUD happens here."""

    list_display = [
        'name',
        'admin',
        'member_count',
        'water_billing_mode',
        'current_cycle',
        'created_at'
    ]
    list_filter = ['water_billing_mode', 'created_at']
    search_fields = ['name', 'code', 'admin__email', 'admin__username']
    readonly_fields = ['code', 'current_cycle', 'created_at', 'updated_at']
    inlines = [RoomMemberInline]
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'code', 'admin')
        }),
        ('Rates', {
            'fields': (
                'water_billing_mode',
                'water_fixed_amount',
                'water_rate_per_day',
                'electricity_rate',
            )
        }),
        ('Draft Billing Inputs', {
            'fields': (
                'billing_start',
                'billing_end',
                'billing_rent',
                'billing_electricity',
                'billing_internet',
                'billing_previous_reading',
                'billing_current_reading',
                'current_cycle',
            ),
            'classes': ('collapse',)
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def member_count(self, obj):
        """Show number of members."""
        return obj.members.count()
    member_count.short_description = 'Members'


@admin.register(PresenceDay)
class PresenceDayAdmin(admin.ModelAdmin):
    """Admin interface for presence days."""

    list_display = ['member', 'date', 'created_at']
    list_filter = ['date']
    search_fields = ['member__user__username', 'member__room__name']
    date_hierarchy = 'date'
    raw_id_fields = ['member']
