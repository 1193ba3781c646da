from decimal import Decimal

from rest_framework import serializers

from apps.rooms.serializers import UserMinimalSerializer

from .models import BillingCycle, BillType, CycleStatus, MemberCharge, PaymentStatus


def _amount_field(**kwargs):
    return serializers.DecimalField(max_digits=12, decimal_places=2, **kwargs)


# =============================================================================
# Input Serializers
# =============================================================================

class BillingInputsSerializer(serializers.Serializer):
    """Shared validation of raw bill inputs."""

    start_date = serializers.DateField()
    end_date = serializers.DateField()
    rent = _amount_field(min_value=Decimal('0'), required=False, allow_null=True)
    electricity = _amount_field(min_value=Decimal('0'), required=False, allow_null=True)
    internet = _amount_field(min_value=Decimal('0'), required=False, allow_null=True)
    previous_meter_reading = _amount_field(min_value=Decimal('0'), required=False, allow_null=True)
    current_meter_reading = _amount_field(min_value=Decimal('0'), required=False, allow_null=True)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True)

    def _merged(self, attrs, name):
        if name in attrs:
            return attrs[name]
        if self.instance is not None:
            return getattr(self.instance, name)
        return None

    def validate(self, attrs):
        start = self._merged(attrs, 'start_date')
        end = self._merged(attrs, 'end_date')
        if start and end and start >= end:
            raise serializers.ValidationError({
                'end_date': 'End date must be after start date'
            })

        previous = self._merged(attrs, 'previous_meter_reading')
        current = self._merged(attrs, 'current_meter_reading')
        if previous is not None and current is not None and current < previous:
            raise serializers.ValidationError({
                'current_meter_reading': 'Current reading must not be lower than the previous reading'
            })

        return attrs


class BillingCycleCreateSerializer(BillingInputsSerializer):
    """
    Validate input for opening a billing cycle.

    Fields:
        room (UUID): Room to bill
        start_date, end_date (date): Inclusive window, start before end
        rent, electricity, internet (decimal): Optional, >= 0
        previous_meter_reading, current_meter_reading (decimal): Optional, current >= previous
    """

    room = serializers.UUIDField()


class BillingCycleUpdateSerializer(BillingInputsSerializer):
    """Partial update of an active cycle's inputs."""

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('partial', True)
        super().__init__(*args, **kwargs)


class CycleFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for cycle listing.

    Query Parameters:
        room (UUID): Room whose cycles to list
        status (str): Filter by cycle status
    """

    room = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(choices=CycleStatus.choices, required=False)


class CloseCycleSerializer(serializers.Serializer):
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True)


class PaymentStatusInputSerializer(serializers.Serializer):
    """
    Validate input for changing a payment status.

    Fields:
        user_id (int): Paying member
        bill_type (str): rent, electricity, water, internet or total
        status (str): unpaid, pending or completed
    """

    user_id = serializers.IntegerField()
    bill_type = serializers.ChoiceField(choices=BillType.choices)
    status = serializers.ChoiceField(choices=PaymentStatus.choices)


# =============================================================================
# Output Serializers
# =============================================================================

class MemberChargeSerializer(serializers.ModelSerializer):
    """Cached member charge row."""

    user = UserMinimalSerializer(read_only=True)

    class Meta:
        model = MemberCharge
        fields = [
            'id',
            'user',
            'is_payer',
            'presence_days',
            'rent_share',
            'electricity_share',
            'internet_share',
            'water_bill_share',
            'water_own',
            'water_shared_nonpayor',
            'total_due',
            'computed_at',
        ]
        read_only_fields = fields


class AllocatedChargeSerializer(serializers.Serializer):
    """Charge as resolved by the reconciliation guard (cached or fresh)."""

    user_id = serializers.ReadOnlyField()
    is_payer = serializers.BooleanField(read_only=True)
    presence_days = serializers.IntegerField(read_only=True)
    rent_share = _amount_field(read_only=True)
    electricity_share = _amount_field(read_only=True)
    internet_share = _amount_field(read_only=True)
    water_bill_share = _amount_field(read_only=True)
    water_own = _amount_field(read_only=True)
    water_shared_nonpayor = _amount_field(read_only=True)
    total_due = _amount_field(read_only=True)


class BillingCycleSerializer(serializers.ModelSerializer):
    """Main serializer for billing cycles."""

    created_by = UserMinimalSerializer(read_only=True)
    closed_by = UserMinimalSerializer(read_only=True)
    member_charges = MemberChargeSerializer(many=True, read_only=True)

    class Meta:
        model = BillingCycle
        fields = [
            'id',
            'room',
            'cycle_number',
            'status',
            'start_date',
            'end_date',
            'rent',
            'electricity',
            'internet',
            'previous_meter_reading',
            'current_meter_reading',
            'water_bill_amount',
            'total_billed_amount',
            'members_count',
            'notes',
            'member_charges',
            'created_by',
            'completed_at',
            'closed_at',
            'closed_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class BillingCycleListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    class Meta:
        model = BillingCycle
        fields = [
            'id',
            'room',
            'cycle_number',
            'status',
            'start_date',
            'end_date',
            'total_billed_amount',
            'members_count',
            'created_at',
        ]
        read_only_fields = fields


class MismatchSerializer(serializers.Serializer):
    user_id = serializers.ReadOnlyField()
    field_name = serializers.CharField(read_only=True)
    cached = serializers.ReadOnlyField()
    fresh = serializers.ReadOnlyField()


class ReconciliationReportSerializer(serializers.Serializer):
    cycle_id = serializers.UUIDField(read_only=True)
    is_consistent = serializers.BooleanField(read_only=True)
    cached_count = serializers.IntegerField(read_only=True)
    fresh_count = serializers.IntegerField(read_only=True)
    mismatches = MismatchSerializer(many=True, read_only=True)


class MemberPaymentSerializer(serializers.Serializer):
    user_id = serializers.ReadOnlyField()
    total_due = _amount_field(read_only=True)
    collected = _amount_field(read_only=True)
    pending = _amount_field(read_only=True)
    is_paid = serializers.BooleanField(read_only=True)
    statuses = serializers.DictField(child=serializers.CharField(), read_only=True)


class PaymentSummarySerializer(serializers.Serializer):
    """Serializer for a cycle's collection overview."""

    cycle_id = serializers.UUIDField(read_only=True)
    status = serializers.CharField(read_only=True)
    total_billed = _amount_field(read_only=True)
    total_due = _amount_field(read_only=True)
    collected = _amount_field(read_only=True)
    pending = _amount_field(read_only=True)
    collection_rate = _amount_field(read_only=True)
    members = MemberPaymentSerializer(many=True, read_only=True)


class CycleCloseResultSerializer(serializers.Serializer):
    cycle = BillingCycleSerializer(read_only=True)
    warnings = serializers.ListField(child=serializers.CharField(), read_only=True)
    room_reset = serializers.BooleanField(read_only=True)
    presence_cleared = serializers.BooleanField(read_only=True)
