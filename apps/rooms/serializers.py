from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import Room, RoomMember

User = get_user_model()


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'display_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_full_name() or obj.get_username()


class RoomMemberSerializer(serializers.ModelSerializer):
    """Member with payer flag."""

    user = UserMinimalSerializer(read_only=True)
    payer_status = serializers.SerializerMethodField()

    class Meta:
        model = RoomMember
        fields = ['id', 'user', 'is_payer', 'payer_status', 'joined_at']
        read_only_fields = fields

    def get_payer_status(self, obj):
        return obj.payer_status.value


class RoomSerializer(serializers.ModelSerializer):
    """Main serializer for rooms."""

    admin = UserMinimalSerializer(read_only=True)
    member_count = serializers.SerializerMethodField()
    is_admin = serializers.SerializerMethodField()

    class Meta:
        model = Room
        fields = [
            'id',
            'name',
            'code',
            'admin',
            'member_count',
            'is_admin',
            'water_billing_mode',
            'water_fixed_amount',
            'water_rate_per_day',
            'electricity_rate',
            'billing_start',
            'billing_end',
            'billing_rent',
            'billing_electricity',
            'billing_internet',
            'billing_previous_reading',
            'billing_current_reading',
            'current_cycle',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_member_count(self, obj):
        return obj.members.count()

    def get_is_admin(self, obj):
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            return obj.is_admin(request.user)
        return False


class RoomListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    member_count = serializers.SerializerMethodField()

    class Meta:
        model = Room
        fields = ['id', 'name', 'code', 'water_billing_mode', 'current_cycle', 'member_count', 'created_at']
        read_only_fields = fields

    def get_member_count(self, obj):
        return obj.members.count()


# =============================================================================
# Input Serializers
# =============================================================================

class PresenceDaySerializer(serializers.Serializer):
    """Input for marking / unmarking one presence day."""

    date = serializers.DateField()


class PresenceQuerySerializer(serializers.Serializer):
    """Optional window for listing presence days."""

    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)

    def validate(self, attrs):
        start = attrs.get('start')
        end = attrs.get('end')
        if start and end and start > end:
            raise serializers.ValidationError({'end': 'end must not be before start'})
        return attrs


class SetPayerSerializer(serializers.Serializer):
    """Input for changing a member's payer flag."""

    user_id = serializers.IntegerField()
    is_payer = serializers.BooleanField()
