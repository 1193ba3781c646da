# ==========================================
# apps/rooms/models.py
# ==========================================

import enum
import secrets
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class WaterBillingMode(models.TextChoices):
    PRESENCE_BASED = 'presence_based', 'Presence based'
    FIXED_MONTHLY = 'fixed_monthly', 'Fixed monthly'


class PayerStatus(enum.Enum):
    """Whether a member carries a share of the room's bills."""

    PAYER = 'payer'
    NON_PAYER = 'non_payer'

    @classmethod
    def from_flag(cls, is_payer):
        if not isinstance(is_payer, bool):
            raise TypeError(f"is_payer must be a bool, got {is_payer!r}")
        return cls.PAYER if is_payer else cls.NON_PAYER


def default_water_rate():
    return settings.BILLING_WATER_RATE_PER_DAY


def default_electricity_rate():
    return settings.BILLING_ELECTRICITY_RATE


class Room(models.Model):
    """Shared room whose members split rent and utilities."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=16, unique=True, db_index=True, editable=False)
    admin = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='administered_rooms'
    )

    # Rate table
    water_billing_mode = models.CharField(
        max_length=20,
        choices=WaterBillingMode.choices,
        default=WaterBillingMode.PRESENCE_BASED
    )
    water_fixed_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    water_rate_per_day = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=default_water_rate,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    electricity_rate = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=default_electricity_rate,
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    # Draft billing inputs; mirror the active cycle and are cleared on archive
    billing_start = models.DateField(null=True, blank=True)
    billing_end = models.DateField(null=True, blank=True)
    billing_rent = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    billing_electricity = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    billing_internet = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    billing_previous_reading = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    billing_current_reading = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    # Active cycle only; released when the cycle completes or closes
    current_cycle = models.ForeignKey(
        'billing.BillingCycle',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    BILLING_INPUT_FIELDS = [
        'billing_start',
        'billing_end',
        'billing_rent',
        'billing_electricity',
        'billing_internet',
        'billing_previous_reading',
        'billing_current_reading',
    ]

    class Meta:
        db_table = 'rooms'
        indexes = [
            models.Index(fields=['admin', 'created_at'], name='rooms_admin_i_6b1f2e_idx'),
            models.Index(fields=['code'], name='rooms_code_4c9a1d_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.code:
            self.code = secrets.token_urlsafe(12)[:16]
        super().save(*args, **kwargs)

    def has_member(self, user):
        return self.members.filter(user=user).exists()

    def is_admin(self, user):
        return self.admin_id == getattr(user, 'pk', None)

    def clear_billing_inputs(self):
        """Reset the draft billing inputs; returns the touched field names."""
        for field in self.BILLING_INPUT_FIELDS:
            setattr(self, field, None)
        return list(self.BILLING_INPUT_FIELDS)


class RoomMember(models.Model):
    """A user's membership in a room."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    room = models.ForeignKey(Room, on_delete=models.CASCADE, related_name='members')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='room_memberships'
    )
    # No default: every membership states explicitly whether it pays
    is_payer = models.BooleanField()
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'room_members'
        unique_together = [['room', 'user']]
        indexes = [
            models.Index(fields=['room', 'is_payer'], name='room_member_room_id_8e2c7a_idx'),
        ]
        ordering = ['joined_at']

    def __str__(self):
        return f"{self.user} in {self.room.name} ({self.payer_status.value})"

    @property
    def payer_status(self):
        return PayerStatus.from_flag(self.is_payer)


class PresenceDay(models.Model):
    """A calendar day on which a member was present in the room."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    member = models.ForeignKey(RoomMember, on_delete=models.CASCADE, related_name='presence_days')
    date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'room_presence_days'
        unique_together = [['member', 'date']]
        indexes = [
            models.Index(fields=['member', 'date'], name='room_presen_member__3d5f9b_idx'),
        ]
        ordering = ['date']

    def __str__(self):
        return f"{self.member.user} present on {self.date.isoformat()}"
