from decimal import Decimal
import uuid

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class CycleStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    COMPLETED = 'completed', 'Completed'
    CLOSED = 'closed', 'Closed'


class BillType(models.TextChoices):
    RENT = 'rent', 'Rent'
    ELECTRICITY = 'electricity', 'Electricity'
    WATER = 'water', 'Water'
    INTERNET = 'internet', 'Internet'
    TOTAL = 'total', 'Total'


class PaymentStatus(models.TextChoices):
    UNPAID = 'unpaid', 'Unpaid'
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'


# Bill types that carry their own share on a MemberCharge
SHARE_BILL_TYPES = [
    BillType.RENT,
    BillType.ELECTRICITY,
    BillType.WATER,
    BillType.INTERNET,
]

ZERO = Decimal('0.00')


class BillingCycle(models.Model):
    """A bounded billing period of a room with its raw bill inputs."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    room = models.ForeignKey(
        'rooms.Room',
        on_delete=models.CASCADE,
        related_name='billing_cycles'
    )
    cycle_number = models.PositiveIntegerField()
    status = models.CharField(
        max_length=20,
        choices=CycleStatus.choices,
        default=CycleStatus.ACTIVE
    )

    # Inclusive date window
    start_date = models.DateField()
    end_date = models.DateField()

    # Raw inputs entered by the room admin (null = never entered)
    rent = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(ZERO)]
    )
    electricity = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(ZERO)]
    )
    internet = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(ZERO)]
    )
    previous_meter_reading = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(ZERO)]
    )
    current_meter_reading = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(ZERO)]
    )

    # Derived at allocation time
    water_bill_amount = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    total_billed_amount = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    members_count = models.PositiveIntegerField(default=0)

    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_billing_cycles'
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='closed_billing_cycles'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'billing_cycles'
        unique_together = [['room', 'cycle_number']]
        constraints = [
            models.UniqueConstraint(
                fields=['room'],
                condition=models.Q(status='active'),
                name='one_active_cycle_per_room',
            ),
        ]
        indexes = [
            models.Index(fields=['room', 'status'], name='billing_cyc_room_st_1a7e4c_idx'),
            models.Index(fields=['start_date', 'end_date'], name='billing_cyc_start_d_5b2d90_idx'),
        ]
        ordering = ['-cycle_number']

    def __str__(self):
        return f"{self.room.name} cycle #{self.cycle_number} ({self.status})"

    @property
    def is_active(self):
        return self.status == CycleStatus.ACTIVE

    @property
    def is_closed(self):
        return self.status == CycleStatus.CLOSED


class MemberCharge(models.Model):
    """One member's computed share of a cycle's bills."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    cycle = models.ForeignKey(
        BillingCycle,
        on_delete=models.CASCADE,
        related_name='member_charges'
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='billing_charges'
    )
    is_payer = models.BooleanField()
    presence_days = models.PositiveIntegerField(default=0)

    rent_share = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    electricity_share = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    internet_share = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    water_bill_share = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    water_own = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    water_shared_nonpayor = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    total_due = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)

    computed_at = models.DateTimeField()

    class Meta:
        db_table = 'billing_member_charges'
        unique_together = [['cycle', 'user']]
        indexes = [
            models.Index(fields=['user', 'cycle'], name='billing_mem_user_cy_9c3f61_idx'),
        ]
        ordering = ['-is_payer', 'computed_at', 'id']

    def __str__(self):
        return f"{self.user} owes {self.total_due} for cycle #{self.cycle.cycle_number}"


class PaymentRecord(models.Model):
    """Paid/unpaid flag for one member, one bill type, one cycle."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    cycle = models.ForeignKey(
        BillingCycle,
        on_delete=models.CASCADE,
        related_name='payment_records'
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='billing_payment_records'
    )
    bill_type = models.CharField(max_length=20, choices=BillType.choices)
    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.UNPAID
    )

    status_changed_at = models.DateTimeField(null=True, blank=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='updated_payment_records'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'billing_payment_records'
        unique_together = [['cycle', 'user', 'bill_type']]
        indexes = [
            models.Index(fields=['cycle', 'status'], name='billing_pay_cycle_s_2e8b47_idx'),
            models.Index(fields=['user', 'status'], name='billing_pay_user_st_7d4a18_idx'),
        ]
        ordering = ['created_at', 'bill_type']

    def __str__(self):
        return f"{self.user} {self.bill_type} ({self.status})"
