"""
Billing cycle lifecycle service.

A room has at most one active cycle. Creating or editing a cycle runs the
charge allocator and replaces the cycle's member charges wholesale; any
change to presence or payer flags recomputes the active cycle the same way.
Closing a cycle freezes its charges, resets the room's presence ledger and
clears the room's draft billing inputs.

Transitions:
    (no cycle) --create--> active --all paid--> completed --close--> closed
                           active ----------------close-----------> closed
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from django.db import transaction, DatabaseError, IntegrityError
from django.db.models import Max, QuerySet
from django.utils import timezone

from apps.billing.models import (
    BillingCycle,
    CycleStatus,
    MemberCharge,
    PaymentRecord,
    SHARE_BILL_TYPES,
)
from apps.rooms.models import Room
from apps.rooms.services import presence_ledger
from apps.rooms.services.exceptions import PresenceClearError

from .charge_allocation import Allocation, BillInputs, ChargeAllocator
from .exceptions import (
    ActiveCycleConflictError,
    CycleNotActiveError,
    CycleNotFoundError,
    InsufficientPermissionsError,
    InvalidBillingInputError,
    InvalidCycleTransitionError,
    RoomNotFoundError,
)
from .money import to_decimal
from .rate_table import RateTable

logger = logging.getLogger(__name__)


AMOUNT_FIELDS = ['rent', 'electricity', 'internet']
READING_FIELDS = ['previous_meter_reading', 'current_meter_reading']
EDITABLE_FIELDS = ['start_date', 'end_date'] + AMOUNT_FIELDS + READING_FIELDS + ['notes']

# Cycle input -> Room draft field
ROOM_DRAFT_FIELDS = {
    'start_date': 'billing_start',
    'end_date': 'billing_end',
    'rent': 'billing_rent',
    'electricity': 'billing_electricity',
    'internet': 'billing_internet',
    'previous_meter_reading': 'billing_previous_reading',
    'current_meter_reading': 'billing_current_reading',
}


@dataclass
class CycleCloseResult:
    """Outcome of closing a cycle; warnings list degraded sub-steps."""

    cycle: BillingCycle
    warnings: List[str] = field(default_factory=list)
    room_reset: bool = True

    @property
    def presence_cleared(self) -> bool:
        return self.room_reset and not self.warnings


# =============================================================================
# Validation
# =============================================================================

def validate_billing_inputs(
    *,
    start_date: Optional[date],
    end_date: Optional[date],
    rent=None,
    electricity=None,
    internet=None,
    previous_meter_reading=None,
    current_meter_reading=None,
) -> None:
    """
    Reject bill inputs that the allocator must never see.

    Raises:
        InvalidBillingInputError: With ``field`` set to the offending input
    """
    if start_date is None:
        raise InvalidBillingInputError("start_date is required", field='start_date')
    if end_date is None:
        raise InvalidBillingInputError("end_date is required", field='end_date')
    if start_date >= end_date:
        raise InvalidBillingInputError("start_date must be before end_date", field='end_date')

    values = {
        'rent': rent,
        'electricity': electricity,
        'internet': internet,
        'previous_meter_reading': previous_meter_reading,
        'current_meter_reading': current_meter_reading,
    }
    for name, value in values.items():
        if value is not None and to_decimal(value) < 0:
            raise InvalidBillingInputError(f"{name} must not be negative", field=name)

    if (
        previous_meter_reading is not None
        and current_meter_reading is not None
        and to_decimal(current_meter_reading) < to_decimal(previous_meter_reading)
    ):
        raise InvalidBillingInputError(
            "current_meter_reading must not be lower than previous_meter_reading",
            field='current_meter_reading'
        )


# =============================================================================
# Queries
# =============================================================================

def get_cycle_by_id(*, cycle_id: UUID) -> BillingCycle:
    """
    Raises:
        CycleNotFoundError: If cycle doesn't exist
    """
    try:
        return BillingCycle.objects.select_related('room', 'created_by', 'closed_by').get(id=cycle_id)
    except BillingCycle.DoesNotExist:
        raise CycleNotFoundError(f"Billing cycle with ID {cycle_id} not found")


def get_active_cycle(*, room_id: UUID) -> Optional[BillingCycle]:
    return (
        BillingCycle.objects
        .select_related('room')
        .filter(room_id=room_id, status=CycleStatus.ACTIVE)
        .first()
    )


def list_room_cycles(*, room_id: UUID, status: Optional[str] = None) -> QuerySet[BillingCycle]:
    """Cycles of a room, newest first, optionally filtered by status."""
    if not Room.objects.filter(id=room_id).exists():
        raise RoomNotFoundError(f"Room with ID {room_id} not found")

    queryset = BillingCycle.objects.filter(room_id=room_id).select_related('room')
    if status:
        queryset = queryset.filter(status=status)
    return queryset.order_by('-cycle_number')


def _check_admin(room: Room, user, action: str) -> None:
    if not room.is_admin(user):
        raise InsufficientPermissionsError(f"Only the room admin can {action}")


# =============================================================================
# Allocation
# =============================================================================

def build_cycle_allocation(cycle: BillingCycle, room: Optional[Room] = None) -> Allocation:
    """Run the allocator against the cycle's inputs and the room's live presence."""
    room = room or cycle.room
    members = presence_ledger.member_presence_snapshots(room)
    allocator = ChargeAllocator(RateTable.from_room(room))
    return allocator.allocate(
        members,
        BillInputs.from_cycle(cycle),
        cycle.start_date,
        cycle.end_date,
    )


def _apply_allocation(cycle: BillingCycle, room: Room, now: datetime) -> Allocation:
    """Replace the cycle's charges with a fresh allocation."""
    allocation = build_cycle_allocation(cycle, room)

    cycle.water_bill_amount = allocation.water_bill_amount
    cycle.total_billed_amount = allocation.total_billed_amount
    cycle.members_count = allocation.members_count
    cycle.save(update_fields=[
        'water_bill_amount', 'total_billed_amount', 'members_count', 'updated_at'
    ])

    MemberCharge.objects.filter(cycle=cycle).delete()
    MemberCharge.objects.bulk_create([
        MemberCharge(
            cycle=cycle,
            user_id=charge.user_id,
            is_payer=charge.is_payer,
            presence_days=charge.presence_days,
            computed_at=now,
            **charge.amounts()
        )
        for charge in allocation.charges
    ])

    PaymentRecord.objects.bulk_create(
        [
            PaymentRecord(cycle=cycle, user_id=charge.user_id, bill_type=bill_type)
            for charge in allocation.payer_charges
            for bill_type in SHARE_BILL_TYPES
        ],
        ignore_conflicts=True
    )

    logger.debug(
        "Cycle %s recomputed: %s members, total billed %s",
        cycle.id, allocation.members_count, allocation.total_billed_amount,
    )
    return allocation


def _mirror_to_room(room: Room, cycle: BillingCycle) -> None:
    for cycle_field, room_field in ROOM_DRAFT_FIELDS.items():
        setattr(room, room_field, getattr(cycle, cycle_field))
    room.current_cycle = cycle
    room.save(update_fields=list(ROOM_DRAFT_FIELDS.values()) + ['current_cycle', 'updated_at'])


# =============================================================================
# Lifecycle
# =============================================================================

@transaction.atomic
def create_billing_cycle(
    *,
    room_id: UUID,
    start_date: date,
    end_date: date,
    created_by,
    rent=None,
    electricity=None,
    internet=None,
    previous_meter_reading=None,
    current_meter_reading=None,
    notes: str = '',
    now: Optional[datetime] = None,
) -> BillingCycle:
    """
    Open a new active cycle for a room and compute its charges.

    Raises:
        InvalidBillingInputError: If inputs fail validation
        RoomNotFoundError: If room doesn't exist
        InsufficientPermissionsError: If created_by is not the room admin
        ActiveCycleConflictError: If the room already has an active cycle
    """
    now = now or timezone.now()
    inputs = {
        'rent': rent,
        'electricity': electricity,
        'internet': internet,
        'previous_meter_reading': previous_meter_reading,
        'current_meter_reading': current_meter_reading,
    }
    validate_billing_inputs(start_date=start_date, end_date=end_date, **inputs)

    try:
        room = Room.objects.select_for_update().get(id=room_id)
    except Room.DoesNotExist:
        raise RoomNotFoundError(f"Room with ID {room_id} not found")

    _check_admin(room, created_by, "create a billing cycle")

    if BillingCycle.objects.filter(room=room, status=CycleStatus.ACTIVE).exists():
        raise ActiveCycleConflictError("This room already has an active billing cycle")

    last_number = (
        BillingCycle.objects
        .filter(room=room)
        .aggregate(last=Max('cycle_number'))['last']
    ) or 0

    try:
        with transaction.atomic():
            cycle = BillingCycle.objects.create(
                room=room,
                cycle_number=last_number + 1,
                status=CycleStatus.ACTIVE,
                start_date=start_date,
                end_date=end_date,
                notes=notes or '',
                created_by=created_by,
                **{name: (None if value is None else to_decimal(value)) for name, value in inputs.items()}
            )
    except IntegrityError:
        raise ActiveCycleConflictError("This room already has an active billing cycle")

    _mirror_to_room(room, cycle)
    _apply_allocation(cycle, room, now)

    logger.info(
        "Created billing cycle #%s for room %s (%s to %s)",
        cycle.cycle_number, room.id, start_date, end_date,
    )
    return cycle


@transaction.atomic
def update_billing_cycle(
    *,
    cycle_id: UUID,
    updated_by,
    now: Optional[datetime] = None,
    **changes,
) -> BillingCycle:
    """
    Edit an active cycle's inputs and recompute its charges.

    Only keys present in ``changes`` are touched; passing ``None`` clears
    an amount.

    Raises:
        CycleNotFoundError: If cycle doesn't exist
        InsufficientPermissionsError: If updated_by is not the room admin
        CycleNotActiveError: If the cycle is completed or closed
        InvalidBillingInputError: If the merged inputs fail validation
    """
    now = now or timezone.now()

    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise InvalidBillingInputError(
            f"Unknown billing fields: {', '.join(sorted(unknown))}",
            field=sorted(unknown)[0]
        )

    try:
        cycle = BillingCycle.objects.select_for_update().select_related('room').get(id=cycle_id)
    except BillingCycle.DoesNotExist:
        raise CycleNotFoundError(f"Billing cycle with ID {cycle_id} not found")

    room = Room.objects.select_for_update().get(id=cycle.room_id)
    _check_admin(room, updated_by, "edit billing inputs")

    if not cycle.is_active:
        raise CycleNotActiveError(f"Cycle #{cycle.cycle_number} is {cycle.status} and can no longer be edited")

    for name, value in changes.items():
        if name in AMOUNT_FIELDS or name in READING_FIELDS:
            value = None if value is None else to_decimal(value)
        elif name == 'notes':
            value = value or ''
        setattr(cycle, name, value)

    validate_billing_inputs(
        start_date=cycle.start_date,
        end_date=cycle.end_date,
        **{name: getattr(cycle, name) for name in AMOUNT_FIELDS + READING_FIELDS}
    )

    cycle.save(update_fields=list(changes) + ['updated_at'])
    _mirror_to_room(room, cycle)
    _apply_allocation(cycle, room, now)

    logger.info("Updated billing cycle %s: %s", cycle.id, ', '.join(sorted(changes)) or 'no changes')
    return cycle


@transaction.atomic
def close_billing_cycle(
    *,
    cycle_id: UUID,
    closed_by,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CycleCloseResult:
    """
    Archive a cycle.

    Freezes the member charges as the historical record, resets every
    member's presence, clears the room's draft inputs and releases the
    room's current cycle. Clearing presence runs in its own savepoint: if
    it fails the cycle still closes and the failure is returned as a
    warning.

    A completed cycle may be archived after its successor was opened; the
    room's presence and draft inputs then belong to the active cycle and
    are left untouched.

    Raises:
        CycleNotFoundError: If cycle doesn't exist
        InsufficientPermissionsError: If closed_by is not the room admin
        InvalidCycleTransitionError: If the cycle is already closed
    """
    now = now or timezone.now()

    try:
        cycle = BillingCycle.objects.select_for_update().get(id=cycle_id)
    except BillingCycle.DoesNotExist:
        raise CycleNotFoundError(f"Billing cycle with ID {cycle_id} not found")

    room = Room.objects.select_for_update().get(id=cycle.room_id)
    _check_admin(room, closed_by, "close a billing cycle")

    if cycle.is_closed:
        raise InvalidCycleTransitionError(f"Cycle #{cycle.cycle_number} is already closed")

    if not cycle.member_charges.exists():
        _apply_allocation(cycle, room, now)

    cycle.status = CycleStatus.CLOSED
    cycle.closed_at = now
    cycle.closed_by = closed_by
    update_fields = ['status', 'closed_at', 'closed_by', 'updated_at']
    if notes is not None:
        cycle.notes = notes
        update_fields.append('notes')
    cycle.save(update_fields=update_fields)

    result = CycleCloseResult(cycle=cycle)

    # A newer cycle already owns the presence ledger and the draft inputs
    successor = (
        BillingCycle.objects
        .filter(room=room, status=CycleStatus.ACTIVE)
        .exclude(id=cycle.id)
        .first()
    )
    if successor is not None:
        result.room_reset = False
        logger.info(
            "Closed billing cycle #%s for room %s; room state kept for active cycle #%s",
            cycle.cycle_number, room.id, successor.cycle_number,
        )
        return result

    try:
        with transaction.atomic():
            presence_ledger.clear_room_presence(room_id=room.id)
    except (DatabaseError, PresenceClearError) as exc:
        logger.warning(
            "Cycle %s closed but presence for room %s was not cleared: %s",
            cycle.id, room.id, exc,
        )
        result.warnings.append(f"Presence could not be cleared: {exc}")

    touched = room.clear_billing_inputs()
    if room.current_cycle_id == cycle.id:
        room.current_cycle = None
        touched.append('current_cycle')
    room.save(update_fields=touched + ['updated_at'])

    logger.info(
        "Closed billing cycle #%s for room %s (%s warnings)",
        cycle.cycle_number, room.id, len(result.warnings),
    )
    return result


@transaction.atomic
def repair_billing_cycle(*, cycle_id: UUID, user, now: Optional[datetime] = None) -> BillingCycle:
    """
    Recompute the cached charges of an active cycle.

    Completed cycles keep the charges their payments were settled against.

    Raises:
        CycleNotFoundError: If cycle doesn't exist
        InsufficientPermissionsError: If user is not the room admin
        InvalidCycleTransitionError: If the cycle is closed
        CycleNotActiveError: If the cycle is completed
    """
    now = now or timezone.now()

    try:
        cycle = BillingCycle.objects.select_for_update().get(id=cycle_id)
    except BillingCycle.DoesNotExist:
        raise CycleNotFoundError(f"Billing cycle with ID {cycle_id} not found")

    room = Room.objects.get(id=cycle.room_id)
    _check_admin(room, user, "repair a billing cycle")

    if cycle.is_closed:
        raise InvalidCycleTransitionError("Closed cycles keep their frozen charges")
    if not cycle.is_active:
        raise CycleNotActiveError(f"Cycle #{cycle.cycle_number} is completed; its charges are settled")

    _apply_allocation(cycle, room, now)
    logger.info("Repaired charges of billing cycle %s", cycle.id)
    return cycle


@transaction.atomic
def recompute_active_cycle(*, room_id: UUID, now: Optional[datetime] = None) -> Optional[BillingCycle]:
    """Recompute the room's active cycle, if any. Called after presence or payer changes."""
    cycle = (
        BillingCycle.objects
        .select_for_update()
        .filter(room_id=room_id, status=CycleStatus.ACTIVE)
        .first()
    )
    if cycle is None:
        return None

    room = Room.objects.get(id=room_id)
    _apply_allocation(cycle, room, now or timezone.now())
    return cycle
