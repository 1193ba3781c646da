"""
Payment status tracking.

One ``PaymentRecord`` per payer, per bill type, per cycle. Every status
change re-checks whether the room's active cycle is fully paid and, if so,
moves it to ``completed`` and releases it as the room's current cycle.

Status transitions:
    unpaid  -> pending | completed
    pending -> completed | unpaid
    completed is terminal
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from apps.billing.models import (
    BillingCycle,
    BillType,
    CycleStatus,
    PaymentRecord,
    PaymentStatus,
    SHARE_BILL_TYPES,
)
from apps.rooms.models import Room, RoomMember

from .exceptions import (
    CycleNotActiveError,
    CycleNotFoundError,
    InsufficientPermissionsError,
    InvalidPaymentTransitionError,
    NotPayerError,
    NotRoomMemberError,
)
from .money import ZERO, round2
from .reconciliation import ReconciliationGuard

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS = {
    PaymentStatus.UNPAID: {PaymentStatus.PENDING, PaymentStatus.COMPLETED},
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.UNPAID},
    PaymentStatus.COMPLETED: set(),
}

SHARE_FIELD_BY_BILL_TYPE = {
    BillType.RENT: 'rent_share',
    BillType.ELECTRICITY: 'electricity_share',
    BillType.WATER: 'water_bill_share',
    BillType.INTERNET: 'internet_share',
    BillType.TOTAL: 'total_due',
}


@dataclass(frozen=True)
class AutoCompleteResult:
    completed: bool
    reason: str
    cycle_id: Optional[UUID] = None


@dataclass(frozen=True)
class PaymentUpdateResult:
    record: PaymentRecord
    auto_complete: AutoCompleteResult


def share_amount(charge, bill_type) -> Decimal:
    return getattr(charge, SHARE_FIELD_BY_BILL_TYPE[bill_type])


class PaymentStatusTracker:
    """
    Records payment statuses and completes cycles once every payer has paid.

    Usage:
        PaymentStatusTracker.set_payment_status(
            cycle_id=cycle.id, user_id=user.id, bill_type='rent',
            status='completed', updated_by=admin,
        )
    """

    @staticmethod
    @transaction.atomic
    def set_payment_status(
        *,
        cycle_id: UUID,
        user_id,
        bill_type: str,
        status: str,
        updated_by,
        now: Optional[datetime] = None,
    ) -> PaymentUpdateResult:
        """
        Change one payment record and re-check auto-completion.

        The room admin may set any status; a member may only mark their
        own payment as pending.

        Raises:
            CycleNotFoundError: If cycle doesn't exist
            CycleNotActiveError: If the cycle is no longer active
            NotRoomMemberError: If user_id is not a member of the room
            NotPayerError: If the member carries no share
            InsufficientPermissionsError: If updated_by may not make the change
            InvalidPaymentTransitionError: If the transition is not allowed
        """
        now = now or timezone.now()
        bill_type = BillType(bill_type)
        status = PaymentStatus(status)

        try:
            cycle = BillingCycle.objects.select_for_update().select_related('room').get(id=cycle_id)
        except BillingCycle.DoesNotExist:
            raise CycleNotFoundError(f"Billing cycle with ID {cycle_id} not found")

        room = cycle.room
        is_admin = room.is_admin(updated_by)
        is_self = getattr(updated_by, 'pk', None) == user_id
        if not is_admin and not (is_self and status == PaymentStatus.PENDING):
            raise InsufficientPermissionsError(
                "Only the room admin can change this payment status"
            )

        if not cycle.is_active:
            raise CycleNotActiveError(f"Cycle #{cycle.cycle_number} is {cycle.status}")

        if not RoomMember.objects.filter(room=room, user_id=user_id).exists():
            raise NotRoomMemberError("User is not a member of this room")

        charge = ReconciliationGuard.resolve_member_charge(cycle, user_id)
        if charge is None or not charge.is_payer:
            raise NotPayerError("Payments are only tracked for paying members")

        record, _ = PaymentRecord.objects.select_for_update().get_or_create(
            cycle=cycle,
            user_id=user_id,
            bill_type=bill_type,
        )

        current = PaymentStatus(record.status)
        if current != status:
            if status not in ALLOWED_TRANSITIONS[current]:
                raise InvalidPaymentTransitionError(
                    f"Cannot change {bill_type.value} payment from {current.value} to {status.value}"
                )
            record.status = status
            record.status_changed_at = now
            record.updated_by = updated_by
            record.save(update_fields=['status', 'status_changed_at', 'updated_by', 'updated_at'])
            logger.info(
                "Cycle %s: %s payment of user %s is now %s",
                cycle.id, bill_type.value, user_id, status.value,
            )

        auto_complete = PaymentStatusTracker.on_payment_status_changed(room_id=room.id, now=now)
        return PaymentUpdateResult(record=record, auto_complete=auto_complete)

    @staticmethod
    def is_member_paid(charge, completed_types) -> bool:
        """A completed total covers every bill type; zero shares need no payment."""
        if BillType.TOTAL in completed_types:
            return True
        return all(
            bill_type in completed_types
            for bill_type in SHARE_BILL_TYPES
            if share_amount(charge, bill_type) != ZERO
        )

    @staticmethod
    @transaction.atomic
    def on_payment_status_changed(*, room_id: UUID, now: Optional[datetime] = None) -> AutoCompleteResult:
        """Complete the room's active cycle when every payer has paid every billed type."""
        cycle = (
            BillingCycle.objects
            .select_for_update()
            .filter(room_id=room_id, status=CycleStatus.ACTIVE)
            .first()
        )
        if cycle is None:
            return AutoCompleteResult(completed=False, reason='no_active_cycle')

        payers = [c for c in ReconciliationGuard.resolve_charges(cycle) if c.is_payer]
        if not payers:
            return AutoCompleteResult(completed=False, reason='no_paying_members', cycle_id=cycle.id)

        completed = {}
        for user_id, bill_type in (
            PaymentRecord.objects
            .filter(cycle=cycle, status=PaymentStatus.COMPLETED)
            .values_list('user_id', 'bill_type')
        ):
            completed.setdefault(user_id, set()).add(BillType(bill_type))

        for charge in payers:
            if not PaymentStatusTracker.is_member_paid(charge, completed.get(charge.user_id, set())):
                return AutoCompleteResult(completed=False, reason='not_all_paid', cycle_id=cycle.id)

        cycle.status = CycleStatus.COMPLETED
        cycle.completed_at = now or timezone.now()
        cycle.save(update_fields=['status', 'completed_at', 'updated_at'])
        Room.objects.filter(id=room_id, current_cycle=cycle).update(
            current_cycle=None, updated_at=cycle.completed_at
        )
        logger.info("Billing cycle #%s of room %s completed: all payers paid", cycle.cycle_number, room_id)

        return AutoCompleteResult(completed=True, reason='all_paid', cycle_id=cycle.id)

    @staticmethod
    def get_payment_summary(*, cycle_id: UUID) -> dict:
        """
        Collection overview of a cycle.

        Returns:
            dict with total_billed, total_due, collected, pending,
            collection_rate (percent) and per-member statuses
        """
        try:
            cycle = BillingCycle.objects.select_related('room').get(id=cycle_id)
        except BillingCycle.DoesNotExist:
            raise CycleNotFoundError(f"Billing cycle with ID {cycle_id} not found")

        statuses = {}
        for record in PaymentRecord.objects.filter(cycle=cycle):
            statuses.setdefault(record.user_id, {})[BillType(record.bill_type)] = PaymentStatus(record.status)

        total_due = ZERO
        collected = ZERO
        pending = ZERO
        members = []

        for charge in ReconciliationGuard.resolve_charges(cycle):
            if not charge.is_payer:
                continue

            member_statuses = statuses.get(charge.user_id, {})
            total_status = member_statuses.get(BillType.TOTAL)

            if total_status == PaymentStatus.COMPLETED:
                member_collected = charge.total_due
                member_pending = ZERO
            else:
                member_collected = sum(
                    (share_amount(charge, bt) for bt in SHARE_BILL_TYPES
                     if member_statuses.get(bt) == PaymentStatus.COMPLETED),
                    ZERO
                )
                if total_status == PaymentStatus.PENDING:
                    member_pending = charge.total_due - member_collected
                else:
                    member_pending = sum(
                        (share_amount(charge, bt) for bt in SHARE_BILL_TYPES
                         if member_statuses.get(bt) == PaymentStatus.PENDING),
                        ZERO
                    )

            total_due += charge.total_due
            collected += member_collected
            pending += member_pending

            members.append({
                'user_id': charge.user_id,
                'total_due': round2(charge.total_due),
                'collected': round2(member_collected),
                'pending': round2(member_pending),
                'is_paid': PaymentStatusTracker.is_member_paid(
                    charge,
                    {bt for bt, st in member_statuses.items() if st == PaymentStatus.COMPLETED}
                ),
                'statuses': {
                    bt.value: member_statuses.get(bt, PaymentStatus.UNPAID).value
                    for bt in SHARE_BILL_TYPES + [BillType.TOTAL]
                },
            })

        collection_rate = round2(collected / total_due * 100) if total_due else ZERO

        return {
            'cycle_id': cycle.id,
            'status': cycle.status,
            'total_billed': round2(cycle.total_billed_amount),
            'total_due': round2(total_due),
            'collected': round2(collected),
            'pending': round2(pending),
            'collection_rate': collection_rate,
            'members': members,
        }
