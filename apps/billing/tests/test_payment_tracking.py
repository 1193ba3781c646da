"""
Service layer tests for payment tracking and cycle auto-completion.
"""

from decimal import Decimal

import pytest

from apps.billing.models import BillingCycle, CycleStatus, PaymentRecord
from apps.billing.services import PaymentStatusTracker, update_billing_cycle
from apps.billing.services.exceptions import (
    CycleNotActiveError,
    InsufficientPermissionsError,
    InvalidPaymentTransitionError,
    NotPayerError,
)


def pay(cycle, user, bill_type, admin, status='completed'):
    return PaymentStatusTracker.set_payment_status(
        cycle_id=cycle.id,
        user_id=user.id,
        bill_type=bill_type,
        status=status,
        updated_by=admin,
    )


@pytest.mark.django_db
class TestSetPaymentStatus:

    def test_admin_marks_payment(self, active_cycle, room_admin, payer_user):
        result = pay(active_cycle, payer_user, 'rent', room_admin)

        record = PaymentRecord.objects.get(cycle=active_cycle, user=payer_user, bill_type='rent')
        assert record.status == 'completed'
        assert record.updated_by == room_admin
        assert record.status_changed_at is not None
        assert result.auto_complete.completed is False
        assert result.auto_complete.reason == 'not_all_paid'

    def test_pending_round_trip(self, active_cycle, room_admin, payer_user):
        pay(active_cycle, payer_user, 'water', room_admin, status='pending')
        pay(active_cycle, payer_user, 'water', room_admin, status='unpaid')

        record = PaymentRecord.objects.get(cycle=active_cycle, user=payer_user, bill_type='water')
        assert record.status == 'unpaid'

    def test_completed_is_terminal(self, active_cycle, room_admin, payer_user):
        pay(active_cycle, payer_user, 'rent', room_admin)

        with pytest.raises(InvalidPaymentTransitionError):
            pay(active_cycle, payer_user, 'rent', room_admin, status='unpaid')

    def test_member_may_only_mark_own_pending(self, active_cycle, room_admin, payer_user):
        pay(active_cycle, payer_user, 'rent', payer_user, status='pending')

        with pytest.raises(InsufficientPermissionsError):
            pay(active_cycle, payer_user, 'rent', payer_user, status='completed')
        with pytest.raises(InsufficientPermissionsError):
            pay(active_cycle, room_admin, 'rent', payer_user, status='pending')

    def test_non_payer_has_no_payments(self, active_cycle, room_admin, nonpayer_user):
        with pytest.raises(NotPayerError):
            pay(active_cycle, nonpayer_user, 'rent', room_admin)


@pytest.mark.django_db
class TestAutoComplete:

    def test_all_billed_types_paid_completes_cycle(self, active_cycle, room_admin, payer_user):
        # Internet is 0, so only rent, electricity and water are required
        for user in (room_admin, payer_user):
            for bill_type in ('rent', 'electricity', 'water'):
                result = pay(active_cycle, user, bill_type, room_admin)

        assert result.auto_complete.completed is True
        assert result.auto_complete.reason == 'all_paid'

        cycle = BillingCycle.objects.get(id=active_cycle.id)
        assert cycle.status == CycleStatus.COMPLETED
        assert cycle.completed_at is not None

    def test_total_payment_covers_every_bill_type(self, active_cycle, room_admin, payer_user):
        pay(active_cycle, room_admin, 'total', room_admin)
        result = pay(active_cycle, payer_user, 'total', room_admin)

        assert result.auto_complete.completed is True

    def test_nonzero_internet_is_required(self, active_cycle, room_admin, payer_user):
        update_billing_cycle(cycle_id=active_cycle.id, updated_by=room_admin, internet=Decimal('60'))

        for user in (room_admin, payer_user):
            for bill_type in ('rent', 'electricity', 'water'):
                result = pay(active_cycle, user, bill_type, room_admin)

        assert result.auto_complete.completed is False

    def test_completed_cycle_rejects_payment_changes(self, active_cycle, room_admin, payer_user):
        pay(active_cycle, room_admin, 'total', room_admin)
        pay(active_cycle, payer_user, 'total', room_admin)

        with pytest.raises(CycleNotActiveError):
            pay(active_cycle, payer_user, 'rent', room_admin)

    def test_no_active_cycle(self, room):
        result = PaymentStatusTracker.on_payment_status_changed(room_id=room.id)

        assert result.completed is False
        assert result.reason == 'no_active_cycle'


@pytest.mark.django_db
class TestPaymentSummary:

    def test_summary_tracks_collection(self, active_cycle, room_admin, payer_user):
        pay(active_cycle, room_admin, 'total', room_admin)
        pay(active_cycle, payer_user, 'rent', room_admin)
        pay(active_cycle, payer_user, 'water', room_admin, status='pending')

        summary = PaymentStatusTracker.get_payment_summary(cycle_id=active_cycle.id)

        assert summary['total_billed'] == Decimal('2590.00')
        assert summary['total_due'] == Decimal('2590.00')
        assert summary['collected'] == Decimal('2307.50')
        assert summary['pending'] == Decimal('32.50')
        assert summary['collection_rate'] == Decimal('89.09')

        members = {m['user_id']: m for m in summary['members']}
        assert len(members) == 2
        assert members[room_admin.id]['is_paid'] is True
        assert members[payer_user.id]['is_paid'] is False
        assert members[payer_user.id]['statuses']['rent'] == 'completed'
        assert members[payer_user.id]['statuses']['water'] == 'pending'
        assert members[payer_user.id]['statuses']['total'] == 'unpaid'
