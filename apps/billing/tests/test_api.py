import json
from unittest.mock import patch

import pytest
from django.urls import reverse
from rest_framework import status

from apps.billing.models import BillingCycle, CycleStatus, MemberCharge
from apps.rooms.services.exceptions import PresenceClearError
from config.views import error_404, error_500


def cycle_payload(room, **overrides):
    payload = {
        'room': str(room.id),
        'start_date': '2024-03-01',
        'end_date': '2024-03-31',
        'rent': '2000.00',
        'electricity': '500.00',
        'internet': '0.00',
    }
    payload.update(overrides)
    return payload


@pytest.mark.django_db
class TestCycleCreate:
    """Tests for POST /api/billing/cycles/"""

    def test_admin_creates_cycle(self, admin_client, room):
        response = admin_client.post(reverse('billing:cycle-list'), cycle_payload(room), format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['status'] == 'active'
        assert response.data['cycle_number'] == 1
        assert response.data['total_billed_amount'] == '2590.00'
        dues = sorted(c['total_due'] for c in response.data['member_charges'])
        assert dues == ['0.00', '1282.50', '1307.50']

    def test_second_active_cycle_conflicts(self, admin_client, room, active_cycle):
        payload = cycle_payload(room, start_date='2024-04-01', end_date='2024-04-30')
        response = admin_client.post(reverse('billing:cycle-list'), payload, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert 'error' in response.data

    def test_member_cannot_create(self, payer_client, room):
        response = payer_client.post(reverse('billing:cycle-list'), cycle_payload(room), format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.parametrize('overrides, field', [
        ({'end_date': '2024-02-01'}, 'end_date'),
        ({'rent': '-5.00'}, 'rent'),
        ({'previous_meter_reading': '100', 'current_meter_reading': '95'}, 'current_meter_reading'),
    ])
    def test_invalid_inputs(self, admin_client, room, overrides, field):
        response = admin_client.post(
            reverse('billing:cycle-list'), cycle_payload(room, **overrides), format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert field in response.data
        assert not BillingCycle.objects.exists()


@pytest.mark.django_db
class TestCycleRead:

    def test_list_is_scoped_to_member_rooms(self, payer_client, outsider_client, active_cycle):
        response = payer_client.get(reverse('billing:cycle-list'))
        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1

        response = outsider_client.get(reverse('billing:cycle-list'))
        assert response.data['count'] == 0

    def test_list_filters_by_status(self, payer_client, room, active_cycle):
        response = payer_client.get(
            reverse('billing:cycle-list'), {'room': str(room.id), 'status': 'closed'}
        )
        assert response.data['count'] == 0

    def test_charges_fall_back_when_cache_empty(self, payer_client, active_cycle):
        MemberCharge.objects.filter(cycle=active_cycle).delete()

        url = reverse('billing:cycle-charges', kwargs={'pk': active_cycle.id})
        response = payer_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        dues = sorted(c['total_due'] for c in response.data)
        assert dues == ['0.00', '1282.50', '1307.50']

    def test_my_charge(self, payer_client, active_cycle):
        url = reverse('billing:cycle-my-charge', kwargs={'pk': active_cycle.id})
        response = payer_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['total_due'] == '1282.50'
        assert response.data['water_shared_nonpayor'] == '7.50'

    def test_outsider_cannot_read_cycle(self, outsider_client, active_cycle):
        url = reverse('billing:cycle-detail', kwargs={'pk': active_cycle.id})
        response = outsider_client.get(url)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_active_cycle_endpoint(self, payer_client, room, active_cycle):
        url = reverse('billing:active-cycle', kwargs={'room_id': room.id})
        response = payer_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['id'] == str(active_cycle.id)

    def test_reconciliation_is_admin_only(self, admin_client, active_cycle):
        url = reverse('billing:cycle-reconciliation', kwargs={'pk': active_cycle.id})
        response = admin_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['is_consistent'] is True


@pytest.mark.django_db
class TestCycleMutations:

    def test_patch_recomputes(self, admin_client, active_cycle):
        url = reverse('billing:cycle-detail', kwargs={'pk': active_cycle.id})
        response = admin_client.patch(url, {'rent': '3000.00'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['rent'] == '3000.00'
        assert response.data['total_billed_amount'] == '3590.00'

    def test_patch_by_member_is_forbidden(self, payer_client, active_cycle):
        url = reverse('billing:cycle-detail', kwargs={'pk': active_cycle.id})
        response = payer_client.patch(url, {'rent': '1.00'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_close_and_reopen(self, admin_client, room, active_cycle):
        url = reverse('billing:cycle-close', kwargs={'pk': active_cycle.id})
        response = admin_client.post(url, {}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['cycle']['status'] == 'closed'
        assert response.data['warnings'] == []

        response = admin_client.get(reverse('billing:active-cycle', kwargs={'room_id': room.id}))
        assert response.status_code == status.HTTP_404_NOT_FOUND

        response = admin_client.post(url, {}, format='json')
        assert response.status_code == status.HTTP_409_CONFLICT

        payload = cycle_payload(room, start_date='2024-04-01', end_date='2024-04-30')
        response = admin_client.post(reverse('billing:cycle-list'), payload, format='json')
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['cycle_number'] == 2

    def test_close_reports_presence_warning(self, admin_client, active_cycle):
        url = reverse('billing:cycle-close', kwargs={'pk': active_cycle.id})
        with patch(
            'apps.rooms.services.presence_ledger.clear_room_presence',
            side_effect=PresenceClearError('storage unavailable'),
        ):
            response = admin_client.post(url, {}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['presence_cleared'] is False
        assert len(response.data['warnings']) == 1
        assert BillingCycle.objects.get(id=active_cycle.id).status == CycleStatus.CLOSED


@pytest.mark.django_db
class TestPayments:

    def test_payment_status_and_summary(self, admin_client, active_cycle, room_admin, payer_user):
        url = reverse('billing:cycle-payment-status', kwargs={'pk': active_cycle.id})

        response = admin_client.post(
            url, {'user_id': room_admin.id, 'bill_type': 'total', 'status': 'completed'}, format='json'
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data['cycle_completed'] is False

        response = admin_client.post(
            url, {'user_id': payer_user.id, 'bill_type': 'total', 'status': 'completed'}, format='json'
        )
        assert response.data['cycle_completed'] is True
        assert response.data['auto_complete_reason'] == 'all_paid'

        summary_url = reverse('billing:cycle-payments', kwargs={'pk': active_cycle.id})
        response = admin_client.get(summary_url)
        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'completed'
        assert response.data['collected'] == '2590.00'
        assert response.data['collection_rate'] == '100.00'

    def test_invalid_transition(self, admin_client, active_cycle, payer_user):
        url = reverse('billing:cycle-payment-status', kwargs={'pk': active_cycle.id})
        admin_client.post(
            url, {'user_id': payer_user.id, 'bill_type': 'rent', 'status': 'completed'}, format='json'
        )
        response = admin_client.post(
            url, {'user_id': payer_user.id, 'bill_type': 'rent', 'status': 'pending'}, format='json'
        )
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_non_payer(self, admin_client, active_cycle, nonpayer_user):
        url = reverse('billing:cycle-payment-status', kwargs={'pk': active_cycle.id})
        response = admin_client.post(
            url, {'user_id': nonpayer_user.id, 'bill_type': 'rent', 'status': 'completed'}, format='json'
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestCloseSupersededCycle:

    def test_close_old_completed_cycle_keeps_room_state(self, admin_client, completed_cycle, room):
        payload = cycle_payload(room, start_date='2024-04-01', end_date='2024-04-30', rent='1000.00')
        response = admin_client.post(reverse('billing:cycle-list'), payload, format='json')
        assert response.status_code == status.HTTP_201_CREATED
        april_id = response.data['id']

        url = reverse('billing:cycle-close', kwargs={'pk': completed_cycle.id})
        response = admin_client.post(url, {}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['room_reset'] is False
        assert response.data['presence_cleared'] is False

        response = admin_client.get(reverse('billing:active-cycle', kwargs={'room_id': room.id}))
        assert response.data['id'] == april_id
        assert response.data['rent'] == '1000.00'


class TestErrorHandlers:

    def test_404_is_json(self, rf):
        response = error_404(rf.get('/api/nowhere/'), Exception())

        assert response.status_code == 404
        assert json.loads(response.content) == {
            'error': 'No billing resource at /api/nowhere/',
            'code': 'not_found',
        }

    def test_500_is_json(self, rf):
        response = error_500(rf.get('/api/billing/cycles/'))

        assert response.status_code == 500
        assert json.loads(response.content)['code'] == 'server_error'
