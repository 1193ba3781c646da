import pytest
from django.urls import reverse
from rest_framework import status

from apps.rooms.models import PresenceDay, RoomMember


@pytest.mark.django_db
class TestRoomList:
    """Tests for GET /api/rooms/"""

    def test_requires_authentication(self, api_client, room):
        response = api_client.get(reverse('rooms:room-list'))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_lists_only_own_rooms(self, payer_client, room, other_room):
        response = payer_client.get(reverse('rooms:room-list'))

        assert response.status_code == status.HTTP_200_OK
        ids = [r['id'] for r in response.data]
        assert ids == [str(room.id)]
        assert response.data[0]['member_count'] == 3

    def test_retrieve_foreign_room_is_not_found(self, payer_client, other_room):
        url = reverse('rooms:room-detail', kwargs={'pk': other_room.id})
        response = payer_client.get(url)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_retrieve_shows_rates(self, admin_client, room):
        url = reverse('rooms:room-detail', kwargs={'pk': room.id})
        response = admin_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['is_admin'] is True
        assert response.data['water_rate_per_day'] == '5.00'
        assert response.data['electricity_rate'] == '16.00'
        assert response.data['current_cycle'] is None


@pytest.mark.django_db
class TestMembers:
    """Tests for GET /api/rooms/{id}/members/"""

    def test_members_carry_payer_status(self, payer_client, room, nonpayer_user):
        url = reverse('rooms:room-members', kwargs={'pk': room.id})
        response = payer_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        statuses = {m['user']['id']: m['payer_status'] for m in response.data}
        assert statuses[nonpayer_user.id] == 'non_payer'
        assert len(statuses) == 3


@pytest.mark.django_db
class TestPresence:
    """Tests for /api/rooms/{id}/presence/"""

    def test_mark_list_and_unmark(self, payer_client, room, payer_user):
        url = reverse('rooms:room-presence', kwargs={'pk': room.id})

        response = payer_client.post(url, {'date': '2024-03-04'}, format='json')
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['created'] is True

        response = payer_client.post(url, {'date': '2024-03-04'}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['created'] is False

        response = payer_client.get(url, {'start': '2024-03-01', 'end': '2024-03-31'})
        assert response.status_code == status.HTTP_200_OK
        assert response.data['dates'] == ['2024-03-04']

        response = payer_client.delete(url, {'date': '2024-03-04'}, format='json')
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not PresenceDay.objects.filter(member__user=payer_user).exists()

    def test_unmark_missing_day(self, payer_client, room):
        url = reverse('rooms:room-presence', kwargs={'pk': room.id})
        response = payer_client.delete(url, {'date': '2024-03-04'}, format='json')
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_invalid_window(self, payer_client, room):
        url = reverse('rooms:room-presence', kwargs={'pk': room.id})
        response = payer_client.get(url, {'start': '2024-03-31', 'end': '2024-03-01'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_outsider_cannot_mark(self, outsider_client, room):
        url = reverse('rooms:room-presence', kwargs={'pk': room.id})
        response = outsider_client.post(url, {'date': '2024-03-04'}, format='json')
        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestAdminActions:

    def test_set_payer_as_admin(self, admin_client, room, nonpayer_user):
        url = reverse('rooms:room-set-payer', kwargs={'pk': room.id})
        response = admin_client.post(
            url, {'user_id': nonpayer_user.id, 'is_payer': True}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['payer_status'] == 'payer'
        assert RoomMember.objects.get(room=room, user=nonpayer_user).is_payer is True

    def test_set_payer_as_member_is_forbidden(self, payer_client, room, nonpayer_user):
        url = reverse('rooms:room-set-payer', kwargs={'pk': room.id})
        response = payer_client.post(
            url, {'user_id': nonpayer_user.id, 'is_payer': True}, format='json'
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_clear_presence(self, admin_client, room, payer_user, nonpayer_user):
        for user in (payer_user, nonpayer_user):
            member = RoomMember.objects.get(room=room, user=user)
            PresenceDay.objects.create(member=member, date='2024-03-01')

        url = reverse('rooms:room-clear-presence', kwargs={'pk': room.id})
        response = admin_client.post(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['deleted'] == 2
        assert not PresenceDay.objects.filter(member__room=room).exists()
