import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.rooms.models import Room, RoomMember

User = get_user_model()


def authenticate(client, user):
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def room_admin(db):
    """Create and return the room admin (also a paying member)."""
    return User.objects.create_user(
        username='admin',
        email='admin@example.com',
        password='TestPass123!',
    )


@pytest.fixture
def payer_user(db):
    """Create and return a paying member."""
    return User.objects.create_user(
        username='payer',
        email='payer@example.com',
        password='TestPass123!',
    )


@pytest.fixture
def nonpayer_user(db):
    """Create and return a non-paying member."""
    return User.objects.create_user(
        username='guest',
        email='guest@example.com',
        password='TestPass123!',
    )


@pytest.fixture
def outsider(db):
    """Create and return a user not in any room."""
    return User.objects.create_user(
        username='outsider',
        email='outsider@example.com',
        password='TestPass123!',
    )


@pytest.fixture
def room(db, room_admin, payer_user, nonpayer_user):
    """Room with the admin and one payer paying, and one non-payer."""
    room = Room.objects.create(name='Room 204', admin=room_admin)
    RoomMember.objects.create(room=room, user=room_admin, is_payer=True)
    RoomMember.objects.create(room=room, user=payer_user, is_payer=True)
    RoomMember.objects.create(room=room, user=nonpayer_user, is_payer=False)
    return room


@pytest.fixture
def other_room(db, outsider):
    """A room the main fixtures are not part of."""
    room = Room.objects.create(name='Room 305', admin=outsider)
    RoomMember.objects.create(room=room, user=outsider, is_payer=True)
    return room


@pytest.fixture
def admin_client(room_admin):
    """Return API client authenticated as room admin."""
    return authenticate(APIClient(), room_admin)


@pytest.fixture
def payer_client(payer_user):
    """Return API client authenticated as a paying member."""
    return authenticate(APIClient(), payer_user)


@pytest.fixture
def outsider_client(outsider):
    """Return API client authenticated as non-member user."""
    return authenticate(APIClient(), outsider)
