from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.billing.services import PaymentStatusTracker, create_billing_cycle
from apps.rooms.models import PresenceDay, Room, RoomMember

User = get_user_model()

CYCLE_START = date(2024, 3, 1)
CYCLE_END = date(2024, 3, 31)


def add_presence(room, user, days, month=3, year=2024):
    """Store presence rows directly, without triggering a recompute."""
    member = RoomMember.objects.get(room=room, user=user)
    PresenceDay.objects.bulk_create([
        PresenceDay(member=member, date=date(year, month, day)) for day in days
    ])


def authenticate(client, user):
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def room_admin(db):
    """Room admin; pays a share like any other payer."""
    return User.objects.create_user(
        username='alice',
        email='alice@example.com',
        password='TestPass123!',
    )


@pytest.fixture
def payer_user(db):
    return User.objects.create_user(
        username='bob',
        email='bob@example.com',
        password='TestPass123!',
    )


@pytest.fixture
def nonpayer_user(db):
    return User.objects.create_user(
        username='carol',
        email='carol@example.com',
        password='TestPass123!',
    )


@pytest.fixture
def outsider(db):
    return User.objects.create_user(
        username='dave',
        email='dave@example.com',
        password='TestPass123!',
    )


@pytest.fixture
def room(db, room_admin, payer_user, nonpayer_user):
    """
    Two payers and one non-payer, presence-based water at 5.00/day.

    Presence in March 2024: alice 10 days, bob 5 days, carol 3 days,
    plus one day in February for alice that falls outside the cycle.
    """
    room = Room.objects.create(
        name='Room 204',
        admin=room_admin,
        water_rate_per_day=Decimal('5.00'),
        electricity_rate=Decimal('16.00'),
    )
    RoomMember.objects.create(room=room, user=room_admin, is_payer=True)
    RoomMember.objects.create(room=room, user=payer_user, is_payer=True)
    RoomMember.objects.create(room=room, user=nonpayer_user, is_payer=False)

    add_presence(room, room_admin, range(1, 11))
    add_presence(room, room_admin, [28], month=2)
    add_presence(room, payer_user, range(1, 6))
    add_presence(room, nonpayer_user, range(1, 4))
    return room


@pytest.fixture
def active_cycle(room, room_admin):
    """Active cycle: rent 2000, electricity 500, internet 0."""
    return create_billing_cycle(
        room_id=room.id,
        start_date=CYCLE_START,
        end_date=CYCLE_END,
        rent=Decimal('2000'),
        electricity=Decimal('500'),
        internet=Decimal('0'),
        created_by=room_admin,
    )


@pytest.fixture
def completed_cycle(active_cycle, room_admin, payer_user):
    """The active cycle after both payers settled their totals."""
    for user in (room_admin, payer_user):
        PaymentStatusTracker.set_payment_status(
            cycle_id=active_cycle.id,
            user_id=user.id,
            bill_type='total',
            status='completed',
            updated_by=room_admin,
        )
    active_cycle.refresh_from_db()
    return active_cycle


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
