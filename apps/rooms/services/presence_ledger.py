"""
Presence ledger service.

Stores and queries the calendar days each member was present in a room.
Every mutation that changes what a member owes (check-in, check-out,
ledger reset) asks the billing app to recompute the room's active cycle.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from django.db import transaction, DatabaseError

from apps.rooms.models import Room, RoomMember, PresenceDay, PayerStatus

from .exceptions import (
    RoomNotFoundError,
    NotRoomMemberError,
    InsufficientPermissionsError,
    PresenceClearError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberPresence:
    """Immutable snapshot of one member, as fed to the charge allocator."""

    user_id: object
    payer_status: PayerStatus
    presence: frozenset = frozenset()

    @property
    def is_payer(self) -> bool:
        return self.payer_status is PayerStatus.PAYER


def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


def filter_by_range(dates: Iterable, start=None, end=None) -> List[date]:
    """
    Return the presence dates that fall inside a cycle window.

    Entries may be dates, datetimes or ISO-8601 strings; each is reduced to
    its calendar date, so a timestamp late on ``end`` still counts. Entries
    that cannot be read as a date are dropped. If either bound is missing
    the window is treated as undefined and every valid date is returned.

    Args:
        dates: Stored presence values
        start: First day of the window (inclusive)
        end: Last day of the window (inclusive)

    Returns:
        Sorted list of unique dates
    """
    normalized = {d for d in (_as_date(v) for v in dates) if d is not None}

    start_day = _as_date(start) if start is not None else None
    end_day = _as_date(end) if end is not None else None

    if start_day is None or end_day is None:
        return sorted(normalized)

    return sorted(d for d in normalized if start_day <= d <= end_day)


def member_presence_snapshots(room: Room) -> List[MemberPresence]:
    """Build allocator inputs for every member of ``room`` in join order."""
    members = (
        RoomMember.objects
        .filter(room=room)
        .prefetch_related('presence_days')
        .order_by('joined_at', 'id')
    )
    return [
        MemberPresence(
            user_id=member.user_id,
            payer_status=member.payer_status,
            presence=frozenset(p.date for p in member.presence_days.all()),
        )
        for member in members
    ]


def _get_membership(room_id: UUID, user) -> RoomMember:
    if not Room.objects.filter(id=room_id).exists():
        raise RoomNotFoundError(f"Room with ID {room_id} not found")
    try:
        return RoomMember.objects.select_related('room').get(room_id=room_id, user=user)
    except RoomMember.DoesNotExist:
        raise NotRoomMemberError("User is not a member of this room")


def _recompute(room_id: UUID) -> None:
    from apps.billing.services.cycle_management import recompute_active_cycle

    recompute_active_cycle(room_id=room_id)


@transaction.atomic
def mark_present(*, room_id: UUID, user, day: date) -> Tuple[PresenceDay, bool]:
    """
    Record that ``user`` was present in the room on ``day``.

    Marking the same day twice is a no-op.

    Returns:
        (PresenceDay, created) tuple

    Raises:
        RoomNotFoundError: If room doesn't exist
        NotRoomMemberError: If user is not a member
    """
    membership = _get_membership(room_id, user)
    presence, created = PresenceDay.objects.get_or_create(member=membership, date=day)

    if created:
        _recompute(room_id)

    return presence, created


@transaction.atomic
def unmark_present(*, room_id: UUID, user, day: date) -> bool:
    """
    Remove a presence day. Returns whether a day was actually removed.

    Raises:
        RoomNotFoundError: If room doesn't exist
        NotRoomMemberError: If user is not a member
    """
    membership = _get_membership(room_id, user)
    deleted, _ = PresenceDay.objects.filter(member=membership, date=day).delete()

    if deleted:
        _recompute(room_id)

    return bool(deleted)


def get_member_presence(*, room_id: UUID, user, start=None, end=None) -> List[date]:
    """List a member's presence days, optionally limited to a window."""
    membership = _get_membership(room_id, user)
    dates = membership.presence_days.values_list('date', flat=True)
    return filter_by_range(dates, start, end)


def clear_room_presence(*, room_id: UUID) -> int:
    """
    Delete every presence day of every member of the room.

    Returns:
        Number of presence rows deleted

    Raises:
        PresenceClearError: If the ledger could not be reset
    """
    try:
        deleted, _ = PresenceDay.objects.filter(member__room_id=room_id).delete()
    except DatabaseError as exc:
        raise PresenceClearError(f"Could not clear presence for room {room_id}") from exc

    logger.info("Cleared %s presence days for room %s", deleted, room_id)
    return deleted


@transaction.atomic
def reset_room_presence(*, room_id: UUID, user) -> int:
    """
    Admin action: wipe the room's presence ledger outside of an archive.

    Raises:
        RoomNotFoundError: If room doesn't exist
        InsufficientPermissionsError: If user is not the room admin
    """
    try:
        room = Room.objects.select_for_update().get(id=room_id)
    except Room.DoesNotExist:
        raise RoomNotFoundError(f"Room with ID {room_id} not found")

    if not room.is_admin(user):
        raise InsufficientPermissionsError("Only the room admin can clear presence")

    deleted = clear_room_presence(room_id=room_id)
    _recompute(room_id)
    return deleted
