"""
Room management service.

Read access to rooms and members, plus the payer flag toggle. Creating
rooms and approving members happens through the Django admin.
"""

import logging
from uuid import UUID

from django.db import transaction
from django.db.models import Q, QuerySet

from apps.rooms.models import Room, RoomMember

from .exceptions import (
    RoomNotFoundError,
    NotRoomMemberError,
    InsufficientPermissionsError,
)

logger = logging.getLogger(__name__)


def get_user_rooms(*, user) -> QuerySet[Room]:
    """Rooms the user belongs to or administers."""
    return (
        Room.objects
        .filter(Q(members__user=user) | Q(admin=user))
        .select_related('admin', 'current_cycle')
        .distinct()
        .order_by('-created_at')
    )


def get_room_members(*, room_id: UUID) -> QuerySet[RoomMember]:
    """
    Get all members of a room.

    Raises:
        RoomNotFoundError: If room doesn't exist
    """
    if not Room.objects.filter(id=room_id).exists():
        raise RoomNotFoundError(f"Room with ID {room_id} not found")

    return (
        RoomMember.objects
        .filter(room_id=room_id)
        .select_related('user')
        .order_by('joined_at', 'id')
    )


@transaction.atomic
def set_payer_status(*, room_id: UUID, user_id, is_payer: bool, updated_by) -> RoomMember:
    """
    Change whether a member carries a share of the bills (admin only).

    The active cycle's charges are recomputed in the same transaction.

    Raises:
        RoomNotFoundError: If room doesn't exist
        InsufficientPermissionsError: If updated_by is not the room admin
        NotRoomMemberError: If target user is not a member
    """
    try:
        room = Room.objects.select_for_update().get(id=room_id)
    except Room.DoesNotExist:
        raise RoomNotFoundError(f"Room with ID {room_id} not found")

    if not room.is_admin(updated_by):
        raise InsufficientPermissionsError("Only the room admin can change payer status")

    try:
        membership = (
            RoomMember.objects
            .select_for_update()
            .get(room=room, user_id=user_id)
        )
    except RoomMember.DoesNotExist:
        raise NotRoomMemberError("User is not a member of this room")

    if membership.is_payer == is_payer:
        return membership

    membership.is_payer = is_payer
    membership.save(update_fields=['is_payer'])
    logger.info(
        "Room %s: member %s is now %s",
        room_id, user_id, membership.payer_status.value,
    )

    from apps.billing.services.cycle_management import recompute_active_cycle

    recompute_active_cycle(room_id=room_id)
    return membership
