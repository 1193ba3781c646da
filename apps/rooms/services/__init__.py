"""
Rooms app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions and row locks.
"""

from .exceptions import (
    RoomsServiceError,
    RoomNotFoundError,
    NotRoomMemberError,
    InsufficientPermissionsError,
    PresenceClearError,
)

from .presence_ledger import (
    MemberPresence,
    filter_by_range,
    member_presence_snapshots,
    mark_present,
    unmark_present,
    get_member_presence,
    clear_room_presence,
    reset_room_presence,
)

from .room_management import (
    get_user_rooms,
    get_room_members,
    set_payer_status,
)


__all__ = [
    # Exceptions
    'RoomsServiceError',
    'RoomNotFoundError',
    'NotRoomMemberError',
    'InsufficientPermissionsError',
    'PresenceClearError',

    # Presence ledger
    'MemberPresence',
    'filter_by_range',
    'member_presence_snapshots',
    'mark_present',
    'unmark_present',
    'get_member_presence',
    'clear_room_presence',
    'reset_room_presence',

    # Room management
    'get_user_rooms',
    'get_room_members',
    'set_payer_status',
]
