"""
Domain-specific exceptions for rooms app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class RoomsServiceError(Exception):
    """Base exception for all rooms service errors."""
    pass


class RoomNotFoundError(RoomsServiceError):
    """Raised when a room does not exist."""
    pass


class NotRoomMemberError(RoomsServiceError):
    """Raised when a user is not a member of the room."""
    pass


class InsufficientPermissionsError(RoomsServiceError):
    """Raised when a user lacks room-admin rights for an action."""
    pass


class PresenceClearError(RoomsServiceError):
    """Raised when the room's presence ledger could not be reset."""
    pass
