"""
Domain-specific exceptions for billing app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class BillingServiceError(Exception):
    """Base exception for all billing service errors."""
    pass


class RoomNotFoundError(BillingServiceError):
    """Raised when a room does not exist."""
    pass


class CycleNotFoundError(BillingServiceError):
    """Raised when a billing cycle does not exist."""
    pass


class ActiveCycleConflictError(BillingServiceError):
    """Raised when creating a cycle while the room already has an active one."""
    pass


class InvalidBillingInputError(BillingServiceError):
    """Raised when bill inputs fail validation."""

    def __init__(self, message, field=None):
        super().__init__(message)
        self.field = field


class InvalidCycleTransitionError(BillingServiceError):
    """Raised when a cycle cannot move to the requested status."""
    pass


class CycleNotActiveError(BillingServiceError):
    """Raised when an operation needs an active cycle."""
    pass



class InvalidPaymentTransitionError(BillingServiceError):
    """Raised when a payment status change is not allowed."""
    pass


class NotPayerError(BillingServiceError):
    """Raised when a payment is recorded for a non-paying member."""
    pass


class NotRoomMemberError(BillingServiceError):
    """Raised when a user is not a member of the cycle's room."""
    pass


class InsufficientPermissionsError(BillingServiceError):
    """Raised when a user lacks room-admin rights for an action."""
    pass
