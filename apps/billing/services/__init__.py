"""
Billing app services layer.

Services contain business logic and orchestrate operations across models.
The charge allocator itself is pure; everything that writes runs inside a
transaction with row locks on the room and cycle.
"""

from .exceptions import (
    BillingServiceError,
    RoomNotFoundError,
    CycleNotFoundError,
    ActiveCycleConflictError,
    InvalidBillingInputError,
    InvalidCycleTransitionError,
    CycleNotActiveError,
    InvalidPaymentTransitionError,
    NotPayerError,
    NotRoomMemberError,
    InsufficientPermissionsError,
)

from .money import round2, to_decimal

from .rate_table import RateTable

from .charge_allocation import (
    BillInputs,
    AllocatedCharge,
    Allocation,
    ChargeAllocator,
    resolve_electricity_amount,
)

from .cycle_management import (
    CycleCloseResult,
    validate_billing_inputs,
    get_cycle_by_id,
    get_active_cycle,
    list_room_cycles,
    build_cycle_allocation,
    create_billing_cycle,
    update_billing_cycle,
    close_billing_cycle,
    repair_billing_cycle,
    recompute_active_cycle,
)

from .reconciliation import (
    ChargeMismatch,
    ReconciliationReport,
    ReconciliationGuard,
)

from .payment_tracking import (
    AutoCompleteResult,
    PaymentUpdateResult,
    PaymentStatusTracker,
)


__all__ = [
    # Exceptions
    'BillingServiceError',
    'RoomNotFoundError',
    'CycleNotFoundError',
    'ActiveCycleConflictError',
    'InvalidBillingInputError',
    'InvalidCycleTransitionError',
    'CycleNotActiveError',
    'InvalidPaymentTransitionError',
    'NotPayerError',
    'NotRoomMemberError',
    'InsufficientPermissionsError',

    # Money and rates
    'round2',
    'to_decimal',
    'RateTable',

    # Charge allocation
    'BillInputs',
    'AllocatedCharge',
    'Allocation',
    'ChargeAllocator',
    'resolve_electricity_amount',

    # Cycle lifecycle
    'CycleCloseResult',
    'validate_billing_inputs',
    'get_cycle_by_id',
    'get_active_cycle',
    'list_room_cycles',
    'build_cycle_allocation',
    'create_billing_cycle',
    'update_billing_cycle',
    'close_billing_cycle',
    'repair_billing_cycle',
    'recompute_active_cycle',

    # Reconciliation
    'ChargeMismatch',
    'ReconciliationReport',
    'ReconciliationGuard',

    # Payments
    'AutoCompleteResult',
    'PaymentUpdateResult',
    'PaymentStatusTracker',
]
