"""
Reconciliation between cached member charges and a fresh allocation.

The cached ``MemberCharge`` rows are written whenever a cycle is
recomputed, but readers must get the same numbers when that cache is
momentarily empty. ``ReconciliationGuard`` decides which source to trust
and can report any disagreement between the two.

Closed cycles always answer from the frozen rows: their presence ledger
has been reset, so a fresh allocation would no longer describe them.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from apps.billing.models import BillingCycle

from .charge_allocation import AllocatedCharge
from .cycle_management import build_cycle_allocation


@dataclass(frozen=True)
class ChargeMismatch:
    user_id: object
    field_name: str
    cached: object
    fresh: object


@dataclass
class ReconciliationReport:
    cycle_id: object
    is_consistent: bool
    cached_count: int
    fresh_count: int
    mismatches: List[ChargeMismatch] = field(default_factory=list)


class ReconciliationGuard:
    """Two-tier lookup of member charges: cached rows first, fresh allocation second."""

    @staticmethod
    def cached_charges(cycle: BillingCycle) -> Tuple[AllocatedCharge, ...]:
        return tuple(
            AllocatedCharge.from_model(charge)
            for charge in cycle.member_charges.all()
        )

    @staticmethod
    def compute_fresh(cycle: BillingCycle) -> Tuple[AllocatedCharge, ...]:
        return build_cycle_allocation(cycle).charges

    @classmethod
    def resolve_charges(cls, cycle: BillingCycle) -> Tuple[AllocatedCharge, ...]:
        cached = cls.cached_charges(cycle)
        if cycle.is_closed or cached:
            return cached
        return cls.compute_fresh(cycle)

    @classmethod
    def resolve_member_charge(cls, cycle: BillingCycle, user_id) -> Optional[AllocatedCharge]:
        """
        One member's charge.

        A cached entry is trusted only if it exists and belongs to a payer;
        otherwise the share is recomputed from the cycle's current inputs.
        """
        cached = cycle.member_charges.filter(user_id=user_id).first()
        if cycle.is_closed:
            return AllocatedCharge.from_model(cached) if cached else None

        if cached is not None and cached.is_payer:
            return AllocatedCharge.from_model(cached)

        for charge in cls.compute_fresh(cycle):
            if charge.user_id == user_id:
                return charge
        return None

    @classmethod
    def verify(cls, cycle: BillingCycle) -> ReconciliationReport:
        """Compare the cached rows against a fresh allocation, field by field."""
        cached = {c.user_id: c for c in cls.cached_charges(cycle)}
        fresh = {c.user_id: c for c in cls.compute_fresh(cycle)}

        mismatches = []
        for user_id in sorted(set(cached) | set(fresh), key=str):
            cached_charge = cached.get(user_id)
            fresh_charge = fresh.get(user_id)
            if cached_charge is None or fresh_charge is None:
                mismatches.append(ChargeMismatch(
                    user_id=user_id,
                    field_name='member',
                    cached=cached_charge is not None,
                    fresh=fresh_charge is not None,
                ))
                continue

            for name in ('is_payer', 'presence_days') + AllocatedCharge.AMOUNT_FIELDS:
                cached_value = getattr(cached_charge, name)
                fresh_value = getattr(fresh_charge, name)
                if cached_value != fresh_value:
                    mismatches.append(ChargeMismatch(user_id, name, cached_value, fresh_value))

        return ReconciliationReport(
            cycle_id=cycle.id,
            is_consistent=not mismatches,
            cached_count=len(cached),
            fresh_count=len(fresh),
            mismatches=mismatches,
        )
