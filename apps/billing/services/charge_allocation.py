"""
Charge allocation service.

Converts a room's raw bill totals into per-member shares. The allocator is
a pure function of its inputs: members (with payer status and presence),
the room's rate table, the bill inputs and the cycle window. It performs
no database access so the same code seeds a cycle and verifies a cached
result.

Rounding: every per-payor division is rounded to 2 decimals before it is
summed. The room total and the sum of shares may therefore differ by up to
``payor_count - 1`` cents; that difference is accepted, not corrected.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from apps.rooms.services.presence_ledger import MemberPresence, filter_by_range

from .money import ZERO, round2, to_decimal
from .rate_table import RateTable


@dataclass(frozen=True)
class BillInputs:
    """Raw amounts entered by the room admin; ``None`` means never entered."""

    rent: Optional[Decimal] = None
    electricity: Optional[Decimal] = None
    internet: Optional[Decimal] = None
    previous_meter_reading: Optional[Decimal] = None
    current_meter_reading: Optional[Decimal] = None

    @classmethod
    def from_cycle(cls, cycle) -> 'BillInputs':
        return cls(
            rent=cycle.rent,
            electricity=cycle.electricity,
            internet=cycle.internet,
            previous_meter_reading=cycle.previous_meter_reading,
            current_meter_reading=cycle.current_meter_reading,
        )

    @property
    def has_readings(self) -> bool:
        return (
            self.previous_meter_reading is not None
            and self.current_meter_reading is not None
        )


@dataclass(frozen=True)
class AllocatedCharge:
    """One member's computed share; mirrors the MemberCharge model."""

    user_id: object
    is_payer: bool
    presence_days: int = 0
    rent_share: Decimal = ZERO
    electricity_share: Decimal = ZERO
    internet_share: Decimal = ZERO
    water_bill_share: Decimal = ZERO
    water_own: Decimal = ZERO
    water_shared_nonpayor: Decimal = ZERO
    total_due: Decimal = ZERO

    AMOUNT_FIELDS = (
        'rent_share',
        'electricity_share',
        'internet_share',
        'water_bill_share',
        'water_own',
        'water_shared_nonpayor',
        'total_due',
    )

    @classmethod
    def zero(cls, user_id, presence_days: int = 0) -> 'AllocatedCharge':
        return cls(user_id=user_id, is_payer=False, presence_days=presence_days)

    @classmethod
    def from_model(cls, charge) -> 'AllocatedCharge':
        return cls(
            user_id=charge.user_id,
            is_payer=charge.is_payer,
            presence_days=charge.presence_days,
            **{name: round2(getattr(charge, name)) for name in cls.AMOUNT_FIELDS}
        )

    def amounts(self) -> Dict[str, Decimal]:
        return {name: getattr(self, name) for name in self.AMOUNT_FIELDS}


@dataclass(frozen=True)
class Allocation:
    charges: Tuple[AllocatedCharge, ...] = ()
    water_bill_amount: Decimal = ZERO
    electricity_amount: Optional[Decimal] = None
    total_billed_amount: Decimal = ZERO
    payor_count: int = 1
    members_count: int = 0

    def charge_for(self, user_id) -> Optional[AllocatedCharge]:
        for charge in self.charges:
            if charge.user_id == user_id:
                return charge
        return None

    @property
    def payer_charges(self) -> List[AllocatedCharge]:
        return [c for c in self.charges if c.is_payer]


def resolve_electricity_amount(bills: BillInputs, rates: RateTable) -> Optional[Decimal]:
    """
    Electricity to bill for the cycle, or ``None`` when it is unset.

    Meter readings take precedence over an explicit amount. A usage delta
    of zero or less means the readings are bad or not yet entered, so the
    bill is unset rather than zero or negative.
    """
    if bills.has_readings:
        usage = to_decimal(bills.current_meter_reading) - to_decimal(bills.previous_meter_reading)
        if usage <= 0:
            return None
        return round2(usage * rates.electricity_rate)

    if bills.electricity is None:
        return None
    return round2(bills.electricity)


class ChargeAllocator:
    """
    Turns rates, membership, presence and bill inputs into member charges.

    Usage:
        allocator = ChargeAllocator(RateTable.from_room(room))
        allocation = allocator.allocate(members, bills, start, end)
    """

    def __init__(self, rates: RateTable):
        self.rates = rates

    def presence_days(self, member: MemberPresence, start: Optional[date], end: Optional[date]) -> int:
        return len(filter_by_range(member.presence, start, end))

    def allocate(
        self,
        members: Iterable[MemberPresence],
        bills: BillInputs,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Allocation:
        members = list(members)
        if not members:
            return Allocation()

        payers = [m for m in members if m.is_payer]
        # A room without payers still divides by one
        payor_count = max(1, len(payers))
        members_count = len(members)

        days = {m.user_id: self.presence_days(m, start, end) for m in members}

        # Water
        if self.rates.is_fixed_monthly:
            water_total = round2(self.rates.water_fixed_amount)
            own_water = {
                m.user_id: round2(water_total / members_count) for m in members
            }
            payer_water_share = round2(water_total / payor_count)
        else:
            own_water = {
                m.user_id: round2(days[m.user_id] * self.rates.water_rate_per_day)
                for m in members
            }
            water_total = round2(sum(own_water.values(), ZERO))
            non_payor_water = sum(
                (own_water[m.user_id] for m in members if not m.is_payer), ZERO
            )
            shared_non_payor = round2(non_payor_water / payor_count)

        # Even-split bills
        rent = to_decimal(bills.rent)
        internet = to_decimal(bills.internet)
        electricity_amount = resolve_electricity_amount(bills, self.rates)
        electricity = to_decimal(electricity_amount)

        rent_per_payor = round2(rent / payor_count)
        electricity_per_payor = round2(electricity / payor_count)
        internet_per_payor = round2(internet / payor_count)

        charges = []
        for member in members:
            user_days = days[member.user_id]
            if not member.is_payer:
                charges.append(AllocatedCharge.zero(member.user_id, user_days))
                continue

            own = own_water[member.user_id]
            if self.rates.is_fixed_monthly:
                water_share = payer_water_share
                shared = water_share - own
            else:
                shared = shared_non_payor
                water_share = round2(own + shared)

            charges.append(AllocatedCharge(
                user_id=member.user_id,
                is_payer=True,
                presence_days=user_days,
                rent_share=rent_per_payor,
                electricity_share=electricity_per_payor,
                internet_share=internet_per_payor,
                water_bill_share=water_share,
                water_own=own,
                water_shared_nonpayor=shared,
                total_due=round2(
                    rent_per_payor + electricity_per_payor + internet_per_payor + water_share
                ),
            ))

        return Allocation(
            charges=tuple(charges),
            water_bill_amount=water_total,
            electricity_amount=electricity_amount,
            total_billed_amount=round2(rent + electricity + water_total + internet),
            payor_count=payor_count,
            members_count=members_count,
        )
