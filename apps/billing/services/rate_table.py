"""
Rate table: per-unit rates and the water billing mode of a room.
"""

from dataclasses import dataclass
from decimal import Decimal

from apps.rooms.models import WaterBillingMode

from .money import ZERO, to_decimal


@dataclass(frozen=True)
class RateTable:
    water_billing_mode: str = WaterBillingMode.PRESENCE_BASED
    water_fixed_amount: Decimal = ZERO
    water_rate_per_day: Decimal = Decimal('5.00')
    electricity_rate: Decimal = Decimal('16.00')

    @property
    def is_fixed_monthly(self) -> bool:
        return self.water_billing_mode == WaterBillingMode.FIXED_MONTHLY

    @classmethod
    def from_room(cls, room) -> 'RateTable':
        return cls(
            water_billing_mode=room.water_billing_mode,
            water_fixed_amount=to_decimal(room.water_fixed_amount),
            water_rate_per_day=to_decimal(room.water_rate_per_day),
            electricity_rate=to_decimal(room.electricity_rate),
        )
