from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal

from liquidaciones.config import app_config
from liquidaciones.errors import InvalidInputError
from liquidaciones.utils.numbers import HUNDRED, ZERO, to_decimal

PRIMARY_UNIT_TYPE = app_config["units"]["primary_type"]
PROMOTION_TYPES = tuple(app_config["promotions"]["types"])


@dataclass(frozen=True)
class UnitForSale:
    id: int
    project_name: str
    unit_code: str
    list_price: Decimal
    available_discount_fraction: Decimal = ZERO
    unit_type: str = PRIMARY_UNIT_TYPE   # DEPARTAMENTO | ESTACIONAMIENTO | BODEGA

    @property
    def is_primary(self) -> bool:
        return self.unit_type == PRIMARY_UNIT_TYPE


@dataclass(frozen=True)
class CommissionRate:
    broker_id: int
    project_name: str
    commission_rate_fraction: Decimal

    @classmethod
    def from_percent(cls, broker_id: int, project_name: str, percent) -> CommissionRate:
        """Rates are stored as percentages (2.0 means 2%)."""
        return cls(broker_id, project_name, to_decimal(percent) / HUNDRED)


@dataclass(frozen=True)
class Promotion:
    amount: Decimal
    is_against_discount: bool = False
    promotion_type: str = ""
    id: int | None = None


class SecondaryUnitSelection:
    """Secondary units (parking, storage) attached to a quote, in the order picked."""

    def __init__(self, units: list[UnitForSale] | None = None):
        self._units: list[UnitForSale] = []
        for unit in units or []:
            self.add(unit)

    def add(self, unit: UnitForSale) -> None:
        if unit.is_primary:
            raise InvalidInputError(f"Unit {unit.unit_code} is a primary unit, not a secondary one")
        if any(u.id == unit.id for u in self._units):
            return
        self._units.append(unit)

    def remove(self, unit_id: int) -> None:
        self._units = [u for u in self._units if u.id != unit_id]

    @property
    def units(self) -> list[UnitForSale]:
        return list(self._units)

    @property
    def total_value(self) -> Decimal:
        return sum((u.list_price for u in self._units), ZERO)

    def __len__(self) -> int:
        return len(self._units)


@dataclass
class QuoteInput:
    list_price:                  Decimal = ZERO
    available_discount_fraction: Decimal = ZERO   # 0..1
    commission_rate_fraction:    Decimal | None = None   # None → no commission configured
    include_secondaries:         bool = False
    secondary_units:             list[UnitForSale] = field(default_factory=list)
    fixed_discount_percent:      Decimal = ZERO   # 0..100, manual override
    down_payment_bonus_percent:  Decimal = ZERO   # 0..100, manual override
    promotions:                  list[Promotion] = field(default_factory=list)


@dataclass(frozen=True)
class QuoteResult:
    minimum_price:                        Decimal   # list × (1 − discount)
    total_secondary_value:                Decimal
    total_list_price:                     Decimal   # list + secondaries
    commission_uf:                        Decimal   # minimum × rate, never secondaries
    commission_percent:                   Decimal   # rate as a fraction
    discount_available_with_commission_uf: Decimal
    total_promotions_against_discount:    Decimal
    recovery_total_minimum:               Decimal   # minimum + secondaries + commission
    discount_available_with_commission:   Decimal   # total list − recovery
    discount_available_with_commission_percent: Decimal
    bonus_discount_percent:               Decimal   # floored to 2 decimals
    discount_available_for_down_payment_bonus_percent: Decimal   # floored to 2 decimals
    discount_available_uf:                Decimal   # list × discount
    discount_available_for_broker_uf:     Decimal   # discount_available_uf − commission
    commission_configured:                bool
    aviso:                                str | None = None
