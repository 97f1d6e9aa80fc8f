from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class CommissionBalance:
    """Netting-relevant view of one broker_commissions row."""
    id:                  int
    broker_id:           int
    commission_amount:   Decimal
    penalty_amount:      Decimal | None = None
    is_rescinded:        bool = False
    at_risk:             bool = False
    is_netted:           bool = False
    is_netting_absorber: bool = False


@dataclass(frozen=True)
class NettingPlan:
    absorbing_id:         int
    penalties:            dict[int, Decimal]   # penalized commission id → penalty, selection order
    total_netted:         Decimal
    remaining_commission: Decimal


@dataclass(frozen=True)
class NetResult:
    netting_id:           int
    absorbing_id:         int
    netted_ids:           list[int] = field(default_factory=list)
    total_netted:         Decimal = Decimal("0")
    remaining_commission: Decimal = Decimal("0")
