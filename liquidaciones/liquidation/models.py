from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class LiquidationSnapshot:
    broker_id:                   int | None
    broker_name:                 str | None
    project_name:                str | None
    unit_code:                   str | None
    list_price:                  Decimal
    available_discount_fraction: Decimal
    minimum_price:               Decimal
    recovery_total_minimum:      Decimal
    commission_uf:               Decimal
    commission_percent:          Decimal   # fraction
    discount_with_commission_uf: Decimal
    policy_notes:                str | None


@dataclass(frozen=True)
class SavedLiquidation:
    id:         int
    created_at: datetime
    created_by: str | None
    snapshot:   LiquidationSnapshot
