from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal

from liquidaciones.quoting.models import Promotion
from liquidaciones.utils.numbers import ZERO


@dataclass
class ReconcileInput:
    total_payment:            Decimal = ZERO   # escrow total recorded for the reservation
    subsidy_payment:          Decimal = ZERO
    minimum_price:            Decimal = ZERO
    commission_amount:        Decimal = ZERO   # gross, as agreed with the broker
    commission_includes_tax:  bool = True
    pays_secondary:           bool = False
    parking_price:            Decimal = ZERO
    storage_price:            Decimal = ZERO
    number_of_payments:       int = 1          # 1 | 2
    first_payment_percentage: int = 100        # 25 | 50 | 100
    promotions:               list[Promotion] = field(default_factory=list)


@dataclass(frozen=True)
class InstallmentSplit:
    first_payment_amount:  Decimal
    second_payment_amount: Decimal


@dataclass(frozen=True)
class ReconcileResult:
    recovery_payment:                  Decimal   # total − subsidy
    total_promotions_against_discount: Decimal
    difference:                        Decimal   # signed
    net_commission:                    Decimal   # VAT backed out when included
    commission_base_price:             Decimal
    commission_percent_of_base:        Decimal
    first_payment_amount:              Decimal
    second_payment_amount:             Decimal


@dataclass
class CommissionRecord:
    """One broker commission as seen by the consolidated broker report."""
    id:                       int
    commission_amount:        Decimal
    first_payment_percentage: int = 100
    first_payment_amount:     Decimal | None = None   # set once paid
    second_payment_amount:    Decimal | None = None   # set once paid
    invoice_1:                str | None = None
    payment_1_paid:           bool = False
    invoice_2:                str | None = None
    payment_2_paid:           bool = False
    has_payment_flow:         bool = False
    is_rescinded:             bool = False
    at_risk:                  bool = False
    penalty:                  Decimal | None = None
    is_netted:                bool = False


@dataclass(frozen=True)
class BrokerTotals:
    total_commission:  Decimal
    total_paid:        Decimal
    total_pending:     Decimal
    total_at_risk:     Decimal
    total_in_progress: Decimal
